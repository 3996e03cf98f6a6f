"""
CLI - command line interface
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .container_views import get_disk_usage_data, get_mounts_data, get_network_data, get_summary_data
from .docker_api import DockerClient, DockerEvent, OperationFailure
from .docker_api.stream import StreamHandle
from .settings_manager import SettingsManager
from .utils import format_bytes, format_date

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Configure root logging for the command line"""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING),
                        format='%(message)s')


def wait_for_stream(handle: StreamHandle, poll: float = 0.5):
    """Block until the stream ends; Ctrl+C cancels it"""
    try:
        while not handle.join(poll):
            pass
    except KeyboardInterrupt:
        handle.cancel()


class DockwireCLI:
    """Docker command line interface"""

    def __init__(self, client: DockerClient):
        self.client = client

    def list_containers(self, all_containers: bool = True) -> bool:
        """List containers"""
        containers = self.client.containers.list(all=all_containers)
        if not containers:
            logger.info("No containers found")
            return True

        print(f"{'ID':<14} {'NAME':<30} {'STATE':<10} {'IMAGE':<35} {'COMPOSE':<20} PORTS")
        print("-" * 120)
        for c in containers:
            compose = f"{c.compose_info.project}/{c.compose_info.service}" if c.is_compose else ''
            print(f"{c.short_id:<14} {c.name:<30} {c.state:<10} {c.image:<35} "
                  f"{compose:<20} {', '.join(c.ports)}")

        print(f"\nTotal: {len(containers)}")
        return True

    def list_images(self) -> bool:
        """List images"""
        images = self.client.images.list()
        print(f"{'ID':<14} {'REPOSITORY':<40} {'TAG':<20} {'SIZE':<12} IN USE")
        print("-" * 100)
        for image in images:
            in_use = f"yes ({image.container_count})" if image.in_use else 'no'
            print(f"{image.short_id:<14} {image.name:<40} {image.tag:<20} "
                  f"{format_bytes(image.size):<12} {in_use}")

        print(f"\nTotal: {len(images)}")
        return True

    def inspect(self, name: str, image: bool = False) -> bool:
        """Print raw inspect data"""
        if image:
            data = self.client.images.inspect(name)
        else:
            data = self.client.containers.inspect(name, size=True)
        print(json.dumps(data, indent=2))
        return True

    def start_container(self, name: str) -> bool:
        """Start container"""
        self.client.containers.start(name)
        logger.info(f"Container {name} started")
        return True

    def stop_container(self, name: str) -> bool:
        """Stop container"""
        self.client.containers.stop(name)
        logger.info(f"Container {name} stopped")
        return True

    def restart_container(self, name: str) -> bool:
        """Restart container"""
        self.client.containers.restart(name)
        logger.info(f"Container {name} restarted")
        return True

    def remove_container(self, name: str, force: bool = False) -> bool:
        """Remove container"""
        self.client.containers.remove(name, force=force)
        logger.info(f"Container {name} removed")
        return True

    def remove_image(self, name: str, force: bool = False) -> bool:
        """Remove image"""
        self.client.images.remove(name, force=force)
        logger.info(f"Image {name} removed")
        return True

    def show_logs(self, name: str, tail: int = 100, follow: bool = False) -> bool:
        """Show container logs"""
        if not follow:
            print(self.client.containers.logs(name, tail=tail), end='')
            return True

        errors = []

        def on_line(text: str, stream: str):
            out = sys.stderr if stream == 'stderr' else sys.stdout
            print(text, file=out, flush=True)

        handle = self.client.containers.stream_logs(name, on_line, on_error=errors.append, tail=tail)
        wait_for_stream(handle)
        for error in errors:
            logger.error(str(error))
        return not errors

    def show_events(self, container: Optional[str] = None) -> bool:
        """Print daemon events until interrupted"""
        errors = []
        filters = {'container': [container], 'type': ['container']} if container else None

        def on_event(event: DockerEvent):
            name = event.actor_attributes.get('name', event.actor_id[:12])
            print(f"{format_date(event.time)}  {event.type:<10} {event.action:<20} {name}", flush=True)

        handle = self.client.stream_events(on_event, on_error=errors.append, filters=filters)
        wait_for_stream(handle)
        for error in errors:
            logger.error(str(error))
        return not errors

    def show_disk_usage(self) -> bool:
        """Show system disk usage"""
        data = self.client.system_data_usage()
        print(f"Layers:  {format_bytes(data.get('LayersSize') or 0)}")
        print(f"Images:  {len(data.get('Images') or [])}")
        print(f"Containers: {len(data.get('Containers') or [])}")
        print("\nVolumes:")
        for volume in data.get('Volumes') or []:
            usage = volume.get('UsageData') or {}
            print(f"  {volume.get('Name', ''):<66} {format_bytes(usage.get('Size', 0))}")
        return True

    def show_summary(self, name: str) -> bool:
        """Show summary, network, mounts and disk usage of a container"""
        summary = get_summary_data(self.client, name)
        print(f"Name:     {summary.name}")
        print(f"ID:       {summary.id}")
        print(f"Image:    {summary.image}")
        print(f"Status:   {summary.status}")
        print(f"Command:  {summary.command}")
        print(f"Created:  {summary.created}")

        network = get_network_data(self.client, name)
        if network.is_running:
            print("\nNetwork:")
            print(f"  IP:      {network.ip}")
            print(f"  Gateway: {network.gateway}")
            print(f"  MAC:     {network.mac}")
            print(f"  Ports:   {network.ports}")

        mounts = get_mounts_data(self.client, name)
        if mounts:
            print("\nMounts:")
            for mount in mounts:
                size = f" ({mount.size})" if mount.size else ''
                print(f"  [{mount.type}] {mount.source} -> {mount.destination}{size}")

        usage = get_disk_usage_data(self.client, name)
        print("\nDisk usage:")
        print(f"  Writable layer: {usage.rw}")
        print(f"  Root fs:        {usage.root_fs}")
        print(f"  Volumes:        {usage.volumes}")
        print(f"  Total:          {usage.total}")
        return True

    def check_docker(self) -> bool:
        """Check Docker"""
        if not self.client.ping():
            logger.error(f"Docker daemon not reachable at {self.client.http.target}")
            return False

        version = self.client.version() or {}
        print("Docker information:")
        print(f"  Socket: {self.client.http.target}")
        print(f"  Server: {version.get('Version', 'Unknown')}")
        print(f"  API: {version.get('ApiVersion', 'Unknown')}")
        return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dockwire',
        description='dockwire - Docker client over a raw socket',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage examples:
  %(prog)s ps                                      # List containers
  %(prog)s logs --name web --follow
  %(prog)s events --name web
  %(prog)s summary --name web
  %(prog)s rmi --name nginx:latest --force
  %(prog)s check --socket tcp://10.0.0.5:2375
"""
    )

    parser.add_argument(
        'action',
        choices=[
            'ps', 'images', 'inspect', 'start', 'stop', 'restart', 'rm', 'rmi',
            'logs', 'events', 'df', 'summary', 'check'
        ],
        help='Action'
    )

    parser.add_argument('--name', help='Container or image name/ID')
    parser.add_argument('--image', action='store_true', help='inspect: inspect an image')
    parser.add_argument('--force', action='store_true', help='Force action')
    parser.add_argument('--running', action='store_true', help='ps: only running containers')
    parser.add_argument('--tail', type=int, default=100, help='Number of log lines')
    parser.add_argument('--follow', '-f', action='store_true', help='Follow log output')
    parser.add_argument('--socket', help='Docker socket path or tcp://host:port')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


NAME_REQUIRED = ('inspect', 'start', 'stop', 'restart', 'rm', 'rmi', 'logs', 'summary')


def run_cli(argv: Optional[List[str]] = None):
    """Start CLI application"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.action in NAME_REQUIRED and not args.name:
        parser.error(f"{args.action} requires --name")

    settings = SettingsManager()
    setup_logging('DEBUG' if args.verbose else settings.get('log_level', 'INFO'))

    client = DockerClient(args.socket or settings.get_effective_socket_path())
    cli = DockwireCLI(client)

    actions = {
        'ps': lambda: cli.list_containers(all_containers=not args.running),
        'images': cli.list_images,
        'inspect': lambda: cli.inspect(args.name, image=args.image),
        'start': lambda: cli.start_container(args.name),
        'stop': lambda: cli.stop_container(args.name),
        'restart': lambda: cli.restart_container(args.name),
        'rm': lambda: cli.remove_container(args.name, force=args.force),
        'rmi': lambda: cli.remove_image(args.name, force=args.force),
        'logs': lambda: cli.show_logs(args.name, tail=args.tail, follow=args.follow),
        'events': lambda: cli.show_events(container=args.name),
        'df': cli.show_disk_usage,
        'summary': lambda: cli.show_summary(args.name),
        'check': cli.check_docker,
    }

    try:
        ok = actions[args.action]()
    except KeyboardInterrupt:
        logger.info("\n\nInterrupted by user")
        sys.exit(0)
    except OperationFailure as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    run_cli()
