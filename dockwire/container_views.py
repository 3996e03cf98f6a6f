"""
Container detail views
Read-only projections built from inspect and system df responses
"""

import logging
from typing import Dict, List, Optional

from .docker_api.exceptions import OperationFailure
from .utils import format_bytes, format_date

logger = logging.getLogger(__name__)


class ContainerSummary:
    """General information about a container"""

    def __init__(self, name: str, image: str, status: str, id: str,
                 command: str, created: str):
        self.name = name
        self.image = image
        self.status = status
        self.id = id
        self.command = command
        self.created = created


class ContainerNetworkData:
    """Network addresses and forwarded ports of a container"""

    def __init__(self, ip: str = '', gateway: str = '', mac: str = '',
                 ports: str = '', is_running: bool = False):
        self.ip = ip
        self.gateway = gateway
        self.mac = mac
        self.ports = ports
        self.is_running = is_running


class ContainerMount:
    """Mount point of a container"""

    def __init__(self, source: str, destination: str, type: str,
                 size: Optional[str] = None):
        self.source = source
        self.destination = destination
        self.type = type
        self.size = size


class ContainerDiskUsage:
    """Formatted disk usage of a container"""

    def __init__(self, rw: str, root_fs: str, volumes: str, total: str):
        self.rw = rw
        self.root_fs = root_fs
        self.volumes = volumes
        self.total = total


def get_summary_data(client, container_id: str) -> ContainerSummary:
    """Build the summary view of a container"""
    info = client.containers.inspect(container_id, size=False)
    config = info.get('Config') or {}
    name = info.get('Name', '')
    cmd = config.get('Cmd')

    return ContainerSummary(
        name=name[1:] if name.startswith('/') else name,
        image=config.get('Image', ''),
        status=(info.get('State') or {}).get('Status', ''),
        id=info.get('Id', '')[:12],
        command=' '.join(cmd) if cmd else '',
        created=format_date(info.get('Created', ''), with_iso=True),
    )


def get_network_data(client, container_id: str) -> ContainerNetworkData:
    """
    Build the network view of a container

    Stopped containers have no addresses, so every field is left empty.
    """
    info = client.containers.inspect(container_id, size=True)
    if not (info.get('State') or {}).get('Running'):
        return ContainerNetworkData(is_running=False)

    settings = info.get('NetworkSettings') or {}
    networks = settings.get('Networks') or {}
    ip = gateway = mac = ''
    if networks:
        # Usually the bridge network
        net = next(iter(networks.values()))
        ip = net.get('IPAddress', '')
        gateway = net.get('Gateway', '')
        mac = net.get('MacAddress', '')

    port_list = []
    for port, bindings in (settings.get('Ports') or {}).items():
        if bindings:
            for binding in bindings:
                port_list.append(f"{binding.get('HostPort')}:{port}")
        else:
            port_list.append(port)

    return ContainerNetworkData(
        ip=ip,
        gateway=gateway,
        mac=mac,
        ports=', '.join(port_list) if port_list else 'No ports forwarded',
        is_running=True,
    )


def fetch_volume_sizes(client, container_id: str) -> Dict[str, int]:
    """
    Sizes of the volumes known to the daemon, by volume name

    System df is only queried when the container mounts a volume. A failing
    df call is logged and yields an empty map.
    """
    volume_sizes: Dict[str, int] = {}

    info = client.containers.inspect(container_id, size=True)
    mounts = info.get('Mounts') or []
    if not any(mount.get('Type') == 'volume' for mount in mounts):
        return volume_sizes

    try:
        system_data = client.system_data_usage()
    except OperationFailure as e:
        logger.error(f"Failed to fetch system data usage: {e}")
        return volume_sizes

    for volume in system_data.get('Volumes') or []:
        usage = volume.get('UsageData')
        if usage:
            volume_sizes[volume.get('Name')] = usage.get('Size', 0)
    return volume_sizes


def get_mounts_data(client, container_id: str) -> List[ContainerMount]:
    """Build the mounts view of a container"""
    info = client.containers.inspect(container_id, size=True)
    mounts = info.get('Mounts') or []
    if not mounts:
        return []

    volume_sizes = fetch_volume_sizes(client, container_id)

    result = []
    for mount in mounts:
        size = None
        name = mount.get('Name')
        if mount.get('Type') == 'volume' and name in volume_sizes:
            size = format_bytes(volume_sizes[name])
        result.append(ContainerMount(
            source=mount.get('Source', ''),
            destination=mount.get('Destination', ''),
            type=mount.get('Type', ''),
            size=size,
        ))
    return result


def get_disk_usage_data(client, container_id: str) -> ContainerDiskUsage:
    """Build the disk usage view of a container"""
    info = client.containers.inspect(container_id, size=True)
    volume_sizes = fetch_volume_sizes(client, container_id)
    size_rw = info.get('SizeRw') or 0
    size_root_fs = info.get('SizeRootFs') or 0

    total_volume_size = 0
    for mount in info.get('Mounts') or []:
        name = mount.get('Name')
        if mount.get('Type') == 'volume' and name in volume_sizes:
            total_volume_size += volume_sizes[name] or 0

    return ContainerDiskUsage(
        rw=format_bytes(size_rw),
        root_fs=format_bytes(size_root_fs),
        volumes=format_bytes(total_volume_size),
        total=format_bytes(size_root_fs + total_volume_size),
    )
