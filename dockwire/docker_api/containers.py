"""
Docker Containers API
"""

from typing import Any, Callable, Dict, List, Optional

from .exceptions import operation, wrap_stream_error
from .log_frames import MODE_RAW, LogFrameDecoder, decode_log_frames, detect_mode
from .stream import StreamCallbacks, StreamHandle

COMPOSE_PROJECT_LABEL = 'com.docker.compose.project'
COMPOSE_SERVICE_LABEL = 'com.docker.compose.service'
COMPOSE_WORKING_DIR_LABEL = 'com.docker.compose.project.working_dir'
COMPOSE_CONFIG_FILES_LABEL = 'com.docker.compose.project.config_files'
COMPOSE_CONTAINER_NUMBER_LABEL = 'com.docker.compose.container-number'


class ComposeInfo:
    """Compose project membership read from container labels"""

    def __init__(self, project: str, service: str, working_dir: Optional[str] = None,
                 config_files: Optional[str] = None, container_number: Optional[int] = None):
        self.project = project
        self.service = service
        self.working_dir = working_dir
        self.config_files = config_files
        self.container_number = container_number

    def __repr__(self):
        return f"<ComposeInfo: {self.project}/{self.service}>"


def extract_container_name(names: List[str]) -> str:
    """First container name without Docker's leading slash"""
    if not names:
        return 'unknown'
    name = names[0]
    return name[1:] if name.startswith('/') else name


def extract_compose_info(labels: Optional[Dict[str, str]]) -> Optional[ComposeInfo]:
    """
    Compose metadata of a container

    Returns:
        ComposeInfo, or None unless both the project and service labels are set
    """
    labels = labels or {}
    project = labels.get(COMPOSE_PROJECT_LABEL)
    service = labels.get(COMPOSE_SERVICE_LABEL)
    if not project or not service:
        return None

    container_number = None
    number = labels.get(COMPOSE_CONTAINER_NUMBER_LABEL)
    if number:
        try:
            container_number = int(number)
        except ValueError:
            pass

    return ComposeInfo(
        project=project,
        service=service,
        working_dir=labels.get(COMPOSE_WORKING_DIR_LABEL),
        config_files=labels.get(COMPOSE_CONFIG_FILES_LABEL),
        container_number=container_number,
    )


def format_ports(ports: Optional[List[Dict[str, Any]]]) -> List[str]:
    """Port mappings as "public:private/type" or "private/type" """
    result = []
    for port in ports or []:
        if port.get('PublicPort'):
            result.append(f"{port['PublicPort']}:{port.get('PrivatePort')}/{port.get('Type')}")
        else:
            result.append(f"{port.get('PrivatePort')}/{port.get('Type')}")
    return result


class ContainerData:
    """Container snapshot built from a /containers/json entry"""

    def __init__(self, attrs: Dict[str, Any]):
        self.attrs = attrs
        self.id = attrs.get('Id', '')
        self.short_id = self.id[:12]
        self.name = extract_container_name(attrs.get('Names') or [])
        self.image = attrs.get('Image', '')
        self.status = attrs.get('Status', '')
        self.state = attrs.get('State', '')
        self.is_running = self.state == 'running'
        self.compose_info = extract_compose_info(attrs.get('Labels'))
        self.is_compose = self.compose_info is not None
        self.created = attrs.get('Created', 0)
        self.ports = format_ports(attrs.get('Ports'))

    def __repr__(self):
        return f"<Container: {self.name or self.short_id}>"


class ContainerCollection:
    """Docker Containers collection"""

    def __init__(self, client):
        self.client = client

    def list(self, all: bool = True) -> List[ContainerData]:
        """
        List containers

        Args:
            all: Include stopped containers

        Returns:
            List of ContainerData snapshots
        """
        with operation('list', 'containers'):
            containers = self.client.http.get('/containers/json', params={'all': all})
            return [ContainerData(attrs) for attrs in containers or []]

    def inspect(self, container_id: str, size: bool = False) -> Dict[str, Any]:
        """
        Inspect a container

        Args:
            container_id: Container ID or name
            size: Include SizeRw / SizeRootFs

        Returns:
            Raw inspect data
        """
        with operation('inspect', 'container', container_id):
            return self.client.http.get(f'/containers/{container_id}/json', params={'size': size})

    def start(self, container_id: str):
        """Start container"""
        with operation('start', 'container', container_id):
            self.client.http.post(f'/containers/{container_id}/start')

    def stop(self, container_id: str, timeout: Optional[int] = None):
        """Stop container"""
        with operation('stop', 'container', container_id):
            self.client.http.post(f'/containers/{container_id}/stop', params={'t': timeout})

    def restart(self, container_id: str, timeout: Optional[int] = None):
        """Restart container"""
        with operation('restart', 'container', container_id):
            self.client.http.post(f'/containers/{container_id}/restart', params={'t': timeout})

    def remove(self, container_id: str, force: bool = False):
        """Remove container"""
        params = {'force': True} if force else None
        with operation('remove', 'container', container_id):
            self.client.http.delete(f'/containers/{container_id}', params=params)

    def logs(self, container_id: str, tail: int = 100) -> str:
        """
        Get a snapshot of the container logs

        Args:
            container_id: Container ID or name
            tail: Number of lines from the end

        Returns:
            Log text with stdout and stderr interleaved
        """
        params = {'stdout': True, 'stderr': True, 'tail': tail}
        with operation('get logs for', 'container', container_id):
            data = self.client.http.request('GET', f'/containers/{container_id}/logs', params=params)
        if detect_mode(data) == MODE_RAW:
            # TTY containers send plain text
            return data.decode('utf-8', errors='replace')
        return decode_log_frames(data)

    def stream_logs(self, container_id: str, on_line: Callable[[str, str], None],
                    on_error: Optional[Callable[[Exception], None]] = None,
                    on_close: Optional[Callable[[], None]] = None,
                    tail: int = 100, follow: bool = True, timestamps: bool = False,
                    since: Optional[int] = None) -> StreamHandle:
        """
        Stream container logs line by line

        Args:
            container_id: Container ID or name
            on_line: Called with (text, 'stdout' | 'stderr') for each line
            on_error: Called once if the stream fails
            on_close: Called once when the stream ends or is cancelled
            tail: Number of existing lines to send first
            follow: Keep the stream open for new output
            timestamps: Prefix lines with timestamps
            since: Only logs since this Unix timestamp

        Returns:
            StreamHandle for cancellation
        """
        decoder = LogFrameDecoder()

        def on_data(data: bytes):
            for line in decoder.feed(data):
                on_line(line.text, line.stream)

        callbacks = StreamCallbacks(
            on_data,
            on_error=wrap_stream_error(on_error, 'stream logs for', 'container', container_id),
            on_close=on_close,
        )
        params = {
            'stdout': True,
            'stderr': True,
            'follow': follow,
            'timestamps': timestamps,
            'tail': tail,
            'since': since,
        }
        with operation('stream logs for', 'container', container_id):
            return self.client.http.request_stream(
                'GET', f'/containers/{container_id}/logs', callbacks, params=params
            )
