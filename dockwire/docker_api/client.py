"""
Docker Client - Main API entry point
"""

from typing import Any, Callable, Dict, List, Optional

from .containers import ContainerCollection
from .events import DockerEvent, EventStreamDecoder
from .exceptions import operation, wrap_stream_error
from .http_client import DockerHTTPClient
from .images import ImageCollection
from .stream import StreamCallbacks, StreamHandle


class DockerClient:
    """
    Docker API Client
    Every request opens its own connection to the daemon
    """

    def __init__(self, base_url: Optional[str] = None):
        """
        Initialize Docker client

        Args:
            base_url: Docker socket path or tcp://host:port (default: auto-detect)
        """
        self.http = DockerHTTPClient(base_url=base_url)
        self.containers = ContainerCollection(self)
        self.images = ImageCollection(self)

    def set_socket_path(self, base_url: str):
        """Point subsequent requests at another daemon socket"""
        self.http.set_socket_path(base_url)

    def ping(self) -> bool:
        """Test connection to the Docker daemon"""
        return self.http.ping()

    def version(self) -> dict:
        """Get Docker version info"""
        with operation('get', 'version'):
            return self.http.get('/version')

    def info(self) -> dict:
        """Get Docker system info"""
        with operation('get', 'system info'):
            return self.http.get('/info')

    def system_data_usage(self) -> Dict[str, Any]:
        """Get system data usage (images, containers, volumes, build cache)"""
        with operation('get', 'system data usage'):
            return self.http.get('/system/df')

    def stream_events(self, on_event: Callable[[DockerEvent], None],
                      on_error: Optional[Callable[[Exception], None]] = None,
                      on_close: Optional[Callable[[], None]] = None,
                      filters: Optional[Dict[str, List[str]]] = None,
                      since: Optional[int] = None) -> StreamHandle:
        """
        Stream daemon events

        Args:
            on_event: Called for each event
            on_error: Called once if the stream fails
            on_close: Called once when the stream ends or is cancelled
            filters: Event filters, e.g. {'container': [id], 'type': ['container']}
            since: Replay events since this Unix timestamp

        Returns:
            StreamHandle for cancellation
        """
        decoder = EventStreamDecoder()

        def on_data(data: bytes):
            for event in decoder.feed(data):
                on_event(event)

        callbacks = StreamCallbacks(
            on_data,
            on_error=wrap_stream_error(on_error, 'stream', 'events'),
            on_close=on_close,
        )
        params = {'since': since, 'filters': filters or None}
        with operation('stream', 'events'):
            return self.http.request_stream('GET', '/events', callbacks, params=params)
