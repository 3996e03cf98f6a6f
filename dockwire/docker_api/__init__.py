"""
Docker Engine API over a raw socket
Works with the Docker daemon via Unix socket or tcp://host:port
"""

from .client import DockerClient
from .containers import ComposeInfo, ContainerData
from .events import DockerEvent
from .exceptions import (
    ConnectionFailure,
    DockerException,
    HttpError,
    MalformedResponse,
    OperationFailure,
    PrematureClose,
)
from .images import ImageData
from .log_frames import LogLine
from .stream import StreamCallbacks, StreamHandle

__all__ = [
    'DockerClient',
    'ComposeInfo',
    'ContainerData',
    'ImageData',
    'DockerEvent',
    'LogLine',
    'StreamCallbacks',
    'StreamHandle',
    'DockerException',
    'ConnectionFailure',
    'PrematureClose',
    'MalformedResponse',
    'HttpError',
    'OperationFailure',
]
