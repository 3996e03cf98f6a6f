"""
Container log and state monitoring
"""

import logging
import time
from typing import Callable, Optional

from .docker_api.events import DockerEvent
from .docker_api.exceptions import OperationFailure
from .docker_api.stream import StreamHandle

logger = logging.getLogger(__name__)

STABLE_STATES = ('running', 'exited', 'stopped', 'dead', 'paused')
LOG_TAIL = 100


def get_container_logs(client, container_id: str) -> str:
    """Snapshot of the container logs, or the error text if they cannot be read"""
    try:
        return client.containers.logs(container_id, tail=LOG_TAIL)
    except OperationFailure as e:
        logger.error(f"Failed to load logs: {e}")
        return f"Failed to load logs: {e}"


def stream_container_logs(client, container_id: str,
                          on_line: Callable[[str, str], None],
                          on_error: Optional[Callable[[Exception], None]] = None,
                          on_close: Optional[Callable[[], None]] = None) -> StreamHandle:
    """Follow the container logs, starting with the last 100 lines"""
    return client.containers.stream_logs(
        container_id, on_line, on_error=on_error, on_close=on_close, tail=LOG_TAIL
    )


def monitor_container_events(client, container_id: str,
                             on_state_change: Callable[[str, DockerEvent], None],
                             on_error: Optional[Callable[[Exception], None]] = None) -> StreamHandle:
    """
    Report state changes of one container as they happen

    on_state_change receives the event action (start, stop, die, ...) and
    the event itself.
    """
    def on_event(event: DockerEvent):
        if event.actor_id.startswith(container_id):
            on_state_change(event.action, event)

    return client.stream_events(
        on_event,
        on_error=on_error,
        filters={'container': [container_id], 'type': ['container']},
    )


def monitor_until_started_or_exited(client, container_id: str,
                                    on_status_change: Optional[Callable[[str], None]] = None,
                                    interval: float = 0.5) -> str:
    """
    Poll a container until it settles in a stable state

    Blocks the calling thread. Prefer monitor_container_events() for
    real-time updates.

    Returns:
        The stable status (running, exited, stopped, dead or paused)
    """
    while True:
        info = client.containers.inspect(container_id, size=False)
        status = (info.get('State') or {}).get('Status', '')
        if on_status_change:
            on_status_change(status)
        if status in STABLE_STATES:
            return status
        time.sleep(interval)
