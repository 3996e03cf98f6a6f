"""
Docker events feed decoding

/events sends one JSON object per line for as long as the connection
stays open.
"""

import codecs
import json
import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


class DockerEvent:
    """Event reported by the Docker daemon"""

    def __init__(self, attrs: Dict[str, Any]):
        self.attrs = attrs
        actor = attrs.get('Actor') or {}
        self.type = attrs.get('Type') or ''
        self.action = attrs.get('Action') or ''
        self.actor_id = actor.get('ID') or ''
        self.actor_attributes = actor.get('Attributes') or {}
        self.time = attrs.get('time', 0)
        self.time_nano = attrs.get('timeNano', 0)

    def __repr__(self):
        return f"<DockerEvent: {self.type} {self.action} {self.actor_id[:12]}>"


def decode_event_lines(buffer: str) -> Tuple[List[DockerEvent], str]:
    """
    Parse every complete line of the buffer

    Returns:
        Parsed events and the trailing incomplete fragment
    """
    parts = buffer.split('\n')
    events = []
    for line in parts[:-1]:
        line = line.strip()
        if not line:
            continue
        try:
            attrs = json.loads(line)
        except ValueError as e:
            logger.debug(f"Dropping malformed event line {line!r}: {e}")
            continue
        if not isinstance(attrs, dict):
            logger.debug(f"Dropping non-object event line {line!r}")
            continue
        if not isinstance(attrs.get('Actor') or {}, dict):
            logger.debug(f"Dropping event line with malformed Actor {line!r}")
            continue
        events.append(DockerEvent(attrs))
    return events, parts[-1]


class EventStreamDecoder:
    """Incremental decoder for the events feed"""

    def __init__(self):
        self._text = codecs.getincrementaldecoder('utf-8')(errors='replace')
        self.buffer = ''

    def feed(self, data: bytes) -> List[DockerEvent]:
        """Append newly received bytes and return the complete events"""
        events, self.buffer = decode_event_lines(self.buffer + self._text.decode(data))
        return events
