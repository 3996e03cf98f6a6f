"""
Formatting helpers shared by the client and the views
"""

import re
from datetime import datetime, timezone
from typing import Union

SIZE_UNITS = ['B', 'KB', 'MB', 'GB', 'TB']

_FRACTION_RE = re.compile(r'\.(\d+)')


def format_bytes(size: Union[int, float]) -> str:
    """
    Human-readable size with binary multiples

    Examples: 0 -> "0 B", 1536 -> "1.5 KB"
    """
    if not size or size <= 0:
        return '0 B'
    value = float(size)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {SIZE_UNITS[index]}"


def _parse_date(value: Union[str, int, float]) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    # Docker reports nanoseconds; datetime wants exactly six digits
    text = _FRACTION_RE.sub(lambda m: '.' + (m.group(1) + '000000')[:6], text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: Union[str, int, float], with_iso: bool = False) -> str:
    """
    Format a timestamp in the local time zone using the locale format

    Args:
        value: ISO 8601 string or Unix timestamp in seconds
        with_iso: Append the UTC ISO 8601 form in parentheses

    Returns:
        Formatted date, or "Invalid Date"
    """
    try:
        parsed = _parse_date(value)
        formatted = parsed.astimezone().strftime('%c')
    except (ValueError, OverflowError, OSError):
        return 'Invalid Date'

    if with_iso:
        utc = parsed.astimezone(timezone.utc)
        iso = utc.strftime('%Y-%m-%dT%H:%M:%S') + f'.{utc.microsecond // 1000:03d}Z'
        formatted += f" ({iso})"
    return formatted


def truncate_id(docker_id: str, length: int = 12) -> str:
    """Short form of a Docker ID, without any sha256: prefix"""
    if not docker_id:
        return ''
    if docker_id.startswith('sha256:'):
        docker_id = docker_id[len('sha256:'):]
    return docker_id[:length]
