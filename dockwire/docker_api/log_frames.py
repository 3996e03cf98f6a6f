"""
Docker log stream decoding

Containers without a TTY multiplex stdout and stderr over one stream.
Each frame is an 8-byte header followed by the payload:

    [stream type] [0 0 0] [payload size, 4 bytes big-endian]

Stream type is 0 (stdin), 1 (stdout) or 2 (stderr). Containers with a TTY
send raw text instead.
"""

import logging
import struct
from typing import List, Optional

logger = logging.getLogger(__name__)

STREAM_STDIN = 0
STREAM_STDOUT = 1
STREAM_STDERR = 2

HEADER_SIZE = 8
HEADER_FORMAT = '>BxxxL'

# Frames declaring more than this are taken as a sign the stream is not
# multiplexed after all
MAX_FRAME_SIZE = 1_000_000

MODE_MULTIPLEXED = 'multiplexed'
MODE_RAW = 'raw'


def _decode(payload: bytes) -> str:
    return payload.decode('utf-8', errors='replace')


def decode_log_frames(data: bytes) -> str:
    """
    Decode a complete multiplexed log buffer into flat text

    An incomplete trailing header is dropped and a short trailing payload
    is decoded as far as it goes.
    """
    output = []
    offset = 0

    while offset + HEADER_SIZE <= len(data):
        _, size = struct.unpack_from(HEADER_FORMAT, data, offset)
        offset += HEADER_SIZE

        if offset + size > len(data):
            output.append(_decode(data[offset:]))
            break

        output.append(_decode(data[offset:offset + size]))
        offset += size

    return ''.join(output)


class LogLine:
    """Single line of container output"""

    def __init__(self, text: str, stream: str = 'stdout'):
        self.text = text
        self.stream = stream

    def __eq__(self, other):
        if not isinstance(other, LogLine):
            return NotImplemented
        return self.text == other.text and self.stream == other.stream

    def __repr__(self):
        return f"<LogLine {self.stream}: {self.text!r}>"


class LogDecodeResult:
    """Outcome of one incremental decoding step"""

    def __init__(self, lines: List[LogLine], remainder: bytes, mode: Optional[str]):
        self.lines = lines
        self.remainder = remainder
        self.mode = mode


def detect_mode(buffer: bytes) -> Optional[str]:
    """Guess the stream format from its first byte (None if no data yet)"""
    if not buffer:
        return None
    if buffer[0] in (STREAM_STDIN, STREAM_STDOUT, STREAM_STDERR):
        return MODE_MULTIPLEXED
    return MODE_RAW


def _split_raw(buffer: bytes, lines: List[LogLine]) -> bytes:
    parts = buffer.split(b'\n')
    for part in parts[:-1]:
        lines.append(LogLine(_decode(part), 'stdout'))
    return parts[-1]


def decode_log_frame_lines(buffer: bytes, mode: Optional[str] = None,
                           max_frame_size: int = MAX_FRAME_SIZE) -> LogDecodeResult:
    """
    Decode as many complete lines as the buffer holds

    Args:
        buffer: Accumulated undecoded bytes
        mode: Stream mode decided earlier, or None to detect it now
        max_frame_size: Frame size above which decoding falls back to raw text

    Returns:
        LogDecodeResult with the emitted lines, the bytes to keep for the
        next call and the (possibly newly decided) mode
    """
    lines: List[LogLine] = []
    if mode is None:
        mode = detect_mode(buffer)
        if mode is None:
            return LogDecodeResult(lines, buffer, None)

    if mode == MODE_RAW:
        return LogDecodeResult(lines, _split_raw(buffer, lines), mode)

    offset = 0
    while offset + HEADER_SIZE <= len(buffer):
        stream_type, size = struct.unpack_from(HEADER_FORMAT, buffer, offset)

        if size > max_frame_size:
            logger.warning(f"Log frame of {size} bytes exceeds {max_frame_size}, "
                           f"decoding stream as raw text")
            remainder = _split_raw(buffer[offset:], lines)
            return LogDecodeResult(lines, remainder, MODE_RAW)

        frame_end = offset + HEADER_SIZE + size
        if frame_end > len(buffer):
            break

        text = _decode(buffer[offset + HEADER_SIZE:frame_end]).rstrip()
        if text:
            stream = 'stderr' if stream_type == STREAM_STDERR else 'stdout'
            lines.append(LogLine(text, stream))
        offset = frame_end

    return LogDecodeResult(lines, buffer[offset:], mode)


class LogFrameDecoder:
    """
    Incremental log decoder for one stream

    Keeps the undecoded bytes and the detected mode between feed() calls.
    """

    def __init__(self, max_frame_size: int = MAX_FRAME_SIZE):
        self.max_frame_size = max_frame_size
        self.buffer = b''
        self.mode: Optional[str] = None

    def feed(self, data: bytes) -> List[LogLine]:
        """Append newly received bytes and return the complete lines"""
        result = decode_log_frame_lines(self.buffer + data, self.mode, self.max_frame_size)
        self.buffer = result.remainder
        self.mode = result.mode
        return result.lines
