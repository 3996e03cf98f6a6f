"""
Chunked transfer-encoding decoders

decode_chunked() works on a complete body, ChunkedStreamDecoder on a body
that arrives in pieces over a live connection.
"""

import logging
from typing import Callable, List, Optional

from .exceptions import MalformedResponse

logger = logging.getLogger(__name__)

CRLF = b'\r\n'


def parse_chunk_size(line: bytes) -> Optional[int]:
    """
    Parse a hexadecimal chunk-size line

    Chunk extensions (";name=value") are ignored.

    Returns:
        Chunk size, or None if the line is not a valid size
    """
    size_text = line.split(b';', 1)[0].strip()
    try:
        size = int(size_text.decode('ascii'), 16)
    except (UnicodeDecodeError, ValueError):
        return None
    if size < 0:
        return None
    return size


def decode_chunked(data: bytes) -> bytes:
    """
    Decode a fully buffered chunked body

    Args:
        data: Body bytes following the header terminator

    Returns:
        Concatenated chunk payloads

    Raises:
        MalformedResponse: If a chunk-size line cannot be parsed
    """
    chunks: List[bytes] = []
    index = 0

    while index < len(data):
        line_end = data.find(CRLF, index)
        if line_end == -1:
            break

        size = parse_chunk_size(data[index:line_end])
        if size is None:
            raise MalformedResponse(f"Invalid chunk size: {data[index:line_end]!r}")

        if size == 0:
            # Trailers after the last chunk are ignored
            break

        data_start = line_end + 2
        if data_start + size > len(data):
            # Truncated final chunk: keep what arrived
            logger.warning(f"Truncated chunk: expected {size} bytes, got {len(data) - data_start}")
            chunks.append(data[data_start:])
            break

        chunks.append(data[data_start:data_start + size])
        index = data_start + size + 2

    return b''.join(chunks)


class ChunkedStreamDecoder:
    """
    Incremental chunked decoder for streaming responses

    Raw bytes are fed as they arrive; each complete chunk payload is passed
    to on_data. Incomplete input is buffered until the next feed().
    """

    def __init__(self, on_data: Callable[[bytes], None]):
        self.on_data = on_data
        self.buffer = b''
        self.finished = False

    def feed(self, data: bytes):
        """Append raw bytes and emit every complete chunk"""
        if self.finished:
            return
        self.buffer += data

        offset = 0
        buffer = self.buffer
        while offset < len(buffer):
            line_end = buffer.find(CRLF, offset)
            if line_end == -1:
                break

            size = parse_chunk_size(buffer[offset:line_end])
            if size is None:
                # Corrupted size line: skip it and keep the stream going
                logger.debug(f"Skipping invalid chunk size line: {buffer[offset:line_end]!r}")
                offset = line_end + 2
                continue

            if size == 0:
                self.finished = True
                offset = len(buffer)
                break

            data_start = line_end + 2
            data_end = data_start + size
            if data_end + 2 > len(buffer):
                break

            offset = data_end + 2
            self.on_data(buffer[data_start:data_end])

        self.buffer = buffer[offset:]
