"""
HTTP Client for Docker Unix Socket
Raw socket implementation: request framing, response parsing and
chunked decoding are done by hand on bytes
"""

import json
import logging
import os
import platform
import re
import socket
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import quote, urlsplit

from .. import __version__
from .chunked import ChunkedStreamDecoder, decode_chunked
from .exceptions import (
    ConnectionFailure,
    DockerException,
    HttpError,
    MalformedResponse,
    PrematureClose,
)
from .stream import StreamCallbacks, StreamHandle

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = '/var/run/docker.sock'
FLATPAK_SOCKET_PATH = '/run/docker.sock'
FLATPAK_INFO_FILE = '/.flatpak-info'

USER_AGENT = f'dockwire/{__version__}'
READ_SIZE = 4096
HEADER_TERMINATOR = b'\r\n\r\n'

STATUS_LINE_RE = re.compile(r'^HTTP/\d\.\d (\d+)')

Body = Union[str, bytes, Dict[str, Any], list, None]


def default_socket_path() -> str:
    """Docker socket path for the current platform"""
    if platform.system() == "Darwin":  # macOS
        user_socket = os.path.expanduser('~/.docker/run/docker.sock')
        if os.path.exists(user_socket):
            return user_socket
    elif os.path.exists(FLATPAK_INFO_FILE):
        # Sandboxed runtimes expose the host socket under /run
        return FLATPAK_SOCKET_PATH
    return DEFAULT_SOCKET_PATH


def build_path(path: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Append query parameters to an API path

    Booleans become true/false, lists and dicts are JSON serialized and
    every value is URL-quoted. Parameters set to None are skipped.
    """
    if not params:
        return path
    query_parts = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        elif isinstance(value, (list, dict)):
            value = json.dumps(value, separators=(',', ':'))
        query_parts.append(f"{key}={quote(str(value), safe='')}")
    if not query_parts:
        return path
    separator = '&' if '?' in path else '?'
    return f"{path}{separator}{'&'.join(query_parts)}"


def encode_body(data: Body) -> Optional[bytes]:
    """Encode a request body (text, raw bytes or JSON-serializable data)"""
    if data is None:
        return None
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return data.encode('utf-8')
    return json.dumps(data).encode('utf-8')


def build_request(method: str, path: str, body: Optional[bytes] = None,
                  host: str = 'localhost', keep_alive: bool = False) -> bytes:
    """
    Serialize an HTTP/1.1 request

    Args:
        method: HTTP method
        path: Path including query string
        body: Encoded body, if any
        host: Value of the Host header
        keep_alive: Omit "Connection: close" (streaming requests)
    """
    lines = [
        f"{method} {path} HTTP/1.1",
        f"Host: {host}",
        f"User-Agent: {USER_AGENT}",
        "Accept: application/json",
    ]
    if body:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(body)}")
    if not keep_alive:
        lines.append("Connection: close")
    lines.append("")
    lines.append("")
    return "\r\n".join(lines).encode('utf-8') + (body or b'')


def find_header_end(data: bytes) -> int:
    """Index of the first CRLF CRLF, or -1"""
    return data.find(HEADER_TERMINATOR)


def parse_head(head: bytes) -> Tuple[int, Dict[str, str]]:
    """
    Parse the status line and header lines

    Header names are lower-cased; repeated headers are joined with ", ".

    Raises:
        MalformedResponse: If the status line is not valid
    """
    lines = head.decode('iso-8859-1').split('\r\n')
    match = STATUS_LINE_RE.match(lines[0])
    if not match:
        raise MalformedResponse(f"Invalid HTTP status line: {lines[0]!r}")

    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if ':' not in line:
            continue
        name, value = line.split(':', 1)
        name = name.strip().lower()
        value = value.strip()
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    return int(match.group(1)), headers


def is_chunked(headers: Dict[str, str]) -> bool:
    """True if the response body uses chunked transfer-encoding"""
    return 'chunked' in headers.get('transfer-encoding', '').lower()


def _error_body(body: bytes, headers: Dict[str, str]) -> str:
    if is_chunked(headers):
        try:
            body = decode_chunked(body)
        except MalformedResponse:
            pass
    return body.decode('utf-8', errors='replace')


class HTTPResponse:
    """Fully buffered HTTP response"""

    def __init__(self, status_code: int, headers: Dict[str, str], body: bytes):
        self.status_code = status_code
        self.headers = headers
        self.body = body

    def __repr__(self):
        return f"<HTTPResponse: {self.status_code} ({len(self.body)} bytes)>"


def parse_response(data: bytes) -> HTTPResponse:
    """
    Parse a complete HTTP response

    Raises:
        MalformedResponse: No header terminator or invalid status line
        HttpError: Status code outside 2xx
    """
    header_end = find_header_end(data)
    if header_end == -1:
        raise MalformedResponse("Invalid HTTP response: No header separator found")

    status_code, headers = parse_head(data[:header_end])
    body = data[header_end + len(HEADER_TERMINATOR):]

    if status_code < 200 or status_code >= 300:
        raise HttpError(status_code, _error_body(body, headers))

    if is_chunked(headers):
        body = decode_chunked(body)

    return HTTPResponse(status_code, headers, body)


class DockerHTTPClient:
    """HTTP client for Docker daemon"""

    def __init__(self, base_url: Optional[str] = None):
        """
        Initialize Docker HTTP client

        Args:
            base_url: Socket path, unix:// URL or tcp://host:port
                      (default: auto-detect)
        """
        self.socket_path: Optional[str] = None
        self.address: Optional[Tuple[str, int]] = None
        self.set_socket_path(base_url or default_socket_path())

    def set_socket_path(self, base_url: str):
        """Change the connection target used by subsequent requests"""
        if base_url.startswith('tcp://'):
            parts = urlsplit(base_url)
            self.address = (parts.hostname or 'localhost', parts.port or 2375)
            self.socket_path = None
        else:
            # Remove unix:// prefix if present
            self.socket_path = base_url.replace('unix://', '', 1)
            self.address = None

    @property
    def target(self) -> str:
        if self.address:
            return f"tcp://{self.address[0]}:{self.address[1]}"
        return self.socket_path

    @property
    def host_header(self) -> str:
        if self.address:
            return f"{self.address[0]}:{self.address[1]}"
        return 'localhost'

    def _connect(self) -> socket.socket:
        """Open a new connection to the daemon"""
        logger.debug(f"Connecting to {self.target}")
        try:
            if self.address:
                return socket.create_connection(self.address)
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(self.socket_path)
            except OSError:
                sock.close()
                raise
            return sock
        except OSError as e:
            raise ConnectionFailure(self.target, str(e)) from e

    def request_raw(self, method: str, path: str, body: Body = None,
                    params: Optional[Dict[str, Any]] = None) -> HTTPResponse:
        """
        Make a one-shot request and return the parsed response

        The connection is closed once the whole response has been read.
        """
        url = build_path(path, params)
        payload = build_request(method, url, encode_body(body), host=self.host_header)

        sock = self._connect()
        try:
            logger.debug(f"{method} {url}")
            sock.sendall(payload)
            chunks = []
            while True:
                data = sock.recv(READ_SIZE)
                if not data:
                    break
                chunks.append(data)
        finally:
            sock.close()

        response = parse_response(b''.join(chunks))
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    def request(self, method: str, path: str, body: Body = None,
                params: Optional[Dict[str, Any]] = None) -> bytes:
        """Make a one-shot request and return the raw body"""
        return self.request_raw(method, path, body=body, params=params).body

    def request_json(self, method: str, path: str, body: Body = None,
                     params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a one-shot request and parse the JSON body (None if empty)"""
        data = self.request(method, path, body=body, params=params)
        if not data.strip():
            return None
        return json.loads(data.decode('utf-8'))

    def get(self, path: str, **kwargs) -> Any:
        """Make GET request"""
        return self.request_json('GET', path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        """Make POST request"""
        return self.request_json('POST', path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        """Make DELETE request"""
        return self.request_json('DELETE', path, **kwargs)

    def ping(self) -> bool:
        """Check that the daemon answers /_ping"""
        try:
            self.request('GET', '/_ping')
            return True
        except (DockerException, OSError) as e:
            logger.debug(f"Ping failed: {e}")
            return False

    def request_stream(self, method: str, path: str, callbacks: StreamCallbacks,
                       body: Body = None, params: Optional[Dict[str, Any]] = None) -> StreamHandle:
        """
        Make a streaming request

        Headers are read and validated before returning. Body data is then
        delivered to callbacks.on_data from a background reader thread until
        the daemon closes the connection or the handle is cancelled.

        Args:
            method: HTTP method
            path: API path
            callbacks: Stream callbacks
            body: Optional request body
            params: URL query parameters

        Returns:
            StreamHandle for cancellation
        """
        url = build_path(path, params)
        payload = build_request(method, url, encode_body(body),
                                host=self.host_header, keep_alive=True)

        try:
            sock = self._connect()
        except DockerException as e:
            if callbacks.on_error:
                callbacks.on_error(e)
            if callbacks.on_close:
                callbacks.on_close()
            raise

        handle = StreamHandle(sock, callbacks)
        try:
            logger.debug(f"{method} {url} (stream)")
            sock.sendall(payload)
            headers, remainder = self._read_stream_headers(sock)

            if is_chunked(headers):
                process = ChunkedStreamDecoder(callbacks.on_data).feed
            else:
                process = callbacks.on_data

            # Body bytes that arrived together with the headers
            if remainder:
                process(remainder)
        except Exception as e:
            sock.close()
            handle.notify_error(e)
            handle.notify_close()
            raise

        handle.start(lambda: self._read_stream_loop(sock, handle, process),
                     name=f"dockwire-stream {method} {path}")
        return handle

    def _read_stream_headers(self, sock: socket.socket) -> Tuple[Dict[str, str], bytes]:
        """
        Read until the header terminator and validate the status

        Returns:
            Headers and any body bytes read past the terminator
        """
        data = b''
        while True:
            chunk = sock.recv(READ_SIZE)
            if not chunk:
                raise PrematureClose("Connection closed before headers received")
            data += chunk
            header_end = find_header_end(data)
            if header_end != -1:
                break

        status_code, headers = parse_head(data[:header_end])
        remainder = data[header_end + len(HEADER_TERMINATOR):]
        logger.debug(f"Stream status {status_code}")

        if status_code < 200 or status_code >= 300:
            raise HttpError(status_code, _error_body(remainder, headers))

        return headers, remainder

    def _read_stream_loop(self, sock: socket.socket, handle: StreamHandle, process):
        """Reader thread body: feed socket data to process() until EOF or cancel"""
        try:
            while not handle.is_cancelled():
                data = sock.recv(READ_SIZE)
                if not data:
                    logger.debug("Stream ended")
                    break
                process(data)
        except Exception as e:
            if not handle.is_cancelled():
                logger.debug(f"Stream failed: {e}")
                handle.notify_error(e)
        finally:
            if not handle.is_cancelled():
                sock.close()
            handle.notify_close()
