"""
Stream handle and callbacks for long-lived responses
"""

import logging
import socket
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class StreamCallbacks:
    """Callbacks invoked by a streaming request"""

    def __init__(self, on_data: Callable[[bytes], None],
                 on_error: Optional[Callable[[Exception], None]] = None,
                 on_close: Optional[Callable[[], None]] = None):
        self.on_data = on_data
        self.on_error = on_error
        self.on_close = on_close


class StreamHandle:
    """
    Caller-held handle for an active stream

    Owns the cancellation token and the connection until cancel() or the
    natural end of the stream. on_close is delivered exactly once, whichever
    of EOF, error or cancel happens first.
    """

    def __init__(self, sock: socket.socket, callbacks: StreamCallbacks):
        self._sock = sock
        self._callbacks = callbacks
        self._token = threading.Event()
        self._lock = threading.Lock()
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def is_cancelled(self) -> bool:
        return self._token.is_set()

    def cancel(self):
        """Cancel the stream (safe to call more than once)"""
        with self._lock:
            if self._token.is_set():
                return
            self._token.set()

        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self._sock.close()
        except OSError:
            pass
        self.notify_close()

    def notify_error(self, error: Exception):
        """Report a stream failure unless it was caused by cancel()"""
        if self.is_cancelled():
            return
        if self._callbacks.on_error:
            self._callbacks.on_error(error)

    def notify_close(self):
        """Fire on_close once"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._callbacks.on_close:
            self._callbacks.on_close()

    def start(self, target: Callable[[], None], name: str):
        """Run the reader loop in a daemon thread"""
        self._thread = threading.Thread(target=target, name=name, daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the reader thread to finish

        Returns:
            True if the reader is no longer running
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()
