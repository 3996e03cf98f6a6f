"""
Docker API Exceptions
"""

import json
from contextlib import contextmanager
from typing import Callable, Optional


class DockerException(Exception):
    """Base Docker exception"""
    pass


class ConnectionFailure(DockerException):
    """Socket to the Docker daemon could not be opened"""

    def __init__(self, target: str, reason: str):
        super().__init__(f"Cannot connect to Docker at {target}: {reason}")
        self.target = target
        self.reason = reason


class PrematureClose(DockerException):
    """Connection closed before the response headers were complete"""
    pass


class MalformedResponse(DockerException):
    """Response bytes do not form a parsable HTTP response"""
    pass


class HttpError(DockerException):
    """Daemon answered with a status outside 2xx"""

    def __init__(self, status_code: int, body: str = ''):
        super().__init__(f"HTTP error {status_code}: {body}")
        self.status_code = status_code
        self.body = body

    @property
    def explanation(self) -> str:
        """Error message reported by the daemon, or the raw body"""
        try:
            data = json.loads(self.body)
        except ValueError:
            return self.body
        if isinstance(data, dict):
            return data.get('message', self.body)
        return self.body


class OperationFailure(DockerException):
    """A client operation failed; wraps the underlying cause"""

    def __init__(self, verb: str, resource: str, resource_id: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        target = f"{resource} {resource_id}" if resource_id else resource
        super().__init__(f"Failed to {verb} {target}: {cause}")
        self.verb = verb
        self.resource = resource
        self.resource_id = resource_id
        self.cause = cause


@contextmanager
def operation(verb: str, resource: str, resource_id: Optional[str] = None):
    """Re-raise transport, codec and JSON failures as OperationFailure"""
    try:
        yield
    except OperationFailure:
        raise
    except (DockerException, OSError, ValueError) as e:
        raise OperationFailure(verb, resource, resource_id, e) from e


def wrap_stream_error(callback: Optional[Callable[[Exception], None]], verb: str,
                      resource: str, resource_id: Optional[str] = None):
    """Wrap an on_error callback so it receives OperationFailure"""
    if callback is None:
        return None

    def on_error(error: Exception):
        if isinstance(error, OperationFailure):
            callback(error)
        else:
            callback(OperationFailure(verb, resource, resource_id, error))

    return on_error
