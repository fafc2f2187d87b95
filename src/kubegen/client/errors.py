"""
Failures raised by the Kubernetes clients. Every operation raises a subclass of [K8sFailure], never a raw transport
or decoding exception.
"""

from dataclasses import dataclass
from typing import Any

from kubegen.client.model import Status


@dataclass(eq=False)
class K8sFailure(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class TransportFailure(K8sFailure):
    """
    The connection to the API server failed or was interrupted.
    """

    cause: BaseException | None = None


@dataclass(eq=False)
class DecodeFailure(K8sFailure):
    """
    A response or event could not be decoded.
    """

    payload: Any = None


@dataclass(eq=False)
class RequestFailure(K8sFailure):
    """
    The API server answered a request with an error status.
    """

    code: int = 0
    status: Status | None = None

    def __str__(self) -> str:
        return f"Kubernetes API request failed with status code {self.code}: {self.message}"


class Unauthorized(RequestFailure):
    """401"""


class Forbidden(RequestFailure):
    """403"""


class NotFound(RequestFailure):
    """404"""


class AlreadyExists(RequestFailure):
    """409, the object to create already exists."""


class Conflict(RequestFailure):
    """409, usually a resourceVersion mismatch on replace."""


class Invalidated(RequestFailure):
    """410, the requested resourceVersion is no longer available."""


class Unprocessable(RequestFailure):
    """422"""


_FAILURES_BY_CODE: dict[int, type[RequestFailure]] = {
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    410: Invalidated,
    422: Unprocessable,
}

_EXPIRED_REASONS = ("Expired", "Gone")


def request_failure(code: int, status: Status | None = None, message: str | None = None) -> RequestFailure:
    """
    Create the [RequestFailure] matching an HTTP status code and the [Status] returned by the API server.
    """

    if status is not None:
        if not code and status.code:
            code = status.code
        message = message or status.message or status.reason
    message = message or f"HTTP {code}"

    failure_type = _FAILURES_BY_CODE.get(code, RequestFailure)
    if code == 409 and status is not None and status.reason == "AlreadyExists":
        failure_type = AlreadyExists
    elif status is not None and status.reason in _EXPIRED_REASONS:
        failure_type = Invalidated
    return failure_type(message, code=code, status=status)


def is_transient(failure: RequestFailure) -> bool:
    """
    Whether a request that failed this way may succeed when retried.
    """

    return failure.code == 429 or failure.code >= 500
