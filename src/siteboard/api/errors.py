"""Normalized error types raised by the SiteBoard client."""

from enum import Enum
from typing import Any

UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorKind(Enum):
    """Failure taxonomy."""

    NETWORK = "NetworkError"
    AUTHENTICATION = "AuthenticationError"
    REQUEST = "RequestError"
    SERVER = "ServerError"


class CustomError(Exception):
    """Base exception for every failed backend call.

    ``details`` keeps the fields of the original failure (method, url, status,
    response body, underlying exception) so nothing is lost in normalization.
    """

    kind: ErrorKind = ErrorKind.REQUEST

    def __init__(
        self,
        message: str,
        *,
        error_code: str = UNKNOWN_ERROR,
        status: int | None = None,
        **details: Any,
    ):
        super().__init__(message)
        self.error_code = error_code or UNKNOWN_ERROR
        self.status = status
        self.original_message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Flatten the error into the client-visible error shape."""
        return {
            **self.details,
            "kind": self.kind.value,
            "status": self.status,
            "message": self.original_message,
            "errorCode": self.error_code,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.original_message!r}, "
            f"error_code={self.error_code!r}, status={self.status!r})"
        )


class NetworkError(CustomError):
    """No response was obtained (timeout, DNS, connection refused)."""

    kind = ErrorKind.NETWORK


class AuthenticationError(CustomError):
    """The backend rejected the session credential."""

    kind = ErrorKind.AUTHENTICATION


class RequestError(CustomError):
    """A 4xx response the caller can correct."""

    kind = ErrorKind.REQUEST


class ServerError(CustomError):
    """A 5xx response."""

    kind = ErrorKind.SERVER


ERROR_CLASSES: dict[ErrorKind, type[CustomError]] = {
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.REQUEST: RequestError,
    ErrorKind.SERVER: ServerError,
}


def classify_status(status: int | None) -> ErrorKind:
    """Map an HTTP status (or its absence) to an error kind."""
    if status is None:
        return ErrorKind.NETWORK
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.REQUEST


def error_code_from_body(body: Any) -> str:
    """Read ``errorCode`` from a response body, falling back to the sentinel."""
    data = body if isinstance(body, dict) else {}
    code = data.get("errorCode")
    if code is None or code == "":
        return UNKNOWN_ERROR
    return str(code)


class ValidationError(ValueError):
    """Input rejected locally before any request was sent."""

    pass
