"""Backend access for SiteBoard."""

from .client import (
    AuthenticatedClient,
    AuthPolicy,
    CookieAuthPolicy,
    TokenAuthPolicy,
    policy_for_mode,
)
from .errors import (
    UNKNOWN_ERROR,
    AuthenticationError,
    CustomError,
    ErrorKind,
    NetworkError,
    RequestError,
    ServerError,
    ValidationError,
)
from .resources import WorkspaceApi

__all__ = [
    "AuthenticatedClient",
    "AuthPolicy",
    "CookieAuthPolicy",
    "TokenAuthPolicy",
    "policy_for_mode",
    "UNKNOWN_ERROR",
    "AuthenticationError",
    "CustomError",
    "ErrorKind",
    "NetworkError",
    "RequestError",
    "ServerError",
    "ValidationError",
    "WorkspaceApi",
]
