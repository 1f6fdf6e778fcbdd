"""Authenticated REST client for the SiteBoard backend."""

import asyncio
import logging
from typing import Any, Callable

import httpx

from ..models import AuthMode, ClientConfig
from ..models.config import DEFAULT_TIMEOUT
from ..store import SessionStore
from .errors import (
    ERROR_CLASSES,
    CustomError,
    ErrorKind,
    NetworkError,
    classify_status,
    error_code_from_body,
)

logger = logging.getLogger(__name__)

APP_ROOT = "/"
COOKIE_UNAUTHORIZED_BODY = "Unauthorized"

Navigator = Callable[[str], None]


def log_navigation(url: str) -> None:
    """Default navigator: there is no page to reload, so record the redirect."""
    logger.warning("Session ended; redirecting to %s", url)


class AuthPolicy:
    """How credentials are attached and how an auth failure is recognized."""

    mode: AuthMode

    def prepare_headers(self, session_store: SessionStore) -> dict[str, str]:
        """Headers to add to a request. Read fresh from the store every time."""
        return {}

    def is_auth_failure(self, status: int | None, body: Any) -> bool:
        raise NotImplementedError


class TokenAuthPolicy(AuthPolicy):
    """Bearer token in the ``Authorization`` header; any 401 is an auth failure."""

    mode = AuthMode.TOKEN

    def prepare_headers(self, session_store: SessionStore) -> dict[str, str]:
        token = session_store.get().token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def is_auth_failure(self, status: int | None, body: Any) -> bool:
        return status == 401


class CookieAuthPolicy(AuthPolicy):
    """Credentials ride in the cookie jar.

    A 401 only counts as an auth failure when the body is exactly
    ``"Unauthorized"``; other 401s are ordinary request errors.
    """

    mode = AuthMode.COOKIE

    def is_auth_failure(self, status: int | None, body: Any) -> bool:
        return status == 401 and body == COOKIE_UNAUTHORIZED_BODY


def policy_for_mode(mode: AuthMode) -> AuthPolicy:
    """Get the auth policy for a deployment's authentication mode."""
    if mode == AuthMode.COOKIE:
        return CookieAuthPolicy()
    return TokenAuthPolicy()


def _decode_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text, or None if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class AuthenticatedClient:
    """Async REST client using httpx.

    Every failure is raised as a :class:`CustomError` subclass. A request is
    attempted exactly once, bounded by a single fixed timeout.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        policy: AuthPolicy | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        navigate: Navigator | None = None,
        cookies: dict[str, str] | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend API root (e.g., https://api.example.com/api)
            session_store: Source of the current credential
            policy: Authentication policy; token mode if omitted
            timeout: Per-request timeout in seconds
            navigate: Called with the app root after an auth failure
            cookies: Initial cookie jar contents for cookie mode
        """
        self.base_url = base_url.rstrip("/")
        self.session_store = session_store
        self.policy = policy or TokenAuthPolicy()
        self.timeout = timeout
        self.navigate = navigate or log_navigation
        self.cookies = cookies or {}
        self._auth_failure_listeners: list[Callable[[], Any]] = []
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        session_store: SessionStore,
        navigate: Navigator | None = None,
    ) -> "AuthenticatedClient":
        """Create a client for a configured deployment."""
        if not config.base_url:
            raise ValueError("SITEBOARD_API_BASE_URL is not set.")
        return cls(
            config.base_url,
            session_store,
            policy=policy_for_mode(config.auth_mode),
            timeout=config.timeout,
            navigate=navigate,
        )

    async def __aenter__(self) -> "AuthenticatedClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self.timeout,
            cookies=self.cookies,
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            CustomError: On any failure, with ``error_code`` taken from the
                response body's ``errorCode`` or ``UNKNOWN_ERROR``.
        """
        if not self._client:
            raise NetworkError(
                "Client not initialized. Use async with context.",
                error_code="CLIENT_NOT_OPEN",
                method=method,
                url=path,
            )

        headers = self.policy.prepare_headers(self.session_store)
        logger.debug("%s %s params=%s", method, path, params)

        try:
            # httpx applies the timeout per phase; wait_for caps the whole attempt.
            response = await asyncio.wait_for(
                self._client.request(
                    method, path, json=body, params=params, headers=headers
                ),
                self.timeout,
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            raise self._normalize(method, path, None, None, e) from e

        if response.is_error:
            raise self._normalize(
                method, path, response.status_code, _decode_body(response), None
            )

        data = _decode_body(response)
        return {} if data is None else data

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.send("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.send("POST", path, body=body)

    async def delete(self, path: str) -> Any:
        return await self.send("DELETE", path)

    def _normalize(
        self,
        method: str,
        path: str,
        status: int | None,
        body: Any,
        exc: Exception | None,
    ) -> CustomError:
        """Turn a failed request into the CustomError to raise."""
        # No response (or an empty one) reads as an empty object.
        if body is None:
            body = {}
        data = body if isinstance(body, dict) else {}

        if self.policy.is_auth_failure(status, body):
            kind = ErrorKind.AUTHENTICATION
            self._handle_auth_failure()
        else:
            kind = classify_status(status)

        if exc is not None:
            message = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
        else:
            message = data.get("message") or f"Request failed with status code {status}"

        error = ERROR_CLASSES[kind](
            message,
            error_code=error_code_from_body(body),
            status=status,
            method=method,
            url=path,
            body=body,
            cause=type(exc).__name__ if exc is not None else None,
        )
        logger.warning(
            "%s %s failed: %s (status=%s, errorCode=%s)",
            method,
            path,
            kind.value,
            status,
            error.error_code,
        )
        return error

    def on_auth_failure(self, listener: Callable[[], Any]) -> None:
        """Register a callback run when the session ends, before navigation.

        Used to drop per-user state such as cached query results.
        """
        self._auth_failure_listeners.append(listener)

    def _handle_auth_failure(self) -> None:
        """Drop the credential and user state, then send the user back to the app root."""
        self.session_store.clear()
        if self._client is not None:
            self._client.cookies.clear()
        for listener in list(self._auth_failure_listeners):
            listener()
        self.navigate(APP_ROOT)
