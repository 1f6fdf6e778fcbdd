"""Configuration model for SiteBoard."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

ENV_PREFIX = "SITEBOARD"
DEFAULT_TIMEOUT = 10.0


class AuthMode(Enum):
    """How credentials travel to the backend."""

    TOKEN = "token"
    COOKIE = "cookie"


def _env(name: str) -> str | None:
    value = os.environ.get(f"{ENV_PREFIX}_{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass
class ClientConfig:
    """Client deployment configuration."""

    base_url: str | None = None
    auth_mode: AuthMode = AuthMode.TOKEN
    timeout: float = DEFAULT_TIMEOUT
    home: Path = Path.home() / ".siteboard"

    @property
    def session_file(self) -> Path:
        return self.home / "session.json"

    def is_configured(self) -> bool:
        """Check if a backend endpoint is configured."""
        return bool(self.base_url)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build the configuration from ``SITEBOARD_*`` environment variables.

        Raises:
            ValueError: If ``SITEBOARD_AUTH_MODE`` or ``SITEBOARD_TIMEOUT`` is invalid.
        """
        raw_mode = (_env("AUTH_MODE") or "token").lower()
        try:
            auth_mode = AuthMode(raw_mode)
        except ValueError:
            raise ValueError(
                f"Invalid {ENV_PREFIX}_AUTH_MODE '{raw_mode}'. Expected 'token' or 'cookie'."
            ) from None

        raw_timeout = _env("TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"Invalid {ENV_PREFIX}_TIMEOUT '{raw_timeout}'.") from None

        home = _env("HOME")
        return cls(
            base_url=_env("API_BASE_URL"),
            auth_mode=auth_mode,
            timeout=timeout,
            home=Path(home).expanduser() if home else Path.home() / ".siteboard",
        )
