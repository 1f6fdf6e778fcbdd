"""Session model for SiteBoard."""

from dataclasses import dataclass
from typing import Any


@dataclass
class Session:
    """The active credential.

    In token mode ``token`` carries the bearer credential. In cookie mode the
    credential lives in the transport's cookie jar and ``cookie_session`` only
    records that a login happened.
    """

    token: str | None = None
    cookie_session: bool = False

    def is_authenticated(self) -> bool:
        """Check if any credential is present."""
        return bool(self.token) or self.cookie_session

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "cookie_session": self.cookie_session}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(
            token=data.get("token"),
            cookie_session=bool(data.get("cookie_session", False)),
        )
