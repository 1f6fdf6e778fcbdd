"""Session stores holding the active credential."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from ..models import Session

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Get/set/clear access to the current session."""

    def get(self) -> Session: ...

    def set(self, session: Session) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    """Session store that lives only for the current process."""

    def __init__(self, session: Session | None = None):
        self._session = session or Session()

    def get(self) -> Session:
        return self._session

    def set(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = Session()


class FileSessionStore:
    """Session store persisted to a JSON file.

    The file is read once at construction, so a session saved by an earlier
    process is picked up at start. Writes go to disk immediately.
    """

    def __init__(self, path: str | Path):
        """Initialize the store.

        Args:
            path: Location of the session JSON file.
        """
        self.path = Path(path)
        self._session = self._load()

    def _load(self) -> Session:
        """Load the persisted session, or an empty one if none exists.

        An unreadable or malformed file is treated as no session, so logging
        out or in again replaces it.
        """
        if not self.path.exists():
            return Session()
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return Session()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed session file %s", self.path)
            return Session()
        return Session.from_dict(data)

    def _write_json(self, data: dict[str, Any]) -> None:
        """Write data to the session file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".tmp_", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def get(self) -> Session:
        return self._session

    def set(self, session: Session) -> None:
        self._session = session
        self._write_json(session.to_dict())

    def clear(self) -> None:
        self._session = Session()
        if self.path.exists():
            self.path.unlink()
            logger.debug("Removed session file %s", self.path)
