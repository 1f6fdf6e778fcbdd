"""Session store implementations."""

from .session_store import FileSessionStore, MemorySessionStore, SessionStore

__all__ = ["FileSessionStore", "MemorySessionStore", "SessionStore"]
