"""Typed wrappers for the workspace REST endpoints."""

from typing import Any
from urllib.parse import quote

from .client import AuthenticatedClient
from .errors import UNKNOWN_ERROR, RequestError


def _path(*segments: str) -> str:
    """Join path segments, percent-encoding each one (``/`` included)."""
    return "/" + "/".join(quote(str(segment), safe="") for segment in segments)


def _document(method: str, path: str, data: Any) -> dict[str, Any]:
    """Ensure a response decoded to a JSON object."""
    if not isinstance(data, dict):
        raise RequestError(
            f"Expected a JSON object from {method} {path}",
            error_code=UNKNOWN_ERROR,
            method=method,
            url=path,
            body=data,
        )
    return data


class WorkspaceApi:
    """One method per backend path. Each returns the decoded JSON document.

    A response that is not a JSON object raises :class:`RequestError`.
    """

    def __init__(self, client: AuthenticatedClient):
        self.client = client

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return _document("GET", path, await self.client.get(path, params=params))

    async def _post(self, path: str, body: Any) -> dict[str, Any]:
        return _document("POST", path, await self.client.post(path, body))

    async def _delete(self, path: str) -> dict[str, Any]:
        return _document("DELETE", path, await self.client.delete(path))

    # --- Tasks ---

    async def list_tasks(
        self, workspace_id: str, page_size: int | None = None, **filters: Any
    ) -> dict[str, Any]:
        """Fetch tasks of a workspace.

        Args:
            workspace_id: Workspace identifier
            page_size: Optional page size (the views ask for 1000 to get everything)
            **filters: Extra query parameters passed through unchanged

        Returns:
            ``{"tasks": [...]}``
        """
        params: dict[str, Any] = {}
        if page_size is not None:
            params["pageSize"] = page_size
        params.update({k: v for k, v in filters.items() if v is not None})
        return await self._get(
            _path("task", "workspace", workspace_id, "all"), params=params or None
        )

    # --- Expenses ---

    async def list_expenses(
        self, workspace_id: str, month: int | None = None, year: int | None = None
    ) -> dict[str, Any]:
        """Fetch expenses and budget analytics, optionally for one month (1-12)."""
        params: dict[str, Any] = {}
        if month is not None:
            params["month"] = month
        if year is not None:
            params["year"] = year
        return await self._get(
            _path("expense", "workspace", workspace_id, "all"), params=params or None
        )

    async def create_expense(
        self, workspace_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._post(_path("expense", "workspace", workspace_id, "create"), payload)

    async def delete_expense(self, workspace_id: str, expense_id: str) -> dict[str, Any]:
        return await self._delete(
            _path("expense", expense_id, "workspace", workspace_id, "delete")
        )

    # --- Chat ---

    async def list_chat_rooms(self, workspace_id: str) -> dict[str, Any]:
        return await self._get(_path("chat", "workspace", workspace_id, "all"))

    async def create_chat_room(
        self, workspace_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a chat room. The response carries it under ``chatRoom``."""
        return await self._post(_path("chat", "workspace", workspace_id, "create"), payload)

    async def list_messages(self, workspace_id: str, room_id: str) -> dict[str, Any]:
        return await self._get(
            _path("chat", "room", room_id, "workspace", workspace_id, "messages")
        )

    async def send_message(
        self, workspace_id: str, room_id: str, content: str
    ) -> dict[str, Any]:
        return await self._post(
            _path("chat", "room", room_id, "workspace", workspace_id, "message"),
            {"content": content},
        )

    # --- Site updates ---

    async def list_site_updates(self, workspace_id: str) -> dict[str, Any]:
        return await self._get(_path("site-update", "workspace", workspace_id, "all"))

    async def create_site_update(
        self, workspace_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._post(
            _path("site-update", "workspace", workspace_id, "create"), payload
        )
