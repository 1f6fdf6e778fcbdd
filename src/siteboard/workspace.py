"""Per-workspace queries and mutations used by the views."""

import asyncio
import base64
import logging
import mimetypes
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from .analytics import DashboardMetrics, DayCell, aggregate, build_month_grid
from .api import ValidationError, WorkspaceApi
from .cache import MutationCoordinator, QueryCache, QueryKey, Subscription
from .models import (
    ChatRoom,
    ChatRoomType,
    ExpenseCategory,
    ExpenseReport,
    ExpenseStatus,
    Message,
    SiteUpdate,
    Task,
)

logger = logging.getLogger(__name__)

FULL_PAGE = 1000
MAX_SITE_UPDATE_PHOTOS = 5

# Cache resource names, one per view query.
ALL_TASKS = "allTasks"
TASKS_ANALYTICS = "tasks-analytics"
CALENDAR_TASKS = "calendar-tasks"
COMPLETED_TASKS = "completed-tasks"
EXPENSES = "expenses"
EXPENSES_ANALYTICS = "expenses-analytics"
CHAT_ROOMS = "chat-rooms"
CHAT_MESSAGES = "chat-messages"
SITE_UPDATES = "site-updates"


def encode_photo(path: str | Path) -> str:
    """Read a local image into a data-URL preview."""
    path = Path(path)
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class WorkspaceQueries:
    """Binds the cache, the mutation coordinator and the API to one workspace.

    Every query is disabled (returns None without a request) until a
    workspace id is known. The cache is emptied when the client's session
    ends on an authentication failure.
    """

    def __init__(
        self,
        api: WorkspaceApi,
        cache: QueryCache,
        workspace_id: str | None,
        mutations: MutationCoordinator | None = None,
    ):
        self.api = api
        self.cache = cache
        self.workspace_id = workspace_id
        self.mutations = mutations or MutationCoordinator(cache)
        # Snapshots belong to the session that fetched them.
        api.client.on_auth_failure(cache.clear)

    @property
    def enabled(self) -> bool:
        return bool(self.workspace_id)

    def key(self, resource: str, **params: Any) -> QueryKey:
        """Cache key for a resource in this workspace."""
        return QueryKey.of(resource, self.workspace_id, **params)

    # --- Loaders ---

    async def _load_tasks(self, page_size: int | None = None) -> list[Task]:
        data = await self.api.list_tasks(self.workspace_id, page_size=page_size)
        return [Task.from_dict(t) for t in data.get("tasks", [])]

    async def _load_expenses(
        self, month: int | None = None, year: int | None = None
    ) -> ExpenseReport:
        data = await self.api.list_expenses(self.workspace_id, month=month, year=year)
        return ExpenseReport.from_dict(data)

    async def _load_chat_rooms(self) -> list[ChatRoom]:
        data = await self.api.list_chat_rooms(self.workspace_id)
        return [ChatRoom.from_dict(r) for r in data.get("chatRooms", [])]

    async def _load_messages(self, room_id: str) -> list[Message]:
        data = await self.api.list_messages(self.workspace_id, room_id)
        return [Message.from_dict(m) for m in data.get("messages", [])]

    async def _load_site_updates(self) -> list[SiteUpdate]:
        data = await self.api.list_site_updates(self.workspace_id)
        return [SiteUpdate.from_dict(u) for u in data.get("siteUpdates", [])]

    # --- Queries ---

    async def all_tasks(self) -> list[Task] | None:
        return await self.cache.resolve(
            self.key(ALL_TASKS), self._load_tasks, enabled=self.enabled
        )

    async def tasks_analytics(self) -> list[Task] | None:
        return await self.cache.resolve(
            self.key(TASKS_ANALYTICS, pageSize=FULL_PAGE),
            lambda: self._load_tasks(FULL_PAGE),
            enabled=self.enabled,
        )

    async def calendar_tasks(self) -> list[Task] | None:
        return await self.cache.resolve(
            self.key(CALENDAR_TASKS, pageSize=FULL_PAGE),
            lambda: self._load_tasks(FULL_PAGE),
            enabled=self.enabled,
        )

    async def completed_tasks(self) -> list[Task] | None:
        """Tasks offered when filing a site update (all of them, not only DONE)."""
        return await self.cache.resolve(
            self.key(COMPLETED_TASKS, pageSize=FULL_PAGE),
            lambda: self._load_tasks(FULL_PAGE),
            enabled=self.enabled,
        )

    async def expenses(self, month: int, year: int) -> ExpenseReport | None:
        """Expenses for one month (1-12) with that month's analytics."""
        return await self.cache.resolve(
            self.key(EXPENSES, month=month, year=year),
            lambda: self._load_expenses(month, year),
            enabled=self.enabled,
        )

    async def expenses_analytics(self) -> ExpenseReport | None:
        return await self.cache.resolve(
            self.key(EXPENSES_ANALYTICS), self._load_expenses, enabled=self.enabled
        )

    async def chat_rooms(self) -> list[ChatRoom] | None:
        return await self.cache.resolve(
            self.key(CHAT_ROOMS), self._load_chat_rooms, enabled=self.enabled
        )

    async def chat_messages(self, room_id: str | None) -> list[Message] | None:
        return await self.cache.resolve(
            self.key(CHAT_MESSAGES, room=room_id),
            lambda: self._load_messages(room_id),
            enabled=self.enabled and bool(room_id),
        )

    def watch_messages(
        self, room_id: str, listener: Callable[[list[Message]], None]
    ) -> Subscription:
        """Subscribe a chat view to a room; new messages refetch it eagerly."""
        return self.cache.subscribe(
            self.key(CHAT_MESSAGES, room=room_id),
            lambda: self._load_messages(room_id),
            listener,
        )

    async def site_updates(self) -> list[SiteUpdate] | None:
        return await self.cache.resolve(
            self.key(SITE_UPDATES), self._load_site_updates, enabled=self.enabled
        )

    # --- Derived views ---

    async def dashboard(self, now: datetime | None = None) -> DashboardMetrics:
        """Dashboard metrics from the tasks and expense analytics queries."""
        tasks, report = await asyncio.gather(
            self.tasks_analytics(), self.expenses_analytics()
        )
        analytics = report.analytics if report is not None else None
        return aggregate(tasks or [], analytics, now=now)

    async def calendar(
        self, year: int, month: int, today: date | None = None
    ) -> list[DayCell | None]:
        """Month grid (zero-based month) of the calendar tasks."""
        tasks = await self.calendar_tasks()
        return build_month_grid(year, month, tasks or [], today=today)

    # --- Mutations ---

    def _require_workspace(self) -> str:
        if not self.workspace_id:
            raise ValidationError("No workspace selected")
        return self.workspace_id

    async def create_expense(
        self,
        name: str,
        amount: float,
        category: ExpenseCategory | str = ExpenseCategory.MATERIALS,
        expense_date: date | str | None = None,
        status: ExpenseStatus | str = ExpenseStatus.OUTSTANDING,
        description: str = "",
    ) -> dict[str, Any]:
        """Log an expense and refresh every expense view of the workspace."""
        workspace_id = self._require_workspace()
        if not name or not name.strip():
            raise ValidationError("Expense name is required")
        try:
            amount = float(amount)
            category = ExpenseCategory(category)
            status = ExpenseStatus(status)
        except (TypeError, ValueError) as e:
            raise ValidationError(str(e)) from e
        if amount < 0:
            raise ValidationError(f"Expense amount must be non-negative, got {amount}")
        expense_date = expense_date or date.today()
        if isinstance(expense_date, date):
            expense_date = expense_date.isoformat()

        payload = {
            "name": name,
            "description": description,
            "amount": amount,
            "category": category.value,
            "date": expense_date,
            "status": status.value,
        }
        logger.debug("Creating expense %r in workspace %s", name, workspace_id)
        return await self.mutations.execute(
            lambda: self.api.create_expense(workspace_id, payload),
            invalidates=[self.key(EXPENSES), self.key(EXPENSES_ANALYTICS)],
        )

    async def delete_expense(self, expense_id: str) -> dict[str, Any]:
        workspace_id = self._require_workspace()
        if not expense_id:
            raise ValidationError("Expense id is required")
        return await self.mutations.execute(
            lambda: self.api.delete_expense(workspace_id, expense_id),
            invalidates=[self.key(EXPENSES), self.key(EXPENSES_ANALYTICS)],
        )

    async def create_chat_room(
        self,
        name: str,
        description: str = "",
        icon: str = "💬",
        room_type: ChatRoomType | str = ChatRoomType.CHANNEL,
        on_created: Callable[[ChatRoom], Any] | None = None,
    ) -> dict[str, Any]:
        """Create a chat room.

        ``on_created`` receives the room from the response, so a view can
        select it before the room list has refetched.
        """
        workspace_id = self._require_workspace()
        if not name or not name.strip():
            raise ValidationError("Chat room name is required")
        try:
            room_type = ChatRoomType(room_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        def select_created(result: Any) -> Any:
            room = result.get("chatRoom") if isinstance(result, dict) else None
            if room and on_created is not None:
                return on_created(ChatRoom.from_dict(room))
            return None

        payload = {
            "name": name,
            "description": description,
            "icon": icon,
            "type": room_type.value,
        }
        return await self.mutations.execute(
            lambda: self.api.create_chat_room(workspace_id, payload),
            invalidates=[self.key(CHAT_ROOMS)],
            on_result=select_created,
        )

    async def send_message(self, room_id: str, content: str) -> dict[str, Any]:
        workspace_id = self._require_workspace()
        if not room_id:
            raise ValidationError("No chat room selected")
        if not content or not content.strip():
            raise ValidationError("Message is empty")
        return await self.mutations.execute(
            lambda: self.api.send_message(workspace_id, room_id, content),
            invalidates=[self.key(CHAT_MESSAGES, room=room_id)],
        )

    async def create_site_update(
        self, task_id: str, completion_notes: str, photos: list[str] | None = None
    ) -> dict[str, Any]:
        """File completion notes and photo previews against a task."""
        workspace_id = self._require_workspace()
        photos = list(photos or [])
        if not task_id or not completion_notes:
            raise ValidationError("Please select a task and add completion notes")
        if len(photos) > MAX_SITE_UPDATE_PHOTOS:
            raise ValidationError(f"Maximum {MAX_SITE_UPDATE_PHOTOS} photos allowed")

        payload = {
            "taskId": task_id,
            "completionNotes": completion_notes,
            "photos": photos,
        }
        logger.debug("Filing site update for task %s with %d photo(s)", task_id, len(photos))
        return await self.mutations.execute(
            lambda: self.api.create_site_update(workspace_id, payload),
            invalidates=[self.key(SITE_UPDATES)],
        )
