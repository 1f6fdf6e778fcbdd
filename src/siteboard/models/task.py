"""Task model for SiteBoard."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TaskStatus(Enum):
    """Task status values."""

    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


OPEN_STATUSES = frozenset(
    {TaskStatus.BACKLOG, TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW}
)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a backend ISO-8601 timestamp.

    Naive values are taken to be UTC so every parsed timestamp can be compared
    against every other one.
    """
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def document_id(data: dict[str, Any]) -> str:
    """Return the identifier of a backend document (``_id`` or ``id``)."""
    return str(data.get("_id") or data.get("id") or "")


@dataclass
class Task:
    """A workspace task. Owned by the backend; the client only reads it."""

    id: str
    title: str
    status: TaskStatus
    task_code: str = ""
    due_date: datetime | None = None
    description: str | None = None
    priority: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create a Task from a backend document."""
        return cls(
            id=document_id(data),
            title=data.get("title", ""),
            status=TaskStatus(data["status"]),
            task_code=data.get("taskCode", ""),
            due_date=parse_timestamp(data.get("dueDate")),
            description=data.get("description"),
            priority=data.get("priority"),
        )

    def format_display(self) -> str:
        """Format task for display."""
        status_icons = {
            TaskStatus.BACKLOG: "[ ]",
            TaskStatus.TODO: "[ ]",
            TaskStatus.IN_PROGRESS: "[>]",
            TaskStatus.IN_REVIEW: "[?]",
            TaskStatus.DONE: "[x]",
        }
        icon = status_icons.get(self.status, "[ ]")
        result = f"{icon} {self.task_code or self.id}: {self.title} ({self.status.value})"
        if self.due_date:
            result += f"\n    Due: {self.due_date.date().isoformat()}"
        return result
