"""Site update model for SiteBoard."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .task import document_id, parse_timestamp


@dataclass
class SiteUpdate:
    """Completion evidence for a task: notes plus photo references.

    Photos are data-URL previews today; they are kept as opaque strings so
    stored URLs can replace them without a model change.
    """

    id: str
    task_id: str
    completion_notes: str
    photos: list[str] = field(default_factory=list)
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SiteUpdate":
        task = data.get("taskId") or data.get("task")
        if isinstance(task, dict):
            task = document_id(task)
        return cls(
            id=document_id(data),
            task_id=str(task or ""),
            completion_notes=data.get("completionNotes", ""),
            photos=list(data.get("photos") or []),
            created_at=parse_timestamp(data.get("createdAt")),
        )
