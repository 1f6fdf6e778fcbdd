"""Chat models for SiteBoard."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .task import document_id, parse_timestamp


class ChatRoomType(Enum):
    """Kind of chat room."""

    CHANNEL = "channel"
    PROJECT = "project"


@dataclass
class ChatRoom:
    """A workspace chat room."""

    id: str
    name: str
    description: str = ""
    icon: str = "💬"
    type: ChatRoomType = ChatRoomType.CHANNEL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatRoom":
        return cls(
            id=document_id(data),
            name=data.get("name", ""),
            description=data.get("description") or "",
            icon=data.get("icon") or "💬",
            type=ChatRoomType(data.get("type", "channel")),
        )


@dataclass
class Message:
    """A message posted to a chat room."""

    id: str
    content: str
    sender: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        sender = data.get("sender")
        if isinstance(sender, dict):
            sender = sender.get("name")
        return cls(
            id=document_id(data),
            content=data.get("content", ""),
            sender=sender,
            created_at=parse_timestamp(data.get("createdAt")),
        )

    def format_display(self) -> str:
        """Format message for display."""
        time_str = self.created_at.strftime("%H:%M") if self.created_at else "--:--"
        return f"[{time_str}] {self.sender or 'unknown'}: {self.content}"
