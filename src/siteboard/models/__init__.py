"""Data models for SiteBoard."""

from .task import Task, TaskStatus, OPEN_STATUSES
from .expense import (
    Expense,
    ExpenseAnalytics,
    ExpenseCategory,
    ExpenseReport,
    ExpenseStatus,
)
from .chat import ChatRoom, ChatRoomType, Message
from .site_update import SiteUpdate
from .session import Session
from .config import AuthMode, ClientConfig

__all__ = [
    "Task",
    "TaskStatus",
    "OPEN_STATUSES",
    "Expense",
    "ExpenseAnalytics",
    "ExpenseCategory",
    "ExpenseReport",
    "ExpenseStatus",
    "ChatRoom",
    "ChatRoomType",
    "Message",
    "SiteUpdate",
    "Session",
    "AuthMode",
    "ClientConfig",
]
