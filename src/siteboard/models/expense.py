"""Expense models for SiteBoard."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from .task import document_id


class ExpenseCategory(Enum):
    """Expense categories accepted by the backend."""

    MATERIALS = "materials"
    LABOR = "labor"
    EQUIPMENT = "equipment"
    TRANSPORTATION = "transportation"
    PERMITS = "permits"
    UTILITIES = "utilities"
    OTHER = "other"


class ExpenseStatus(Enum):
    """Payment status of an expense."""

    OUTSTANDING = "outstanding"
    PAID = "paid"


def parse_date(value: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` date, ignoring any time component."""
    if not value:
        return None
    return date.fromisoformat(value[:10])


@dataclass
class Expense:
    """A single logged expense."""

    id: str
    name: str
    category: ExpenseCategory
    amount: float
    date: date | None
    status: ExpenseStatus = ExpenseStatus.OUTSTANDING
    description: str | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Expense amount must be non-negative, got {self.amount}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expense":
        """Create an Expense from a backend document."""
        return cls(
            id=document_id(data),
            name=data.get("name", ""),
            category=ExpenseCategory(data.get("category", "other")),
            amount=float(data.get("amount", 0)),
            date=parse_date(data.get("date")),
            status=ExpenseStatus(data.get("status", "outstanding")),
            description=data.get("description"),
        )


@dataclass
class ExpenseAnalytics:
    """Backend-computed budget figures for a workspace."""

    used_budget: float = 0.0
    remaining_budget: float = 0.0
    outstanding_amount: float = 0.0
    category_distribution: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ExpenseAnalytics":
        """Create analytics from a backend document; missing data means zeros."""
        data = data or {}
        return cls(
            used_budget=float(data.get("usedBudget") or 0),
            remaining_budget=float(data.get("remainingBudget") or 0),
            outstanding_amount=float(data.get("outstandingAmount") or 0),
            category_distribution={
                category: float(amount or 0)
                for category, amount in (data.get("categoryDistribution") or {}).items()
            },
        )


@dataclass
class ExpenseReport:
    """One page of expenses together with its analytics."""

    expenses: list[Expense] = field(default_factory=list)
    analytics: ExpenseAnalytics = field(default_factory=ExpenseAnalytics)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExpenseReport":
        return cls(
            expenses=[Expense.from_dict(e) for e in data.get("expenses", [])],
            analytics=ExpenseAnalytics.from_dict(data.get("analytics")),
        )
