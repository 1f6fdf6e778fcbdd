"""Dashboard metrics derived from cached tasks and expense analytics."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from ..models import ExpenseAnalytics, Task, TaskStatus, OPEN_STATUSES

UPCOMING_DEADLINES_LIMIT = 5


def round_half_up(value: float) -> int:
    """Round like the dashboard always has: halves go up, not to even."""
    return math.floor(value + 0.5)


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def category_percentages(
    distribution: dict[str, float], budget_used: float
) -> dict[str, float]:
    """Share of the used budget per category, in percent.

    A zero budget yields 0% for every category instead of dividing by zero.
    """
    if not budget_used:
        return {category: 0.0 for category in distribution}
    return {
        category: amount / budget_used * 100
        for category, amount in distribution.items()
    }


@dataclass
class DashboardMetrics:
    """Everything the dashboard cards show."""

    total_count: int = 0
    pending_count: int = 0
    completed_count: int = 0
    in_progress_count: int = 0
    todo_count: int = 0
    overdue_count: int = 0
    completion_percentage: int = 0
    budget_used: float = 0.0
    category_distribution: dict[str, float] = field(default_factory=dict)
    category_percentages: dict[str, float] = field(default_factory=dict)
    upcoming_deadlines: list[Task] = field(default_factory=list)
    status_counts: dict[TaskStatus, int] = field(default_factory=dict)

    @property
    def has_expenses(self) -> bool:
        return bool(self.category_distribution)


def aggregate(
    tasks: Iterable[Task],
    expense_analytics: ExpenseAnalytics | None = None,
    now: datetime | None = None,
) -> DashboardMetrics:
    """Compute dashboard metrics without touching the network.

    Args:
        tasks: Workspace tasks
        expense_analytics: Backend budget figures; zeros when missing
        now: Reference time for overdue checks (defaults to current UTC time)

    Returns:
        DashboardMetrics for the workspace
    """
    tasks = list(tasks)
    analytics = expense_analytics or ExpenseAnalytics()
    now = _as_aware(now or datetime.now(timezone.utc))

    status_counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        status_counts[task.status] += 1

    total = len(tasks)
    completed = status_counts[TaskStatus.DONE]
    pending = sum(status_counts[status] for status in OPEN_STATUSES)
    overdue = sum(
        1
        for task in tasks
        if task.due_date is not None
        and not task.is_done
        and _as_aware(task.due_date) < now
    )

    upcoming = sorted(
        (task for task in tasks if task.due_date is not None and not task.is_done),
        key=lambda task: _as_aware(task.due_date),
    )[:UPCOMING_DEADLINES_LIMIT]

    return DashboardMetrics(
        total_count=total,
        pending_count=pending,
        completed_count=completed,
        in_progress_count=status_counts[TaskStatus.IN_PROGRESS],
        todo_count=status_counts[TaskStatus.TODO],
        overdue_count=overdue,
        completion_percentage=round_half_up(completed / total * 100) if total else 0,
        budget_used=analytics.used_budget,
        category_distribution=analytics.category_distribution,
        category_percentages=category_percentages(
            analytics.category_distribution, analytics.used_budget
        ),
        upcoming_deadlines=upcoming,
        status_counts=status_counts,
    )
