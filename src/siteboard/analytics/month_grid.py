"""Calendar month grid with tasks bucketed by due date."""

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from ..models import Task, TaskStatus

MAX_TASKS_PER_CELL = 3


@dataclass
class DayCell:
    """One day of the month grid."""

    day: int
    tasks: list[Task] = field(default_factory=list)
    overflow: int = 0
    is_today: bool = False

    @property
    def task_count(self) -> int:
        return len(self.tasks) + self.overflow


def _check_month(month: int) -> None:
    if not 0 <= month <= 11:
        raise ValueError(f"month must be 0-11 (0 = January), got {month}")


def days_in_month(year: int, month: int) -> int:
    """Number of days in a zero-based month."""
    _check_month(month)
    return calendar.monthrange(year, month + 1)[1]


def first_weekday_offset(year: int, month: int) -> int:
    """Weekday of the 1st with Sunday = 0, i.e. blank cells before it."""
    _check_month(month)
    # calendar.weekday counts from Monday = 0.
    return (calendar.weekday(year, month + 1, 1) + 1) % 7


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move a zero-based (year, month) by ``delta`` months."""
    index = year * 12 + month + delta
    return index // 12, index % 12


def tasks_for_date(tasks: Iterable[Task], day: date) -> list[Task]:
    """Tasks due on a calendar date; time of day is ignored."""
    return [
        task
        for task in tasks
        if task.due_date is not None and task.due_date.date() == day
    ]


def build_month_grid(
    year: int,
    month: int,
    tasks: Iterable[Task],
    today: date | None = None,
) -> list[DayCell | None]:
    """Lay out a month as calendar cells.

    The grid starts with one ``None`` per weekday before the 1st, followed by
    a cell for each day. Trailing cells are not padded to a full week.

    Args:
        year: Four-digit year
        month: Zero-based month (0 = January)
        tasks: Tasks to bucket; ones without a due date are skipped
        today: Date flagged as ``is_today`` (defaults to the current date)

    Returns:
        List of length ``first_weekday_offset + days_in_month``
    """
    today = today or date.today()
    by_day: dict[int, list[Task]] = {}
    for task in tasks:
        if task.due_date is None:
            continue
        due = task.due_date.date()
        if due.year == year and due.month == month + 1:
            by_day.setdefault(due.day, []).append(task)

    grid: list[DayCell | None] = [None] * first_weekday_offset(year, month)
    for day in range(1, days_in_month(year, month) + 1):
        day_tasks = by_day.get(day, [])
        grid.append(
            DayCell(
                day=day,
                tasks=day_tasks[:MAX_TASKS_PER_CELL],
                overflow=max(len(day_tasks) - MAX_TASKS_PER_CELL, 0),
                is_today=today == date(year, month + 1, day),
            )
        )
    return grid


def status_summary(tasks: Iterable[Task]) -> dict[TaskStatus, int]:
    """Counts shown under the calendar: to do, in progress and done."""
    summary = {TaskStatus.TODO: 0, TaskStatus.IN_PROGRESS: 0, TaskStatus.DONE: 0}
    for task in tasks:
        if task.status in summary:
            summary[task.status] += 1
    return summary
