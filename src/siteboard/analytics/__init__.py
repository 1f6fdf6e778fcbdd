"""View-level analytics computed from cached data."""

from .dashboard import DashboardMetrics, aggregate, category_percentages
from .month_grid import (
    DayCell,
    build_month_grid,
    days_in_month,
    first_weekday_offset,
    shift_month,
    status_summary,
    tasks_for_date,
)

__all__ = [
    "DashboardMetrics",
    "aggregate",
    "category_percentages",
    "DayCell",
    "build_month_grid",
    "days_in_month",
    "first_weekday_offset",
    "shift_month",
    "status_summary",
    "tasks_for_date",
]
