"""SiteBoard CLI interface."""

import argparse
import asyncio
import calendar
import json
import logging
import sys
from datetime import date
from typing import Any, Awaitable, Callable

from .analytics import DashboardMetrics, DayCell, status_summary
from .api import AuthenticatedClient, CustomError, WorkspaceApi
from .cache import QueryCache
from .logging_setup import setup_logging
from .models import AuthMode, ClientConfig, ExpenseCategory, ExpenseStatus, Session, TaskStatus
from .store import FileSessionStore
from .workspace import WorkspaceQueries, encode_photo

WorkspaceAction = Callable[[WorkspaceQueries], Awaitable[Any]]

WEEKDAY_HEADER = "Sun Mon Tue Wed Thu Fri Sat"


def get_config() -> ClientConfig:
    """Load configuration from the environment."""
    return ClientConfig.from_env()


def format_dashboard(metrics: DashboardMetrics) -> str:
    """Render dashboard metrics as plain text."""
    lines = [
        "## Dashboard",
        "",
        f"Pending tasks:    {metrics.pending_count}",
        f"Completed tasks:  {metrics.completed_count}",
        f"Overdue tasks:    {metrics.overdue_count}",
        f"Completion:       {metrics.completion_percentage}%",
        f"Budget used:      {metrics.budget_used:,.2f}",
        "",
        "### Tasks Progress",
        f"To Do: {metrics.todo_count}  In Progress: {metrics.in_progress_count}  "
        f"Completed: {metrics.completed_count}",
        "",
        "### Expense Distribution",
    ]
    if metrics.has_expenses:
        for category, amount in metrics.category_distribution.items():
            share = metrics.category_percentages.get(category, 0.0)
            lines.append(f"- {category}: {amount:,.2f} ({share:.1f}%)")
    else:
        lines.append("No expense data available")

    lines.extend(["", "### Upcoming Deadlines"])
    if metrics.upcoming_deadlines:
        for task in metrics.upcoming_deadlines:
            lines.append(f"- {task.due_date.date().isoformat()} {task.title}")
    else:
        lines.append("No upcoming deadlines")
    return "\n".join(lines)


def format_month_grid(year: int, month: int, grid: list[DayCell | None]) -> str:
    """Render a month grid (zero-based month) as weeks of seven columns."""
    lines = [f"{calendar.month_name[month + 1]} {year}", WEEKDAY_HEADER]
    week: list[str] = []
    details: list[str] = []
    for cell in grid:
        if cell is None:
            week.append("   ")
        else:
            marker = "*" if cell.is_today else ("+" if cell.task_count else " ")
            week.append(f"{cell.day:>2}{marker}")
            for task in cell.tasks:
                details.append(f"{cell.day:>2}: {task.title} ({task.status.value})")
            if cell.overflow:
                details.append(f"{cell.day:>2}: +{cell.overflow} more")
        if len(week) == 7:
            lines.append(" ".join(week))
            week = []
    if week:
        lines.append(" ".join(week))
    if details:
        lines.append("")
        lines.extend(details)
    return "\n".join(lines)


def run_workspace(args: argparse.Namespace, action: WorkspaceAction) -> int:
    """Run an async action against the workspace named on the command line."""
    try:
        config = get_config()
        if not config.is_configured():
            print("Error: SITEBOARD_API_BASE_URL is not set.", file=sys.stderr)
            return 1
        session_store = FileSessionStore(config.session_file)

        async def runner() -> Any:
            async with AuthenticatedClient.from_config(config, session_store) as client:
                queries = WorkspaceQueries(
                    WorkspaceApi(client), QueryCache(), args.workspace_id
                )
                return await action(queries)

        asyncio.run(runner())
        return 0

    except CustomError as e:
        print(f"Error [{e.error_code}]: {e}", file=sys.stderr)
        if args.verbose:
            print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_login(args: argparse.Namespace) -> int:
    """Store a bearer token for later commands."""
    try:
        config = get_config()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.auth_mode == AuthMode.COOKIE:
        print(
            "Error: this deployment uses cookie sessions; there is no token to store.",
            file=sys.stderr,
        )
        return 1

    FileSessionStore(config.session_file).set(Session(token=args.token))
    print("Logged in.")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    """Forget the stored session."""
    try:
        config = get_config()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    FileSessionStore(config.session_file).clear()
    print("Logged out.")
    return 0


def cmd_tasks(args: argparse.Namespace) -> int:
    """List workspace tasks."""

    async def action(queries: WorkspaceQueries) -> None:
        tasks = await queries.all_tasks() or []
        if args.status:
            tasks = [t for t in tasks if t.status == TaskStatus(args.status)]
        if not tasks:
            print("No tasks found.")
            return
        for task in tasks:
            print(task.format_display())

    return run_workspace(args, action)


def cmd_dashboard(args: argparse.Namespace) -> int:
    """Show the workspace dashboard."""

    async def action(queries: WorkspaceQueries) -> None:
        print(format_dashboard(await queries.dashboard()))

    return run_workspace(args, action)


def cmd_calendar(args: argparse.Namespace) -> int:
    """Show a month of task due dates."""
    today = date.today()
    year = args.year or today.year
    month = (args.month or today.month) - 1

    async def action(queries: WorkspaceQueries) -> None:
        grid = await queries.calendar(year, month)
        print(format_month_grid(year, month, grid))
        tasks = await queries.calendar_tasks() or []
        summary = status_summary(tasks)
        print(
            f"\nTo Do: {summary[TaskStatus.TODO]}  "
            f"In Progress: {summary[TaskStatus.IN_PROGRESS]}  "
            f"Done: {summary[TaskStatus.DONE]}"
        )

    return run_workspace(args, action)


def cmd_expenses(args: argparse.Namespace) -> int:
    """List a month of expenses with budget figures."""
    today = date.today()
    month = args.month or today.month
    year = args.year or today.year

    async def action(queries: WorkspaceQueries) -> None:
        report = await queries.expenses(month, year)
        if report is None:
            return
        analytics = report.analytics
        print(f"## Expenses - {calendar.month_name[month]} {year}\n")
        print(f"Used budget:        {analytics.used_budget:,.2f}")
        print(f"Remaining budget:   {analytics.remaining_budget:,.2f}")
        print(f"Outstanding amount: {analytics.outstanding_amount:,.2f}\n")
        if not report.expenses:
            print(f"No expenses found for {calendar.month_name[month]} {year}")
            return
        for expense in report.expenses:
            day = expense.date.isoformat() if expense.date else "----------"
            print(
                f"{day} [{expense.status.value:11}] {expense.name} "
                f"({expense.category.value}) {expense.amount:,.2f}  id={expense.id}"
            )

    return run_workspace(args, action)


def cmd_add_expense(args: argparse.Namespace) -> int:
    """Log a new expense."""

    async def action(queries: WorkspaceQueries) -> None:
        await queries.create_expense(
            name=args.name,
            amount=args.amount,
            category=args.category,
            expense_date=args.date,
            status=args.status,
            description=args.description or "",
        )
        print(f"Expense added: {args.name}")

    return run_workspace(args, action)


def cmd_delete_expense(args: argparse.Namespace) -> int:
    """Delete an expense."""

    async def action(queries: WorkspaceQueries) -> None:
        await queries.delete_expense(args.expense_id)
        print(f"Expense {args.expense_id} deleted.")

    return run_workspace(args, action)


def cmd_rooms(args: argparse.Namespace) -> int:
    """List chat rooms."""

    async def action(queries: WorkspaceQueries) -> None:
        rooms = await queries.chat_rooms() or []
        if not rooms:
            print("No chat rooms yet.")
            return
        for room in rooms:
            print(f"{room.icon} {room.name} [{room.type.value}] id={room.id}")

    return run_workspace(args, action)


def cmd_create_room(args: argparse.Namespace) -> int:
    """Create a chat room and show its messages."""

    async def action(queries: WorkspaceQueries) -> None:
        created = []
        await queries.create_chat_room(
            name=args.name,
            description=args.description or "",
            icon=args.icon,
            room_type=args.type,
            on_created=created.append,
        )
        if created:
            print(f"Created room {created[0].name} (id={created[0].id})")
        else:
            print(f"Created room {args.name}")

    return run_workspace(args, action)


def cmd_messages(args: argparse.Namespace) -> int:
    """Show messages in a chat room."""

    async def action(queries: WorkspaceQueries) -> None:
        messages = await queries.chat_messages(args.room_id) or []
        if not messages:
            print("No messages yet.")
            return
        for message in messages:
            print(message.format_display())

    return run_workspace(args, action)


def cmd_send(args: argparse.Namespace) -> int:
    """Post a message to a chat room."""

    async def action(queries: WorkspaceQueries) -> None:
        await queries.send_message(args.room_id, args.content)
        print("Message sent.")

    return run_workspace(args, action)


def cmd_site_updates(args: argparse.Namespace) -> int:
    """List site updates."""

    async def action(queries: WorkspaceQueries) -> None:
        updates = await queries.site_updates() or []
        if not updates:
            print("No site updates yet.")
            return
        for update in updates:
            when = update.created_at.date().isoformat() if update.created_at else "----------"
            print(f"{when} task={update.task_id} photos={len(update.photos)}")
            print(f"    {update.completion_notes}")

    return run_workspace(args, action)


def cmd_add_site_update(args: argparse.Namespace) -> int:
    """File a site update with optional photos."""
    try:
        photos = [encode_photo(path) for path in args.photo or []]
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def action(queries: WorkspaceQueries) -> None:
        await queries.create_site_update(args.task_id, args.notes, photos)
        print("Site update added.")

    return run_workspace(args, action)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="siteboard",
        description="SiteBoard - tasks, expenses, chat and site updates from the terminal",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log requests and cache activity"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # login / logout
    login_parser = subparsers.add_parser("login", help="Store a bearer token")
    login_parser.add_argument("--token", "-t", required=True, help="Bearer token")
    subparsers.add_parser("logout", help="Forget the stored session")

    # tasks
    tasks_parser = subparsers.add_parser("tasks", help="List tasks")
    tasks_parser.add_argument("workspace_id", help="Workspace ID")
    tasks_parser.add_argument(
        "--status", "-s", choices=[s.value for s in TaskStatus], help="Filter by status"
    )

    # dashboard
    dashboard_parser = subparsers.add_parser("dashboard", help="Show workspace dashboard")
    dashboard_parser.add_argument("workspace_id", help="Workspace ID")

    # calendar
    calendar_parser = subparsers.add_parser("calendar", help="Show task calendar")
    calendar_parser.add_argument("workspace_id", help="Workspace ID")
    calendar_parser.add_argument("--year", "-y", type=int, help="Year (default: current)")
    calendar_parser.add_argument(
        "--month", "-m", type=int, choices=range(1, 13), help="Month 1-12 (default: current)"
    )

    # expenses
    expenses_parser = subparsers.add_parser("expenses", help="List expenses")
    expenses_parser.add_argument("workspace_id", help="Workspace ID")
    expenses_parser.add_argument(
        "--month", "-m", type=int, choices=range(1, 13), help="Month 1-12 (default: current)"
    )
    expenses_parser.add_argument("--year", "-y", type=int, help="Year (default: current)")

    # add-expense
    add_expense_parser = subparsers.add_parser("add-expense", help="Log an expense")
    add_expense_parser.add_argument("workspace_id", help="Workspace ID")
    add_expense_parser.add_argument("name", help="Expense name")
    add_expense_parser.add_argument("amount", type=float, help="Amount")
    add_expense_parser.add_argument(
        "--category",
        "-c",
        choices=[c.value for c in ExpenseCategory],
        default=ExpenseCategory.MATERIALS.value,
        help="Category (default: materials)",
    )
    add_expense_parser.add_argument(
        "--status",
        "-s",
        choices=[s.value for s in ExpenseStatus],
        default=ExpenseStatus.OUTSTANDING.value,
        help="Payment status (default: outstanding)",
    )
    add_expense_parser.add_argument("--date", "-d", help="Date YYYY-MM-DD (default: today)")
    add_expense_parser.add_argument("--description", help="Notes")

    # delete-expense
    delete_expense_parser = subparsers.add_parser("delete-expense", help="Delete an expense")
    delete_expense_parser.add_argument("workspace_id", help="Workspace ID")
    delete_expense_parser.add_argument("expense_id", help="Expense ID")

    # rooms / create-room
    rooms_parser = subparsers.add_parser("rooms", help="List chat rooms")
    rooms_parser.add_argument("workspace_id", help="Workspace ID")

    create_room_parser = subparsers.add_parser("create-room", help="Create a chat room")
    create_room_parser.add_argument("workspace_id", help="Workspace ID")
    create_room_parser.add_argument("name", help="Room name")
    create_room_parser.add_argument("--description", help="Room description")
    create_room_parser.add_argument("--icon", default="💬", help="Room icon")
    create_room_parser.add_argument(
        "--type", choices=["channel", "project"], default="channel", help="Room type"
    )

    # messages / send
    messages_parser = subparsers.add_parser("messages", help="Show chat messages")
    messages_parser.add_argument("workspace_id", help="Workspace ID")
    messages_parser.add_argument("room_id", help="Chat room ID")

    send_parser = subparsers.add_parser("send", help="Send a chat message")
    send_parser.add_argument("workspace_id", help="Workspace ID")
    send_parser.add_argument("room_id", help="Chat room ID")
    send_parser.add_argument("content", help="Message text")

    # site updates
    site_updates_parser = subparsers.add_parser("site-updates", help="List site updates")
    site_updates_parser.add_argument("workspace_id", help="Workspace ID")

    add_update_parser = subparsers.add_parser("add-site-update", help="File a site update")
    add_update_parser.add_argument("workspace_id", help="Workspace ID")
    add_update_parser.add_argument("task_id", help="Task ID")
    add_update_parser.add_argument("notes", help="Completion notes")
    add_update_parser.add_argument("--photo", "-p", nargs="+", help="Photo files (max 5)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.command is None:
        parser.print_help()
        return 0

    handlers = {
        "login": cmd_login,
        "logout": cmd_logout,
        "tasks": cmd_tasks,
        "dashboard": cmd_dashboard,
        "calendar": cmd_calendar,
        "expenses": cmd_expenses,
        "add-expense": cmd_add_expense,
        "delete-expense": cmd_delete_expense,
        "rooms": cmd_rooms,
        "create-room": cmd_create_room,
        "messages": cmd_messages,
        "send": cmd_send,
        "site-updates": cmd_site_updates,
        "add-site-update": cmd_add_site_update,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
