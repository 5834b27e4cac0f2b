"""Plain-text rendering of the dashboard."""

from __future__ import annotations

from teamtasks.core.config import TaskRecord
from teamtasks.core.tasks import can_modify, is_edited, parse_ts
from teamtasks.dashboard.state import EDITING, LOADING, Dashboard

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_date(stamp: object) -> str:
    """Render an ISO timestamp as ``10 Jan 2025``; unparseable stamps pass through."""
    if not stamp:
        return ""
    try:
        moment = parse_ts(stamp)
    except ValueError:
        return str(stamp)
    return f"{moment.day} {_MONTHS[moment.month - 1]} {moment.year}"


def render_task(task: TaskRecord, *, username: str | None = None, editing_text: str | None = None) -> str:
    """One line per task; *editing_text* shows the scratch copy instead of the text."""
    marker = "[x]" if task.get("completed") else "[ ]"
    task_id = task.get("id", "?")
    if editing_text is not None:
        return f"  {marker} {task_id!s:<14}  editing: {editing_text}"

    parts = [f"  {marker} {task_id!s:<14}  {task.get('text', '')}"]
    meta = f"by {task.get('author', '?')}"
    created = format_date(task.get("createdAt"))
    if created:
        meta += f", {created}"
    if is_edited(task):
        meta += " (edited)"
    parts.append(f"  -- {meta}")
    if username is not None and can_modify(task, username):
        parts.append("  *")
    return "".join(parts)


def render_stats(stats: dict[str, int]) -> list[str]:
    return [
        "Stats:",
        f"  {'Total':<12s} {stats['total']:>4d}",
        f"  {'Completed':<12s} {stats['completed']:>4d}",
        f"  {'Pending':<12s} {stats['pending']:>4d}",
        f"  {'Mine':<12s} {stats['mine']:>4d}",
    ]


def render_dashboard(dashboard: Dashboard) -> str:
    """Render the whole dashboard as text.

    Tasks marked ``*`` belong to the signed-in user and can be changed.
    """
    if dashboard.status == LOADING:
        return "Loading tasks...\n"

    visible = dashboard.visible_tasks
    lines = [f"=== Team Tasks ({dashboard.username}) ==="]
    if dashboard.search_term:
        lines.append(f"Search: {dashboard.search_term!r}")
    noun = "task" if len(visible) == 1 else "tasks"
    lines.append(f"{len(visible)} {noun}")
    lines.append("")

    if not visible:
        if dashboard.search_term:
            lines.append("No tasks match your search.")
        else:
            lines.append("No tasks yet. Create the first one!")
    else:
        for task in visible:
            scratch = dashboard.edit_text if dashboard.mode_of(task.get("id")) == EDITING else None
            lines.append(render_task(task, username=dashboard.username, editing_text=scratch))

    if dashboard.tasks:
        lines.append("")
        lines.extend(render_stats(dashboard.stats))

    return "\n".join(lines) + "\n"
