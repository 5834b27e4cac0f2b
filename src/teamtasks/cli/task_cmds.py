"""Task commands: list, add, toggle, edit, delete, stats."""

from __future__ import annotations

import click

from teamtasks.cli.helpers import (
    exit_on_failure,
    last_message,
    open_dashboard,
    output_result,
    session_options,
)
from teamtasks.cli.main import cli
from teamtasks.core.ids import coerce_id
from teamtasks.dashboard.render import render_dashboard, render_stats, render_task


@cli.group("tasks")
def tasks_group() -> None:
    """Work with the shared task list."""


# ---------------------------------------------------------------------------
# teamtasks tasks list
# ---------------------------------------------------------------------------


@tasks_group.command("list")
@click.option("--search", "search_term", default="", help="Show only tasks whose author or text contains this.")
@session_options
def list_cmd(search_term: str, url: str, username: str, password: str, output_json: bool) -> None:
    """Show the task list."""
    dashboard = open_dashboard(url, username, password, output_json)
    visible = dashboard.set_search(search_term)
    if output_json:
        output_result(data=visible, human_message="", is_json=True)
    else:
        click.echo(render_dashboard(dashboard), nl=False)


# ---------------------------------------------------------------------------
# teamtasks tasks add
# ---------------------------------------------------------------------------


@tasks_group.command("add")
@click.argument("text")
@session_options
def add_cmd(text: str, url: str, username: str, password: str, output_json: bool) -> None:
    """Create a task authored by the signed-in user."""
    if not text.strip():
        raise click.ClickException("Task text cannot be empty")
    dashboard = open_dashboard(url, username, password, output_json)
    task = dashboard.add_task(text)
    if task is None:
        exit_on_failure(dashboard, "CREATE_FAILED", output_json)
    output_result(
        data=task,
        human_message=f"{last_message(dashboard)}\n{render_task(task)}",
        is_json=output_json,
    )


# ---------------------------------------------------------------------------
# teamtasks tasks toggle
# ---------------------------------------------------------------------------


@tasks_group.command("toggle")
@click.argument("task_id")
@session_options
def toggle_cmd(task_id: str, url: str, username: str, password: str, output_json: bool) -> None:
    """Mark a task completed, or back to pending."""
    dashboard = open_dashboard(url, username, password, output_json)
    task = dashboard.toggle_task(coerce_id(task_id))
    if task is None:
        exit_on_failure(dashboard, "UPDATE_FAILED", output_json)
    output_result(
        data=task,
        human_message=f"{last_message(dashboard)}\n{render_task(task)}",
        is_json=output_json,
    )


# ---------------------------------------------------------------------------
# teamtasks tasks edit
# ---------------------------------------------------------------------------


@tasks_group.command("edit")
@click.argument("task_id")
@click.argument("text")
@session_options
def edit_cmd(
    task_id: str, text: str, url: str, username: str, password: str, output_json: bool
) -> None:
    """Replace a task's text."""
    dashboard = open_dashboard(url, username, password, output_json)
    tid = coerce_id(task_id)
    if not dashboard.start_edit(tid):
        exit_on_failure(dashboard, "UPDATE_FAILED", output_json)
    dashboard.set_edit_text(text)
    task = dashboard.save_edit(tid)
    if task is None:
        exit_on_failure(dashboard, "UPDATE_FAILED", output_json)
    output_result(
        data=task,
        human_message=f"{last_message(dashboard)}\n{render_task(task)}",
        is_json=output_json,
    )


# ---------------------------------------------------------------------------
# teamtasks tasks delete
# ---------------------------------------------------------------------------


@tasks_group.command("delete")
@click.argument("task_id")
@click.option("--yes", "assume_yes", is_flag=True, help="Skip the confirmation prompt.")
@session_options
def delete_cmd(
    task_id: str, assume_yes: bool, url: str, username: str, password: str, output_json: bool
) -> None:
    """Delete a task after confirmation."""

    def _confirm(message: str) -> bool:
        return assume_yes or click.confirm(message, default=False)

    dashboard = open_dashboard(url, username, password, output_json, confirm=_confirm)
    before = len(dashboard.notifications)
    if not dashboard.delete_task(coerce_id(task_id)):
        if len(dashboard.notifications) == before:
            click.echo("Cancelled.")
            return
        exit_on_failure(dashboard, "DELETE_FAILED", output_json)
    output_result(
        data={"id": coerce_id(task_id)},
        human_message=last_message(dashboard),
        is_json=output_json,
    )


# ---------------------------------------------------------------------------
# teamtasks tasks stats
# ---------------------------------------------------------------------------


@tasks_group.command("stats")
@session_options
def stats_cmd(url: str, username: str, password: str, output_json: bool) -> None:
    """Show totals: all, completed, pending, mine."""
    dashboard = open_dashboard(url, username, password, output_json)
    stats = dashboard.stats
    output_result(data=stats, human_message="\n".join(render_stats(stats)), is_json=output_json)
