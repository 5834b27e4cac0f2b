"""``teamtasks dashboard``: interactive session over the task list."""

from __future__ import annotations

import click

from teamtasks.cli.helpers import open_dashboard, session_options
from teamtasks.cli.main import cli
from teamtasks.core.ids import coerce_id
from teamtasks.dashboard.render import render_dashboard, render_stats
from teamtasks.dashboard.state import Dashboard, Notification

_HELP = """\
Commands:
  add TEXT        create a task
  toggle ID       mark completed / pending
  edit ID         start editing (then: save TEXT | cancel)
  save TEXT       save the task being edited
  cancel          leave editing mode without saving
  rm ID           delete a task (asks first)
  find [TERM]     filter by author or text; no term clears the filter
  list            redraw the task list
  stats           show totals
  help            show this help
  quit            leave the dashboard
"""


def _echo_notification(note: Notification) -> None:
    if note.level == "error":
        click.secho(note.message, fg="red", err=True)
    else:
        click.secho(note.message, fg="green")


def _run_command(dashboard: Dashboard, line: str) -> bool:
    """Apply one command line. Returns ``False`` when the session should end."""
    verb, _, rest = line.strip().partition(" ")
    verb = verb.lower()
    rest = rest.strip()

    if verb in ("quit", "exit", "q"):
        return False
    if verb in ("", "list", "ls"):
        click.echo(render_dashboard(dashboard), nl=False)
    elif verb == "help":
        click.echo(_HELP, nl=False)
    elif verb == "add":
        dashboard.add_task(rest)
    elif verb in ("toggle", "done"):
        dashboard.toggle_task(coerce_id(rest))
    elif verb == "edit":
        if dashboard.start_edit(coerce_id(rest)):
            click.echo(f"Editing {rest}: {dashboard.edit_text}")
    elif verb == "save":
        dashboard.set_edit_text(rest)
        dashboard.save_edit()
    elif verb == "cancel":
        dashboard.cancel_edit()
    elif verb in ("rm", "delete"):
        dashboard.delete_task(coerce_id(rest))
    elif verb in ("find", "search"):
        dashboard.set_search(rest)
        click.echo(render_dashboard(dashboard), nl=False)
    elif verb == "stats":
        click.echo("\n".join(render_stats(dashboard.stats)))
    else:
        click.echo(f"Unknown command: {verb}. Type 'help' for commands.", err=True)
    return True


@cli.command("dashboard")
@session_options
def dashboard_cmd(url: str, username: str, password: str, output_json: bool) -> None:
    """Open an interactive dashboard for the signed-in user."""
    dashboard = open_dashboard(url, username, password, output_json)
    dashboard.on_notify = _echo_notification

    click.echo(render_dashboard(dashboard), nl=False)
    click.echo("Type 'help' for commands.")
    while True:
        try:
            line = click.prompt("teamtasks", default="", show_default=False, prompt_suffix="> ")
        except (click.Abort, EOFError):
            click.echo("")
            break
        if not _run_command(dashboard, line):
            break
