"""Shared CLI helpers, decorators, and output utilities."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import NoReturn

import click

from teamtasks.client.api import APIError, InvalidCredentials, TaskAPI
from teamtasks.core.config import API_URL_ENV, DEFAULT_API_URL
from teamtasks.dashboard.state import Dashboard

# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(*, data: object, human_message: str, is_json: bool) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Click decorator
# ---------------------------------------------------------------------------


def session_options(f):  # noqa: ANN001, ANN201
    """Decorator adding the backend URL, credentials, and ``--json`` options."""
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    f = click.option(
        "--password",
        envvar="TEAMTASKS_PASSWORD",
        prompt=True,
        hide_input=True,
        help="Password (or TEAMTASKS_PASSWORD).",
    )(f)
    f = click.option(
        "--username",
        envvar="TEAMTASKS_USERNAME",
        prompt=True,
        help="Username (or TEAMTASKS_USERNAME).",
    )(f)
    f = click.option(
        "--url",
        envvar=API_URL_ENV,
        default=DEFAULT_API_URL,
        show_default=True,
        help=f"Backend base URL (or {API_URL_ENV}).",
    )(f)
    return f


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def open_dashboard(
    url: str,
    username: str,
    password: str,
    is_json: bool,
    *,
    confirm: Callable[[str], bool] | None = None,
) -> Dashboard:
    """Sign in, load the task list, and return a ready dashboard, or exit.

    Deletes are confirmed with an interactive prompt unless *confirm* is given.
    """
    api = TaskAPI(url)
    try:
        user = api.login(username, password)
    except InvalidCredentials as exc:
        output_error(str(exc), "INVALID_CREDENTIALS", is_json)
    except APIError as exc:
        output_error(f"Could not reach {url}: {exc}", "TRANSPORT_ERROR", is_json)

    if confirm is None:
        confirm = _prompt_confirm
    dashboard = Dashboard(api, user, confirm=confirm)
    if not dashboard.load():
        output_error(_last_error(dashboard, "Could not load tasks"), "LOAD_FAILED", is_json)
    return dashboard


def _prompt_confirm(message: str) -> bool:
    return click.confirm(message, default=False)


def _last_error(dashboard: Dashboard, fallback: str) -> str:
    for note in reversed(dashboard.notifications):
        if note.level == "error":
            return note.message
    return fallback


def exit_on_failure(dashboard: Dashboard, code: str, is_json: bool) -> NoReturn:
    output_error(_last_error(dashboard, "Operation failed"), code, is_json)


def last_message(dashboard: Dashboard) -> str:
    return dashboard.notifications[-1].message if dashboard.notifications else ""
