"""CLI entry point and commands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from teamtasks.core.config import DB_ENV, DEFAULT_DB_PATH, ConfigError, parse_user_spec
from teamtasks.storage.document import DocumentCorrupt, DocumentStore
from teamtasks.storage.fs import ensure_document


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def cli(verbose: bool) -> None:
    """teamtasks: a shared team task list over a flat JSON document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )


# ---------------------------------------------------------------------------
# teamtasks init
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--db",
    "db_path",
    envvar=DB_ENV,
    default=DEFAULT_DB_PATH,
    show_default=True,
    type=click.Path(dir_okay=False),
    help=f"Path of the JSON document (or {DB_ENV}).",
)
@click.option(
    "--user",
    "users",
    multiple=True,
    help="Seed a user as username:password. Repeatable.",
)
def init(db_path: str, users: tuple[str, ...]) -> None:
    """Create the task document and seed users."""
    path = Path(db_path)

    if path.exists() and not path.is_file():
        raise click.ClickException(f"Cannot initialize: '{path}' exists but is not a file.")

    try:
        records = [parse_user_spec(spec) for spec in users]
    except ConfigError as e:
        raise click.ClickException(str(e))

    try:
        created = ensure_document(path)
        store = DocumentStore(path)
        outcomes = [(r["username"], store.add_user(r)) for r in records]
    except DocumentCorrupt as e:
        raise click.ClickException(str(e))
    except PermissionError:
        raise click.ClickException(f"Permission denied: cannot write {path}")
    except OSError as e:
        raise click.ClickException(f"Failed to initialize document: {e}")

    if created:
        click.echo(f"Created {path}")
    else:
        click.echo(f"Document already exists at {path}")
    for username, added in outcomes:
        if added:
            click.echo(f"Added user: {username}")
        else:
            click.echo(f"User already exists: {username}")


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from teamtasks.cli import serve_cmd as _serve_cmd  # noqa: E402, F401
from teamtasks.cli import task_cmds as _task_cmds  # noqa: E402, F401
from teamtasks.cli import dashboard_cmd as _dashboard_cmd  # noqa: E402, F401

if __name__ == "__main__":
    cli()
