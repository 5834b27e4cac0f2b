"""``teamtasks serve`` command."""

from __future__ import annotations

import errno
import logging
from pathlib import Path

import click

from teamtasks.cli.helpers import json_envelope, json_error_obj
from teamtasks.cli.main import cli
from teamtasks.core.config import VALID_VARIANTS, ConfigError, resolve_server_settings
from teamtasks.server import create_server
from teamtasks.storage.fs import ensure_document

logger = logging.getLogger(__name__)


@cli.command("serve")
@click.option("--host", default=None, help="Host to bind to. Defaults to HOST, or 0.0.0.0.")
@click.option("--port", default=None, type=int, help="Port to bind to. Defaults to PORT, or 3001.")
@click.option(
    "--db",
    "db_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="JSON document. Defaults to TEAMTASKS_DB, or db.json.",
)
@click.option(
    "--variant",
    default=None,
    type=click.Choice(VALID_VARIANTS),
    help="Backend flavour. Defaults to TEAMTASKS_VARIANT, or explicit.",
)
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def serve_cmd(
    host: str | None,
    port: int | None,
    db_path: str | None,
    variant: str | None,
    output_json: bool,
) -> None:
    """Serve /tasks and /users over HTTP.

    Resolution order for every setting: command-line flag, environment
    variable, built-in default.
    """
    try:
        settings = resolve_server_settings()
    except ConfigError as exc:
        raise click.ClickException(str(exc))

    host = host if host is not None else settings["host"]
    port = port if port is not None else settings["port"]
    db_path = db_path if db_path is not None else settings["db_path"]
    variant = variant if variant is not None else settings["variant"]

    # Access lines are logged at INFO.
    if logging.getLogger().getEffectiveLevel() > logging.INFO:
        logging.getLogger("teamtasks").setLevel(logging.INFO)

    path = Path(db_path)
    if ensure_document(path):
        logger.info("created empty document at %s", path)

    try:
        server = create_server(
            path, host, port, variant=variant, lock_timeout=settings["lock_timeout"]
        )
    except OSError as exc:
        if exc.errno == errno.EADDRINUSE:
            msg = f"Port {port} is already in use."
            code = "PORT_IN_USE"
        else:
            msg = str(exc)
            code = "BIND_ERROR"
        if output_json:
            click.echo(json_envelope(False, error=json_error_obj(code, msg)))
        else:
            click.echo(f"Error: {msg}", err=True)
        raise SystemExit(1)

    bound_port = server.server_address[1]
    url = f"http://{host}:{bound_port}"
    if output_json:
        click.echo(
            json_envelope(
                True,
                data={"host": host, "port": bound_port, "url": url, "variant": variant, "db": str(path)},
            )
        )
    else:
        click.echo(f"teamtasks ({variant}) serving {path} on {url}")
        click.echo("Press Ctrl+C to stop.")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
