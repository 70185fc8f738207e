"""Click CLI for userdata-mailer.

Commands:
    serve    -- Run the HTTP service.
    send     -- Email the user data report to one address.
    init-db  -- Create the UserData table (optionally with sample rows).
    check-db -- Test the database connection.
    pipeline -- Invoke a pypyr pipeline (send_report).
"""

from __future__ import annotations

import datetime
import logging
import os

import click
from dotenv import load_dotenv

from userdata_mailer.config import load_settings
from userdata_mailer.errors import ConfigurationError

logger = logging.getLogger("userdata_mailer.cli")

SAMPLE_ROWS = [
    ("Alice Johnson", 34),
    ("Bob Smith", 28),
    ("Carol White", 45),
]


def _settings_or_exit():
    """Load settings, turning a configuration error into exit code 1."""
    try:
        return load_settings()
    except ConfigurationError as exc:
        click.echo(click.style(f"Error: {exc}", fg="red"))
        raise SystemExit(1)


def _ensure_db_dir(db_path: str) -> None:
    """Create parent directory for the database file if it does not exist."""
    parent = os.path.dirname(db_path)
    if parent:
        os.makedirs(parent, exist_ok=True)


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
def main(log_level: str) -> None:
    """userdata-mailer: email a report of the UserData table."""
    load_dotenv()
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Listen port (default: PORT or 8080).")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP service with uvicorn."""
    import uvicorn

    from userdata_mailer.server import create_app_from_env

    settings = _settings_or_exit()
    app = create_app_from_env(settings)

    host = host or settings.host
    port = port or settings.port
    click.echo(click.style(f"Email service starting on {host}:{port}", fg="cyan"))
    uvicorn.run(app, host=host, port=port)


@main.command()
@click.argument("recipient")
def send(recipient: str) -> None:
    """Email the user data report to RECIPIENT."""
    from userdata_mailer.server import build_orchestrator

    settings = _settings_or_exit()
    orchestrator = build_orchestrator(settings)

    click.echo(click.style(f"Sending report to {recipient}...", fg="cyan"))
    result = orchestrator.handle({"receiverEmail": recipient})

    if result.response.success:
        click.echo(click.style(result.response.message, fg="green"))
    else:
        click.echo(
            click.style(
                f"{result.response.message} (status {result.status_code})", fg="red"
            )
        )
        raise SystemExit(1)


@main.command("init-db")
@click.option("--db", default=None, envvar="SQL_CONNECTION_STRING",
              help="Path to the SQLite database file.")
@click.option("--sample", is_flag=True, help="Insert a few sample rows.")
def init_db_command(db: str | None, sample: bool) -> None:
    """Create the UserData table if it does not exist."""
    from userdata_mailer.db.manager import (
        get_connection,
        init_db,
        insert_record,
        resolve_database_path,
    )

    if not db:
        click.echo(click.style("Error: --db or SQL_CONNECTION_STRING required.", fg="red"))
        raise SystemExit(1)

    _ensure_db_dir(resolve_database_path(db))
    conn = get_connection(db)
    init_db(conn)

    if sample:
        now = datetime.datetime.now().replace(microsecond=0)
        for offset, (name, age) in enumerate(SAMPLE_ROWS):
            insert_record(conn, name, age, now - datetime.timedelta(days=offset))
        click.echo(f"Inserted {len(SAMPLE_ROWS)} sample rows.")

    conn.close()
    click.echo(click.style("Database initialized.", fg="green"))


@main.command("check-db")
@click.option("--db", default=None, envvar="SQL_CONNECTION_STRING",
              help="Path to the SQLite database file.")
def check_db(db: str | None) -> None:
    """Test the database connection."""
    from userdata_mailer.db.manager import check_connection

    if not db:
        click.echo(click.style("Error: --db or SQL_CONNECTION_STRING required.", fg="red"))
        raise SystemExit(1)

    if check_connection(db):
        click.echo(click.style("Database connection OK.", fg="green"))
    else:
        click.echo(click.style("Database connection failed.", fg="red"))
        raise SystemExit(1)


@main.command()
@click.argument("name", type=click.Choice(["send_report"]))
@click.option("--recipient", default=None, envvar="RECIPIENT_EMAIL",
              help="Email address of the report recipient.")
def pipeline(name: str, recipient: str | None) -> None:
    """Run a pypyr pipeline."""
    from pypyr import pipelinerunner

    from userdata_mailer import PACKAGE_DIR

    if not recipient:
        click.echo(
            click.style("Error: --recipient or RECIPIENT_EMAIL env var required.", fg="red")
        )
        raise SystemExit(1)

    pipeline_path = PACKAGE_DIR / "pipelines" / name
    click.echo(click.style(f"Running pipeline: {name}", fg="cyan"))

    try:
        context = pipelinerunner.run(
            pipeline_name=str(pipeline_path),
            dict_in={"recipient_email": recipient},
        )
    except Exception as exc:
        logger.error("Pipeline failed: %s", exc)
        click.echo(click.style(f"Pipeline failed: {exc}", fg="red"))
        raise SystemExit(1)

    result = context.get("dispatch_result") or {}
    if not result.get("success"):
        click.echo(click.style(f"Pipeline '{name}' failed: {result.get('message')}", fg="red"))
        raise SystemExit(1)
    click.echo(click.style(f"Pipeline '{name}' completed: {result['message']}", fg="green"))
