"""Command line entry points for NeoWatch process roles."""

import json
import logging
import sys
from datetime import datetime
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .alerting import AlertRunState
from .app import Application, build_application
from .config import settings
from .errors import NeoWatchError

console = Console()


# Configure logging
def setup_logging(level: str) -> None:
    """Set up logging with Rich handler or JSON lines."""
    log_level = getattr(logging, level.upper())
    if settings.log_json:

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
                    "message": record.getMessage(),
                    "name": record.name,
                }
                return json.dumps(payload)

        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=log_level, handlers=[handler])
    else:
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
        )


logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Set logging level",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print emails instead of sending them",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], dry_run: bool) -> None:
    """NeoWatch asteroid alerting pipeline."""
    # Override config with CLI options
    if dry_run:
        settings.dry_run = True
    if log_level:
        settings.log_level = log_level

    setup_logging(settings.log_level)

    application = build_application(settings)
    ctx.obj = application
    ctx.call_on_close(application.close)


@cli.command()
@click.option(
    "--start-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="First day of the window (defaults to today)",
)
@click.pass_obj
def alert(application: Application, start_date: Optional[datetime]) -> None:
    """Run one alerting pass: fetch, classify and publish."""
    start = start_date.date() if start_date else None
    result = application.orchestrator().run(start)

    console.print_json(data=result.to_dict())
    if result.state != AlertRunState.DONE:
        sys.exit(1)


@cli.command()
@click.pass_obj
def consume(application: Application) -> None:
    """Consume collision events and store pending notifications."""
    try:
        consumer = application.consumer()
    except NeoWatchError as e:
        logger.error(f"Failed to initialize consumer: {e}")
        sys.exit(1)

    try:
        consumer.run_forever()
    except KeyboardInterrupt:
        consumer.stop()
        logger.info("Consumer interrupted")
    except NeoWatchError as e:
        logger.error(f"Consumer failed to start: {e}")
        sys.exit(1)


@cli.command()
@click.option("--once", is_flag=True, default=False, help="Run a single tick and exit")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between ticks (overrides DISPATCH_INTERVAL_SECONDS)",
)
@click.pass_obj
def dispatch(application: Application, once: bool, interval: Optional[float]) -> None:
    """Email pending notifications on a fixed cadence."""
    if interval is not None:
        settings.dispatch_interval_seconds = interval

    try:
        dispatcher = application.dispatcher()
    except (ValueError, NeoWatchError) as e:
        logger.error(f"Failed to initialize dispatcher: {e}")
        sys.exit(1)

    if once:
        result = dispatcher.tick()
        console.print_json(data=result.to_dict())
        if result.error or result.failed:
            sys.exit(1)
        return

    try:
        dispatcher.run_forever()
    except KeyboardInterrupt:
        dispatcher.stop()
        logger.info("Dispatcher interrupted")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Port for the trigger API")
@click.pass_obj
def serve(application: Application, host: str, port: int) -> None:
    """Serve the administrative alert trigger over HTTP."""
    import uvicorn

    from .api import create_api_app

    app = create_api_app(application.orchestrator(), application.notification_store())
    logger.info(f"🚀 Starting web server on port {port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command("init-db")
@click.pass_obj
def init_db(application: Application) -> None:
    """Create the notification tables."""
    try:
        application.notification_store()
    except NeoWatchError as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)
    console.print("[green]✅ Notification store ready[/green]")


@cli.command("add-recipient")
@click.argument("email")
@click.option("--disabled", is_flag=True, default=False, help="Store with notifications off")
@click.pass_obj
def add_recipient(application: Application, email: str, disabled: bool) -> None:
    """Add or update a recipient (local development only)."""
    try:
        application.notification_store().add_recipient(
            email, notifications_enabled=not disabled
        )
    except NeoWatchError as e:
        logger.error(f"Failed to add recipient {email}: {e}")
        sys.exit(1)
    state = "disabled" if disabled else "enabled"
    console.print(f"Recipient {email} saved (notifications {state})")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
