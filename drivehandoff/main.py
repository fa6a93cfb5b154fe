"""
Command-line entry point for drivehandoff.
"""
import asyncio
import logging
import sys

import click
import structlog

from drivehandoff import __version__
from drivehandoff.app.config import Settings
from drivehandoff.app.credentials import authorize
from drivehandoff.app.metrics import write_metrics
from drivehandoff.app.providers.factory import get_provider
from drivehandoff.app.services.transfer import preview_transfer, transfer_ownership
from drivehandoff.utils.errors import DriveHandoffError

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Route structlog through stdlib logging to stderr."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if fmt == "json"
            else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _fail(error: DriveHandoffError) -> None:
    logger.error("Command failed", **error.to_dict())
    raise SystemExit(1)


@click.group()
@click.version_option(__version__, prog_name="drivehandoff")
@click.option("--log-level", default=None, help="Log level (DH_LOG_LEVEL).")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log renderer (DH_LOG_FORMAT).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_format: str) -> None:
    """Transfer ownership of Google Drive files."""
    try:
        settings = Settings.from_env()
    except DriveHandoffError as error:
        configure_logging(log_level or "INFO", log_format or "console")
        _fail(error)
    configure_logging(log_level or settings.log_level, log_format or settings.log_format)
    ctx.obj = settings


@cli.command()
@click.pass_obj
def auth(settings: Settings) -> None:
    """Authorize with Google and cache the refresh token."""
    try:
        authorize(settings)
    except DriveHandoffError as error:
        _fail(error)
    click.echo(f"Authorization successful, token cache at {settings.token_path}")


@cli.command()
@click.argument("file_id", envvar="DH_FILE_ID")
@click.argument("new_owner", envvar="DH_NEW_OWNER")
@click.option("--lookup-attempts", type=click.IntRange(min=1), default=None,
              help="Attempts to find the recipient's permission (DH_LOOKUP_ATTEMPTS).")
@click.option("--revoke-on-failure", is_flag=True, default=False,
              help="Delete the pending grant if a later step fails (DH_REVOKE_ON_FAILURE).")
@click.option("--dry-run", is_flag=True, help="Show what would happen without changing permissions.")
@click.option("--metrics-file", type=click.Path(dir_okay=False), default=None,
              help="Write Prometheus metrics to this file when done.")
@click.pass_obj
def transfer(settings: Settings, file_id: str, new_owner: str, lookup_attempts: int,
             revoke_on_failure: bool, dry_run: bool, metrics_file: str) -> None:
    """Transfer ownership of FILE_ID to NEW_OWNER."""
    options = settings.transfer_options()
    if lookup_attempts is not None:
        options.lookup_attempts = lookup_attempts
    if revoke_on_failure:
        options.revoke_on_failure = True

    try:
        session = authorize(settings)
        if dry_run:
            preview = asyncio.run(preview_transfer(session, file_id, new_owner))
            click.echo(f"File {preview.file_id}, current owner(s): {', '.join(preview.current_owners) or 'unknown'}")
            for number, step in enumerate(preview.steps, 1):
                click.echo(f"  {number}. {step}")
            return
        result = asyncio.run(transfer_ownership(session, file_id, new_owner, options=options))
    except DriveHandoffError as error:
        _fail(error)
    finally:
        if metrics_file:
            write_metrics(metrics_file)

    click.echo(f"Ownership of {file_id} transferred to {new_owner} (permission {result.id}, role {result.role})")


@cli.command()
@click.argument("file_id", envvar="DH_FILE_ID")
@click.pass_obj
def permissions(settings: Settings, file_id: str) -> None:
    """List the permissions on FILE_ID."""
    try:
        session = authorize(settings)
        records = asyncio.run(get_provider("gdrive").list_permissions(file_id, session.token))
    except DriveHandoffError as error:
        _fail(error)
    for record in records:
        pending = " (pending owner)" if record.pending_owner else ""
        click.echo(f"{record.id}\t{record.role}\t{record.type}\t{record.email_address or '-'}{pending}")


if __name__ == "__main__":
    cli()
