"""Command-line interface for AuthForge.

This module provides the CLI commands for running and maintaining
the AuthForge service.
"""

import asyncio
from typing import NoReturn

import click

from authforge.core.config import get_settings
from authforge.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="AuthForge")
def cli() -> None:
    """AuthForge - authentication and session management service.

    Settings are read from AUTHFORGE_* environment variables and .env files.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the AuthForge server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting AuthForge server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "authforge.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt and allow running in production",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates all database tables. In production, use the Alembic migrations
    instead.
    """
    from authforge.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = get_db_manager(settings)
        try:
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
def cleanup() -> None:
    """Delete expired and long-revoked refresh tokens and sessions."""
    from authforge.infrastructure.api.dependencies import build_auth_service
    from authforge.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    async def sweep() -> tuple[int, int]:
        db = get_db_manager(settings)
        try:
            async with db.session() as session:
                auth_service = build_auth_service(session, settings)
                tokens = await auth_service.token_service.cleanup_expired_tokens()
                sessions = await auth_service.session_service.cleanup_expired_sessions()
                return tokens, sessions
        finally:
            await db.disconnect()

    tokens, sessions = asyncio.run(sweep())
    logger.info("Cleanup finished", tokens_deleted=tokens, sessions_deleted=sessions)
    click.echo(f"Deleted {tokens} refresh tokens and {sessions} sessions.")


@cli.command()
def info() -> None:
    """Display AuthForge configuration."""
    settings = get_settings()

    click.echo(f"""
AuthForge v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Database:
  URL:          {settings.database_url}

Tokens:
  Access:       {settings.access_token_expire_minutes} minutes
  Refresh:      {settings.refresh_token_expire_days} days
  Reuse grace:  {settings.refresh_reuse_grace_seconds} seconds

Sessions:
  Lifetime:     {settings.session_expire_hours} hours
  Idle timeout: {settings.session_idle_timeout_minutes} minutes

Lockout:
  Attempts:     {settings.max_failed_login_attempts}
  Duration:     {settings.lockout_duration_minutes} minutes
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `authforge` command is run
    or when using `python -m authforge`.
    """
    cli()


if __name__ == "__main__":
    main()
