"""Command-line entry point for the workspace sync server."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .server import SyncServer
from .storage.database import Database
from .storage.users import IdentityResolver
from .utils.config import SyncConfig, load_config
from .utils.errors import ConfigurationError, SyncError
from .utils.logging import get_logger, setup_logging

logger = get_logger("workspace-sync.cli")


def _load(config_path: Optional[str], overrides: dict) -> SyncConfig:
    try:
        return load_config(
            config_paths=[Path(config_path)] if config_path else None,
            extra_config=overrides or None,
        )
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e


def _setup_logging(config: SyncConfig) -> None:
    setup_logging(
        app_name=config.app_name,
        log_level="DEBUG" if config.debug else config.logging.level,
        log_dir=config.logging.directory,
        enable_json=config.logging.format == "json",
        enable_sentry=config.logging.enable_sentry,
        sentry_dsn=config.logging.sentry_dsn,
        max_bytes=config.logging.max_size,
        backup_count=config.logging.backup_count,
    )


@click.group()
@click.version_option(__version__, prog_name="workspace-sync")
def main():
    """Workspace Sync Server - live file synchronization for editor clients."""


@main.command()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Config file path')
@click.option('--host', help='Interface to bind')
@click.option('--port', type=int, help='Port to listen on')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def serve(config_path: Optional[str], host: Optional[str], port: Optional[int], debug: bool):
    """Run the Socket.IO sync server."""
    overrides: dict = {}
    if host:
        overrides.setdefault("server", {})["host"] = host
    if port:
        overrides.setdefault("server", {})["port"] = port
    if debug:
        overrides["debug"] = True

    config = _load(config_path, overrides)
    _setup_logging(config)

    try:
        asyncio.run(SyncServer(config).run_forever())
    except KeyboardInterrupt:
        logger.info("server_interrupted")
    except (SyncError, OSError) as e:
        logger.error("server_error", error=str(e), exc_info=True)
        sys.exit(1)


@main.command("add-user")
@click.argument('name')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Config file path')
def add_user(name: str, config_path: Optional[str]):
    """Create a user and print its API key."""
    config = _load(config_path, {})

    async def create():
        async with Database(
            config.database.path,
            journal_mode=config.database.journal_mode,
            synchronous=config.database.synchronous,
        ) as db:
            return await IdentityResolver(db).create_user(name)

    try:
        user, api_key = asyncio.run(create())
    except SyncError as e:
        raise click.ClickException(e.message) from e

    click.echo(f"user_id: {user.id}")
    click.echo(f"api_key: {api_key}")


if __name__ == "__main__":
    main()
