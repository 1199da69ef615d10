"""CLI entry point for todo-service.

Usage:
    todo-service                          # Start the HTTP server
    todo-service serve --port 9000        # Start the HTTP server on a port
    todo-service serve --with-rpc         # HTTP plus JSON-RPC on stdio
    todo-service rpc                      # JSON-RPC on stdio only
    todo-service init-config              # Create config file
    todo-service show-config              # Print effective settings
    todo-service --version                # Show version
"""

import asyncio
import contextlib
import sys
import tomllib
from pathlib import Path
from typing import Any

import click
import tomli_w
import uvicorn
from pydantic import ValidationError

from todo_service import __version__
from todo_service.config import (
    Settings,
    get_config_path,
    get_default_config,
    load_settings_with_toml,
)
from todo_service.core.task_store import TaskStore
from todo_service.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


class ErrorCategory:
    """Error categories for CLI error messages."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    INTERNAL = "internal"


def format_error(category: str, message: str, remediation: str) -> str:
    """Format error with category and remediation.

    Args:
        category: Error category
        message: Error message
        remediation: Suggested fix

    Returns:
        Formatted error string
    """
    return f"""
Error [{category.upper()}]: {message}

Remediation: {remediation}
"""


def load_settings(options: dict[str, Any], **cli_overrides: Any) -> Settings:
    """Resolve settings with precedence CLI > env > config file > defaults.

    Exits with status 1 and a readable message when the configuration is
    invalid.

    Args:
        options: Group options including config_path and log_level
        **cli_overrides: Subcommand options; None values are ignored

    Returns:
        Effective settings
    """
    config_path = options.get("config_path")
    try:
        settings = load_settings_with_toml(Path(config_path) if config_path else None)
    except tomllib.TOMLDecodeError as e:
        click.echo(
            format_error(
                ErrorCategory.CONFIGURATION,
                f"Config file is not valid TOML: {config_path or get_config_path()}",
                f"Fix the syntax error or recreate it with: todo-service init-config\n\nDetails: {e}",
            ),
            err=True,
        )
        sys.exit(1)
    except ValidationError as e:
        click.echo(
            format_error(
                ErrorCategory.CONFIGURATION,
                "Invalid configuration value",
                f"Check the config file and TODO_SERVICE_* environment variables.\n\nDetails: {e}",
            ),
            err=True,
        )
        sys.exit(1)

    overrides = {key: value for key, value in cli_overrides.items() if value is not None}
    if options.get("log_level"):
        overrides["log_level"] = options["log_level"]

    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    type=click.Path(exists=False, dir_okay=False),
    help="Override global config file path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Override log level",
)
@click.version_option(version=__version__, prog_name="todo-service")
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """Personal task tracking service.

    Start the HTTP server with: todo-service serve

    Configuration is loaded from (in priority order):
    1. CLI arguments
    2. Environment variables (TODO_SERVICE_*)
    3. Global config file (~/.config/todo-service/config.toml)
    4. Built-in defaults
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level

    # If no subcommand, run the HTTP server
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command()
@click.option("--host", type=str, help="Bind address (overrides config)")
@click.option("--port", type=click.IntRange(1, 65535), help="Bind port (overrides config)")
@click.option(
    "--with-rpc",
    is_flag=True,
    default=False,
    help="Also serve JSON-RPC on stdio, sharing the same task store",
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, with_rpc: bool) -> None:
    """Run the HTTP server."""
    settings = load_settings(ctx.obj, http_host=host, http_port=port)

    # stdout carries the RPC stream when it is enabled
    setup_logging(settings, use_stderr=with_rpc)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_services(settings, with_rpc=with_rpc))


@main.command()
@click.pass_context
def rpc(ctx: click.Context) -> None:
    """Run the JSON-RPC server on stdio.

    Reads one JSON-RPC message per line from stdin and writes one response
    per line to stdout. Logs go to stderr.
    """
    settings = load_settings(ctx.obj)
    setup_logging(settings, use_stderr=True)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_rpc_server(settings))


@main.command()
@click.option("--force", is_flag=True, default=False, help="Overwrite without asking")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Create global configuration file with defaults.

    Creates the configuration file at ~/.config/todo-service/config.toml
    (or %APPDATA%/todo-service/config.toml on Windows) with permissions 600.
    """
    config_path = Path(ctx.obj.get("config_path") or get_config_path())

    if config_path.exists() and not force:
        click.echo(f"Config file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            sys.exit(0)

    # Create directory if needed
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(get_default_config(), f)

    # chmod may not be supported on Windows
    with contextlib.suppress(OSError):
        config_path.chmod(0o600)

    click.echo(f"Created config file: {config_path}")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Adjust server.host and server.port if needed")
    click.echo("  2. Start the service: todo-service serve")


@main.command()
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective settings as JSON."""
    settings = load_settings(ctx.obj)
    click.echo(settings.model_dump_json(indent=2))


def build_task_store(settings: Settings) -> TaskStore:
    """Create the task store configured by settings."""
    return TaskStore(allow_empty_description=settings.allow_empty_description)


async def run_rpc_server(settings: Settings) -> None:
    """Run only the JSON-RPC server on stdio.

    Args:
        settings: Effective settings
    """
    from todo_service.api.rpc_server import RPCServer

    logger.info("starting_rpc_server", version=__version__)

    store = build_task_store(settings)
    rpc_server = RPCServer(store)

    try:
        await rpc_server.run()
    finally:
        store.close()
        logger.info("rpc_server_exited")


async def run_services(settings: Settings, with_rpc: bool = False) -> None:
    """Run the HTTP server, optionally alongside the stdio JSON-RPC server.

    Both surfaces share one task store. When stdin closes, the HTTP
    server is asked to exit too.

    Args:
        settings: Effective settings
        with_rpc: Also serve JSON-RPC on stdio
    """
    from todo_service.api.http_server import create_http_server

    logger.info(
        "starting_todo_service",
        version=__version__,
        host=settings.http_host,
        port=settings.http_port,
        with_rpc=with_rpc,
    )

    store = build_task_store(settings)
    app = create_http_server(store, metrics_enabled=settings.metrics_enabled)

    http_config = uvicorn.Config(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_level="warning",
    )
    http_server = uvicorn.Server(http_config)

    async def serve_rpc() -> None:
        await app.state.rpc_server.run()
        http_server.should_exit = True

    try:
        async with asyncio.TaskGroup() as tg:
            tg.create_task(http_server.serve())
            if with_rpc:
                tg.create_task(serve_rpc())
    except* Exception as eg:
        for exc in eg.exceptions:
            logger.error("service_error", error=str(exc))
        raise
    finally:
        logger.info("shutting_down_services")
        store.close()
        logger.info("todo_service_stopped")


if __name__ == "__main__":
    main()
