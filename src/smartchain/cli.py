"""``smartchain`` command line.

Global options select the configuration file and logging; commands run a
route in-process (``exec``), describe the routes (``routes``), dump the
effective configuration (``config``) or start the HTTP endpoint (``serve``).

``exec`` accepts free-form ``--key value`` flags after the route name, parsed
the same way static arguments of a route path are.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from smartchain.config import AppConfig, load_config
from smartchain.core.app import App
from smartchain.core.errors import ConfigError
from smartchain.core.parameters import parse_args
from smartchain.core.response import Response

__all__ = ["cli_app", "main"]

logger = logging.getLogger("smartchain")

cli_app = typer.Typer(help="Run and serve SmartChain routes.", no_args_is_help=True)


def _setup_logging(level: str, log_file: Optional[str]) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logging.getLogger("smartchain").addHandler(handler)


@cli_app.callback()
def setup(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON or YAML configuration file"),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Override the debug flag"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
):
    """Load the configuration shared by every command."""
    try:
        app_config = load_config(config, {"debug": debug})
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    _setup_logging(log_level, app_config.log_file)
    ctx.obj = app_config


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj if isinstance(ctx.obj, AppConfig) else AppConfig()


async def _run_route(config: AppConfig, route: str, args: dict) -> Response:
    app = App(config)
    await app.init()
    try:
        return await app.execute(route, args)
    finally:
        await app.deinit()


def _echo_response(response: Response) -> None:
    if isinstance(response.data, bytes):
        typer.echo(response.data.decode("utf-8", errors="replace"))
    elif response.data:
        typer.echo(response.data)


@cli_app.command(
    "exec",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def exec_route(ctx: typer.Context, route: str = typer.Argument(..., help="Route name")):
    """Run ROUTE with the given --key value arguments."""
    try:
        args = parse_args(ctx.args)
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    try:
        response = asyncio.run(_run_route(_config(ctx), route, args))
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    _echo_response(response)
    if not 200 <= response.code < 300:
        raise typer.Exit(code=1)


@cli_app.command("routes")
def list_routes(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the JSON description"),
):
    """Describe the configured routes."""

    async def _describe() -> str:
        app = App(_config(ctx))
        await app.init()
        try:
            if as_json:
                return json.dumps(app.to_json(), indent=2, default=str)
            return app.to_text()
        finally:
            await app.deinit()

    try:
        typer.echo(asyncio.run(_describe()))
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)


@cli_app.command("config")
def show_config(ctx: typer.Context):
    """Print the effective configuration."""
    typer.echo(_config(ctx).model_dump_json(indent=2, by_alias=True))


@cli_app.command("serve")
def serve_command(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Start the HTTP endpoint."""
    from smartchain.server import serve

    config = _config(ctx)
    server = config.server.model_copy(
        update={key: value for key, value in {"host": host, "port": port}.items() if value is not None}
    )
    logger.info("serving %s on %s:%s", config.name, server.host, server.port)
    serve(App(config.model_copy(update={"server": server})))


def main() -> None:
    cli_app()


if __name__ == "__main__":
    main()
