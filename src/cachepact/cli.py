"""
Typer application for operating a configured cache from the shell.

Configuration comes from ``CACHEPACT_*`` environment variables / ``.env``
(see :class:`cachepact.config.CacheSettings`); ``--backend`` and ``--dir``
override them per invocation.

    cachepact write users/42 '{"name": "Alice"}' --expire 600
    cachepact read users/42
    cachepact clear --prefix users
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cachepact.base import CacheBackend
from cachepact.config import get_settings
from cachepact.errors import CacheError
from cachepact.logging import bind_context, configure_logging, unbind_context
from cachepact.registry import create_cache_from_settings, list_backends

app = typer.Typer(
    name="cachepact",
    help="cachepact: one cache contract, interchangeable backends.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("cachepact")
        except Exception:
            v = "0.1.0"
        typer.echo(f"cachepact {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    backend: str | None = typer.Option(None, "--backend", "-b", help="Backend id (memory, file, redis)."),
    cache_dir: str | None = typer.Option(None, "--dir", "-d", help="Cache directory."),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Read, write and clear cache entries."""
    settings = get_settings()
    updates: dict[str, Any] = {}
    if backend:
        updates["backend"] = backend
    if cache_dir:
        updates["dir"] = cache_dir
    if updates:
        settings = settings.model_copy(update=updates)

    json_format = None if settings.log_format == "auto" else settings.log_format == "json"
    configure_logging(level=settings.log_level, json_format=json_format, service="cachepact-cli")
    bind_context(command=ctx.invoked_subcommand, backend=settings.backend)
    ctx.call_on_close(lambda: unbind_context("command", "backend"))
    ctx.obj = settings


def _open_cache(ctx: typer.Context) -> CacheBackend:
    try:
        return create_cache_from_settings(ctx.obj)
    except (CacheError, ImportError) as exc:
        _fail(exc)


def _fail(exc: Exception) -> None:
    if isinstance(exc, CacheError):
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {exc}")
    raise typer.Exit(code=1)


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@app.command("write")
def write_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key."),
    value: str = typer.Argument(..., help="Value (JSON, or a plain string)."),
    expire: int | None = typer.Option(None, "--expire", "-e", help="Lifetime in seconds."),
) -> None:
    """Store VALUE under KEY."""
    with _open_cache(ctx) as cache:
        try:
            cache.write(key, _parse_value(value), expire)
        except CacheError as exc:
            _fail(exc)
    typer.echo(f"stored {key}")


@app.command("read")
def read_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key."),
) -> None:
    """Print the value under KEY as JSON (exit code 1 when absent)."""
    missing = object()
    with _open_cache(ctx) as cache:
        try:
            value = cache.read(key, missing)
        except CacheError as exc:
            _fail(exc)
    if value is missing:
        err_console.print(f"[yellow]absent[/yellow]: {key}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(value, ensure_ascii=False))


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key."),
) -> None:
    """Delete KEY (no error if it does not exist)."""
    with _open_cache(ctx) as cache:
        try:
            cache.delete(key)
        except CacheError as exc:
            _fail(exc)
    typer.echo(f"deleted {key}")


@app.command("clear")
def clear_cmd(
    ctx: typer.Context,
    prefix: str = typer.Option("", "--prefix", "-p", help="Only clear keys under this prefix."),
) -> None:
    """Remove all entries (or those under --prefix)."""
    with _open_cache(ctx) as cache:
        try:
            removed = cache.clear(prefix)
        except CacheError as exc:
            _fail(exc)
    typer.echo(f"removed {removed} entries")


@app.command("info")
def info_cmd(ctx: typer.Context) -> None:
    """Show the effective cache configuration."""
    settings = ctx.obj
    table = Table(title="cachepact")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("backend", settings.backend)
    table.add_row("enabled", str(settings.enabled))
    table.add_row("compress", str(settings.compress))
    table.add_row("dir", settings.dir)
    table.add_row("expire", str(settings.expire))
    if settings.backend == "redis":
        table.add_row("redis_url", settings.redis_url)
        table.add_row("redis_namespace", settings.redis_namespace)
    table.add_row("available backends", ", ".join(list_backends()))
    console.print(table)


if __name__ == "__main__":
    app()
