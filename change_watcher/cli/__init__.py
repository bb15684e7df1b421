"""Entry points for the command-line interface.

``change-watcher watch`` keeps a directory under observation and runs a reload
command when matching files change; ``change-watcher scan`` lists the
directories a watch would cover.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import typer

from ..config import load_config
from ..lifecycle import ReloadService
from ..metrics import start_metrics_server
from ..watch_service import WatchService
from ..watcher import ChangeWatcher


app = typer.Typer(help="Watch directories and trigger debounced reloads")


@app.callback()
def _global_options(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
    metrics_port: Optional[int] = typer.Option(
        None,
        "--metrics-port",
        help="Expose Prometheus metrics on PORT before executing the command",
    ),
) -> None:
    """Handle global options for the CLI."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if metrics_port is not None:
        start_metrics_server(metrics_port)


@app.command("watch")
def watch(
    root: str,
    extension: Optional[str] = typer.Option(
        None, "--ext", help="Only react to files ending in .EXT"
    ),
    recursive: Optional[bool] = typer.Option(
        None, "--recursive/--no-recursive", help="Watch subdirectories too"
    ),
    command: Optional[str] = typer.Option(
        None, "--command", "-c", help="Command to run on reload"
    ),
    threshold: Optional[int] = typer.Option(
        None, "--threshold", help="Polls between reloads"
    ),
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Seconds between polls"
    ),
    polling: bool = typer.Option(
        False, "--polling", help="Use the polling observer instead of native events"
    ),
    config: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Watch ``ROOT`` until interrupted."""

    cfg = load_config(config)
    cfg["root"] = root
    if extension is not None:
        cfg["file_extension"] = extension.lstrip(".") or None
    if recursive is not None:
        cfg["recursive"] = recursive
    if command is not None:
        cfg["reload_command"] = command
    if threshold is not None:
        cfg["reload_threshold"] = threshold
    if interval is not None:
        cfg["poll_interval"] = interval
    if polling:
        cfg["polling"] = True

    service = ReloadService(cfg)
    try:
        service.enable()
    except OSError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"watching {root}")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.disable()


@app.command("scan")
def scan(
    root: str,
    recursive: bool = typer.Option(False, "--recursive", help="Walk subdirectories"),
    polling: bool = typer.Option(False, "--polling", help="Use the polling observer"),
) -> None:
    """List the directories a watch on ``ROOT`` would register."""

    try:
        watcher = ChangeWatcher(
            root, lambda: None, recursive, service=WatchService(polling=polling)
        )
    except OSError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    with watcher:
        for directory in watcher.registry.directories():
            typer.echo(str(directory))


def main(args: list[str] | None = None) -> None:
    """CLI entry point used by ``console_scripts`` or directly."""

    app(args)


__all__ = ["app", "main", "scan", "watch"]
