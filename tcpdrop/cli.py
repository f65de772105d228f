#!/usr/bin/env python3
"""
tcpdrop CLI

Command-line interface for sequential point-to-point file transfer.

Usage:
    tcpdrop receive out/a.bin out/b.bin      # Write incoming connections to files
    tcpdrop send in/a.bin in/b.bin           # Send files, one connection each
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .config import Config, load_config
from .errors import TransferError
from .transfer import Receiver, Sender, TransferProgress, TransferResult

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str = 'INFO'):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)]
    )


def format_size(bytes_count: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


def _progress_tracker(progress: Progress) -> Callable[[TransferProgress], None]:
    """Build a progress callback that keeps one rich task per file."""
    tasks: Dict[int, int] = {}

    def update(p: TransferProgress):
        description = f"[{p.index + 1}/{p.total_files}] {escape(str(p.path))}"
        if p.index not in tasks:
            tasks[p.index] = progress.add_task(description, total=p.total_bytes)
        progress.update(tasks[p.index], completed=p.bytes_transferred)
        if p.done:
            progress.update(tasks[p.index], total=p.bytes_transferred)

    return update


def _execute(main: Callable[[Progress], Awaitable[List[TransferResult]]]) -> List[TransferResult]:
    """Run a transfer coroutine under a progress display, exiting on failure."""
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console,
        ) as progress:
            return asyncio.run(main(progress))
    except TransferError as e:
        err_console.print(f"[red]✗ {escape(e.message)}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


def _print_results(title: str, results: List[TransferResult]):
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Size", justify="right", style="yellow")
    table.add_column("Peer", style="green")

    for i, r in enumerate(results, 1):
        peer = f"{r.peer[0]}:{r.peer[1]}" if r.peer else "-"
        table.add_row(str(i), escape(str(r.path)), format_size(r.bytes_transferred), peer)

    console.print(table)


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """tcpdrop - send files over raw TCP, one connection per file."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='configuration')

    setup_logging('DEBUG' if verbose else config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.option('-p', '--port', type=click.IntRange(0, 65535), default=None,
              help='Port to listen on, 0 picks a free port [env: PORT, default: 1337]')
@click.option('-b', '--bind', default=None,
              help='Interface to bind to [env: INTERFACE, default: 0.0.0.0]')
@click.option('-f', '--force', is_flag=True, help='Overwrite files that already exist')
@click.argument('files', nargs=-1, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def receive(ctx, port: Optional[int], bind: Optional[str], force: bool, files):
    """Write incoming connections to FILES, in the order they arrive."""
    config: Config = ctx.obj['config']
    host = bind or config.host
    port = config.port if port is None else port

    async def main(progress: Progress) -> List[TransferResult]:
        receiver = Receiver(
            files,
            host=host,
            port=port,
            overwrite=force,
            chunk_size=config.chunk_size,
            on_progress=_progress_tracker(progress),
        )
        async with receiver:
            bound_host, bound_port = receiver.address
            progress.console.print(f"Listening on [yellow]{bound_host}:{bound_port}[/yellow]")
            return await receiver.serve()

    results = _execute(main)
    _print_results("Received Files", results)
    console.print("[green]✓ Done writing all the files[/green]")


@cli.command()
@click.option('-a', '--address', default=None,
              help='Address of the receiver [default: 127.0.0.1]')
@click.option('-p', '--port', type=click.IntRange(1, 65535), default=None,
              help='Port of the receiver [default: 1337]')
@click.argument('files', nargs=-1, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def send(ctx, address: Optional[str], port: Optional[int], files):
    """Send FILES in order, one connection per file."""
    config: Config = ctx.obj['config']
    host = address or config.remote_host
    port = config.remote_port if port is None else port

    async def main(progress: Progress) -> List[TransferResult]:
        sender = Sender(
            files,
            host=host,
            port=port,
            chunk_size=config.chunk_size,
            on_progress=_progress_tracker(progress),
        )
        return await sender.run()

    results = _execute(main)
    _print_results("Sent Files", results)
    console.print("[green]✓ Done sending all the files[/green]")


def main():
    cli(prog_name='tcpdrop')


if __name__ == '__main__':
    main()
