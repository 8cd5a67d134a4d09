"""
File Stream CLI

Command-line interface for streaming files between two peers.

Usage:
    filestream receive --port 8470 -o ./received   # Wait for files
    filestream send FILE --host 10.0.0.2            # Send a file
    filestream bench --size-bytes 5000000           # Loopback benchmark
    filestream config                               # Show configuration
"""

import asyncio
import logging
import os
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.panel import Panel
from rich.logging import RichHandler

from .channel import ChannelServer, MemoryChannel, StreamChannel, connect_channel
from .compression import CompressionAdapter, create_adapter, get_codec
from .config import Config, EXAMPLE_CONFIG, load_config
from .errors import ConfigError, TransferError
from .file import FileSink, MemorySink
from .transfer import (
    BackpressureGovernor, CompletedTransfer, TransferBenchmark, TransferPeer,
    format_size,
)

console = Console()


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


async def build_compression(config: Config) -> CompressionAdapter:
    """Initialize the configured codec."""
    return await create_adapter(get_codec(config.codec))


def build_governor(config: Config) -> BackpressureGovernor:
    return BackpressureGovernor(
        threshold=config.buffer_threshold,
        poll_interval=config.drain_poll_interval,
        timeout=config.drain_timeout,
    )


def benchmark_table(title: str, benchmark: TransferBenchmark) -> Table:
    """Render a benchmark as a table."""
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="yellow")

    table.add_row("Transfer time", f"{benchmark.total_time * 1000:.0f} ms")
    table.add_row(
        "Codec time",
        f"{(benchmark.compression_time + benchmark.decompression_time) * 1000:.0f} ms"
    )
    table.add_row("Network time", f"{benchmark.network_time * 1000:.0f} ms")
    table.add_row("Original", format_size(benchmark.original_size))
    table.add_row("Transferred", format_size(benchmark.wire_size))
    table.add_row("Ratio", f"{benchmark.compression_ratio:.2f}x")
    table.add_row("Throughput", f"{format_size(benchmark.throughput)}/s")
    table.add_row("Chunks", str(benchmark.chunks_sent or benchmark.chunks_received))
    return table


def make_payload(size: int, pattern: str) -> bytes:
    """Generate benchmark data."""
    if pattern == 'zeros':
        return bytes(size)
    if pattern == 'random':
        return os.urandom(size)
    text = b"The quick brown fox jumps over the lazy dog. 0123456789\n"
    return (text * (size // len(text) + 1))[:size]


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              default=None, help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """File Stream - chunked, compressed peer-to-peer file transfer."""
    ctx.ensure_object(dict)
    try:
        config = load_config(Path(config_path) if config_path else None)
    except (ConfigError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint='--config')
    setup_logging(verbose, config.log_level)
    ctx.obj['config'] = config


@cli.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--host', default='127.0.0.1', help='Receiver host')
@click.option('--port', type=int, default=None, help='Receiver port')
@click.option('--compress/--no-compress', default=None, help='Compress each chunk')
@click.option('--level', type=int, default=None, help='Compression level')
@click.option('--chunk-size', type=int, default=None, help='Chunk size in bytes')
@click.option('--indexed/--no-indexed', default=None,
              help='Prefix binary frames with their chunk index')
@click.pass_context
def send(ctx, file_path, host, port, compress, level, chunk_size, indexed):
    """Send a file to a receiving peer."""
    config: Config = ctx.obj['config']
    file_path = Path(file_path)
    port = port or config.port
    compress = config.compression if compress is None else compress
    level = config.compression_level if level is None else level
    chunk_size = chunk_size or config.chunk_size
    indexed = config.indexed_payloads if indexed is None else indexed

    async def run() -> bool:
        compression = await build_compression(config) if compress else None

        channel = await connect_channel(host, port, timeout=config.connect_timeout)
        if channel is None:
            console.print(f"[red]✗ Could not connect to {host}:{port}[/red]")
            return False

        peer = TransferPeer(
            channel,
            compression=compression,
            chunk_size=chunk_size,
            governor=build_governor(config),
            indexed_payloads=indexed,
        )

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                console=console,
            ) as progress:
                task = progress.add_task(f"Sending {file_path.name}...", total=100)

                def update_progress(p):
                    progress.update(
                        task,
                        completed=p.progress_percent,
                        description=f"Sending... ({p.chunks_done}/{p.total_chunks} chunks)"
                    )

                session = await peer.send_file(
                    file_path,
                    compress=compress,
                    level=level,
                    progress_callback=update_progress,
                )
                progress.update(task, completed=100, description="Done!")
        except TransferError as e:
            console.print(f"\n[red]✗ Send failed: {e}[/red]")
            return False
        finally:
            await channel.close()

        console.print(benchmark_table(f"Sent {file_path.name}", session.benchmark))
        return True

    if not asyncio.run(run()):
        ctx.exit(1)


@cli.command()
@click.option('--host', default=None, help='Listen address')
@click.option('--port', type=int, default=None, help='Listen port')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default=None,
              help='Where received files are saved')
@click.option('--once', is_flag=True, help='Exit after the first completed transfer')
@click.pass_context
def receive(ctx, host, port, output_dir, once):
    """Wait for peers and save the files they send."""
    config: Config = ctx.obj['config']
    host = host or config.host
    port = port or config.port
    sink = FileSink(Path(output_dir) if output_dir else config.output_dir)

    async def run():
        compression = await build_compression(config)
        done = asyncio.Event()

        def on_complete(result: CompletedTransfer):
            status = "[green]✓[/green]" if result.intact else "[yellow]![/yellow]"
            console.print(
                f"{status} Received [cyan]{result.name}[/cyan] "
                f"({format_size(len(result.data))})"
            )
            if once:
                done.set()

        async def handle(channel: StreamChannel):
            peer = TransferPeer(channel, compression=compression, sink=sink,
                                on_complete=on_complete)
            await peer.run(max_transfers=1 if once else None)

        server = ChannelServer(handle, host=host, port=port)
        await server.start()

        console.print(Panel.fit(
            f"[bold green]Receiver Started[/bold green]\n\n"
            f"Listening: [yellow]{host}:{port}[/yellow]\n"
            f"Output Dir: [blue]{sink.output_dir}[/blue]\n"
            f"Codec: [cyan]{compression.name}[/cyan]",
            title="File Stream"
        ))

        try:
            await done.wait()
        finally:
            await server.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")

    console.print(f"[green]Saved {sink.files_written} file(s), "
                  f"{format_size(sink.bytes_written)}[/green]")


@cli.command()
@click.option('--size-bytes', type=int, default=5_000_000, help='Payload size')
@click.option('--compress/--no-compress', default=None, help='Compress each chunk')
@click.option('--level', type=int, default=None, help='Compression level')
@click.option('--pattern', type=click.Choice(['text', 'zeros', 'random']),
              default='text', help='Payload content')
@click.pass_context
def bench(ctx, size_bytes, compress, level, pattern):
    """Run a loopback transfer and print timing."""
    config: Config = ctx.obj['config']
    compress = config.compression if compress is None else compress
    level = config.compression_level if level is None else level
    payload = make_payload(size_bytes, pattern)

    async def run():
        compression = await build_compression(config)
        a, b = MemoryChannel.pair()
        sender = TransferPeer(a, compression=compression, chunk_size=config.chunk_size,
                              governor=build_governor(config))
        receiver = TransferPeer(b, compression=compression, sink=MemorySink())

        receive_task = asyncio.create_task(receiver.run(max_transfers=1))
        session = await sender.send(payload, f"bench-{pattern}.bin",
                                    compress=compress, level=level)
        results = await receive_task
        await a.close()
        return session, results[0] if results else None

    session, result = asyncio.run(run())

    console.print(benchmark_table("Sent", session.benchmark))
    if result is None:
        console.print("[red]✗ Nothing received[/red]")
        ctx.exit(1)
    console.print(benchmark_table("Received", result.benchmark))
    if result.data == payload:
        console.print("[green]✓ Payload verified[/green]")
    else:
        console.print("[red]✗ Payload mismatch[/red]")
        ctx.exit(1)


@cli.command('config')
@click.option('--init', 'init_path', type=click.Path(dir_okay=False), default=None,
              help='Write the effective configuration to this file')
@click.option('--example', is_flag=True, help='Print an example config file')
@click.pass_context
def show_config(ctx, init_path, example):
    """Show the effective configuration."""
    config: Config = ctx.obj['config']

    if example:
        console.print(EXAMPLE_CONFIG)
        return

    if init_path:
        config.save(Path(init_path))
        console.print(f"[green]✓ Wrote {init_path}[/green]")
        return

    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="yellow")
    for key, value in config.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == '__main__':
    cli()
