"""poolwatch CLI - drive the ticket-pool simulation and watch it live."""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable

import click

from poolwatch.config import MonitorSettings
from poolwatch.exceptions import ControlError, FetchError
from poolwatch.utils.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--api-url", default=None, help="Control API base URL")
@click.option("--stream-url", default=None, help="STOMP WebSocket URL for the log topic")
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    json_output: bool,
    api_url: str | None,
    stream_url: str | None,
) -> None:
    """poolwatch - ticket-pool simulation monitor."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    ctx.obj["settings"] = MonitorSettings.from_env(api_base_url=api_url, stream_url=stream_url)
    setup_logging(level="DEBUG" if debug else "INFO", json_output=json_output)


def _settings(ctx: click.Context) -> MonitorSettings:
    return ctx.obj["settings"]


def _run_control(ctx: click.Context, action: Callable[..., Awaitable[str]], *args: object) -> None:
    """Run one ControlClient call and print its text response."""
    from poolwatch.control.client import ControlClient

    settings = _settings(ctx)

    async def _call() -> str:
        async with ControlClient(settings.api_base_url, timeout_s=settings.request_timeout_s) as client:
            return await action(client, *args)

    try:
        response = asyncio.run(_call())
    except ControlError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"response": response}))
    else:
        click.echo(response)


def _pool_options(fn):
    """Attach the four pool configuration options to a command."""
    fn = click.option("--retrieval-rate", type=click.IntRange(min=1), default=1,
                      show_default=True, help="Customer ticket retrieval rate")(fn)
    fn = click.option("--release-rate", type=click.IntRange(min=1), default=5,
                      show_default=True, help="Ticket release rate")(fn)
    fn = click.option("--total-tickets", type=click.IntRange(min=1), default=100,
                      show_default=True, help="Tickets placed in the pool")(fn)
    fn = click.option("--max-capacity", type=click.IntRange(min=1), default=200,
                      show_default=True, help="Maximum ticket capacity")(fn)
    return fn


def _pool_config(max_capacity: int, total_tickets: int, release_rate: int, retrieval_rate: int):
    from pydantic import ValidationError

    from poolwatch.models.pool import PoolConfiguration

    try:
        return PoolConfiguration(
            max_ticket_capacity=max_capacity,
            total_tickets=total_tickets,
            ticket_release_rate=release_rate,
            customer_ticket_retrieval_rate=retrieval_rate,
        )
    except ValidationError as exc:
        raise click.BadParameter(exc.errors()[0]["msg"]) from exc


# --- Control API commands ---

@cli.command()
@_pool_options
@click.pass_context
def initialize(
    ctx: click.Context,
    max_capacity: int,
    total_tickets: int,
    release_rate: int,
    retrieval_rate: int,
) -> None:
    """Initialize the ticket pool."""
    from poolwatch.control.client import ControlClient

    config = _pool_config(max_capacity, total_tickets, release_rate, retrieval_rate)
    _run_control(ctx, ControlClient.initialize, config)


@cli.command()
@_pool_options
@click.pass_context
def save(
    ctx: click.Context,
    max_capacity: int,
    total_tickets: int,
    release_rate: int,
    retrieval_rate: int,
) -> None:
    """Save a pool configuration on the backend."""
    from poolwatch.control.client import ControlClient

    config = _pool_config(max_capacity, total_tickets, release_rate, retrieval_rate)
    _run_control(ctx, ControlClient.save, config)


@cli.command()
@click.option("--vendors", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--consumers", type=click.IntRange(min=1), default=1, show_default=True)
@click.pass_context
def start(ctx: click.Context, vendors: int, consumers: int) -> None:
    """Start or resume vendor and consumer threads."""
    from poolwatch.control.client import ControlClient
    from poolwatch.models.pool import ProcessCounts

    counts = ProcessCounts(vendor_count=vendors, consumer_count=consumers)
    _run_control(ctx, ControlClient.start, counts)


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop all backend processes."""
    from poolwatch.control.client import ControlClient
    _run_control(ctx, ControlClient.stop)


@cli.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Stop processes and empty the pool."""
    from poolwatch.control.client import ControlClient
    _run_control(ctx, ControlClient.reset)


@cli.command("clear-logs")
@click.pass_context
def clear_logs(ctx: click.Context) -> None:
    """Clear logs on the backend."""
    from poolwatch.control.client import ControlClient
    _run_control(ctx, ControlClient.clear_logs)


@cli.command("send-log")
@click.pass_context
def send_log(ctx: click.Context) -> None:
    """Ask the backend to publish a test log line."""
    from poolwatch.control.client import ControlClient
    _run_control(ctx, ControlClient.send_test_log)


@cli.command()
@click.pass_context
def size(ctx: click.Context) -> None:
    """Print the current pool size."""
    from poolwatch.control.client import ControlClient

    settings = _settings(ctx)

    async def _fetch() -> float:
        async with ControlClient(settings.api_base_url, timeout_s=settings.request_timeout_s) as client:
            return await client.get_pool_size()

    try:
        value = asyncio.run(_fetch())
    except FetchError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"size": value}))
    else:
        click.echo(f"{value:g}")


# --- Live monitoring ---

@cli.command()
@click.option("--duration", type=float, default=None, help="Stop after N seconds")
@click.pass_context
def tail(ctx: click.Context, duration: float | None) -> None:
    """Stream log lines from the backend topic until interrupted."""
    from poolwatch.core.clock import LoopClock
    from poolwatch.core.log_stream import StreamSubscriber
    from poolwatch.stomp.transport import stomp_session_factory

    settings = _settings(ctx)
    json_output = ctx.obj.get("json_output")
    printed = {"last_seq": -1}

    def _print_new(entries):
        for entry in entries:
            if entry.seq <= printed["last_seq"]:
                continue
            if json_output:
                click.echo(json.dumps(entry.model_dump()))
            else:
                click.echo(entry.text)
        if entries:
            printed["last_seq"] = entries[-1].seq

    def _print_diagnostic(diagnostic):
        click.echo(f"[{diagnostic.kind}] {diagnostic.message}", err=True)

    async def _tail() -> None:
        subscriber = StreamSubscriber(
            stomp_session_factory(
                settings.stream_url,
                settings.topic,
                origin=settings.stream_origin,
                handshake_timeout_s=settings.handshake_timeout_s,
            ),
            LoopClock(),
            topic=settings.topic,
            reconnect_delay_s=settings.reconnect_delay_s,
        )
        subscriber.log_stream().subscribe(_print_new)
        subscriber.add_diagnostic_listener(_print_diagnostic)
        subscriber.connect()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            subscriber.disconnect()

    try:
        asyncio.run(_tail())
    except KeyboardInterrupt:
        pass


@cli.command()
@click.option("--count", type=click.IntRange(min=1), default=None, help="Stop after N ticks")
@click.pass_context
def sample(ctx: click.Context, count: int | None) -> None:
    """Poll the pool size on the sampling interval and print each sample."""
    from poolwatch.control.client import ControlClient
    from poolwatch.core.clock import LoopClock
    from poolwatch.core.sampler import PollingSampler
    from poolwatch.core.series import SlidingWindowSeries

    settings = _settings(ctx)
    json_output = ctx.obj.get("json_output")

    async def _sample() -> None:
        done = asyncio.Event()
        async with ControlClient(settings.api_base_url, timeout_s=settings.request_timeout_s) as client:
            sampler = PollingSampler(
                client.get_pool_size,
                SlidingWindowSeries(settings.window_capacity),
                LoopClock(),
                interval_s=settings.poll_interval_s,
            )

            def _print_latest(snapshot):
                if snapshot:
                    latest = snapshot[-1]
                    if json_output:
                        click.echo(json.dumps(latest.model_dump()))
                    else:
                        click.echo(f"{latest.time_label}  {latest.value:g}")
                if count is not None and sampler.ticks >= count:
                    done.set()

            def _print_diagnostic(diagnostic):
                click.echo(f"[{diagnostic.kind}] {diagnostic.message}", err=True)
                if count is not None and sampler.ticks >= count:
                    done.set()

            sampler.add_listener(_print_latest)
            sampler.add_diagnostic_listener(_print_diagnostic)
            sampler.start()
            try:
                await done.wait()
            finally:
                sampler.stop()

    try:
        asyncio.run(_sample())
    except KeyboardInterrupt:
        pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=8000, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the web dashboard."""
    import uvicorn

    from poolwatch.api.app import create_app

    app = create_app(_settings(ctx))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
