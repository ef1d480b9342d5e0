"""CLI for the subscription feed service."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from subbed.api.services import AppServices, build_services
from subbed.channel.extraction import is_channel_id
from subbed.core.config import Settings, get_settings_with_yaml
from subbed.core.exceptions import SettingsValidationError, SubbedError
from subbed.core.logging_config import setup_logging
from subbed.core.schemas import ChannelRef, FeedEntry, FeedType

T = TypeVar("T")

app = typer.Typer(help="Subbed - aggregated YouTube subscription feeds")
subs_app = typer.Typer(help="Subscription commands")
settings_app = typer.Typer(help="Feed settings commands")
app.add_typer(subs_app, name="subs")
app.add_typer(settings_app, name="settings")
console = Console()


def _load_settings() -> Settings:
    settings = get_settings_with_yaml()
    setup_logging(settings.log_level, settings.log_file)
    return settings


def _run(action: Callable[[AppServices], Awaitable[T]]) -> T:
    """Run an async action against freshly built services, then close them."""
    settings = _load_settings()

    async def _main() -> T:
        services = await build_services(settings)
        try:
            return await action(services)
        finally:
            await services.close()

    try:
        return asyncio.run(_main())
    except SettingsValidationError as e:
        rprint(f"[red]✗ {escape(str(e))}[/red]")
        for error in e.errors:
            rprint(f"  [red]-[/red] {error['field']}: {escape(error['message'])}")
        raise typer.Exit(1) from e
    except SubbedError as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _print_entries(entries: list[FeedEntry], title: str) -> None:
    if not entries:
        rprint(f"\n[yellow]No entries for {escape(title)}[/yellow]\n")
        return

    table = Table(title=title)
    table.add_column("Published", style="dim", width=16)
    table.add_column("Channel", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Short", justify="center")
    table.add_column("Link", style="blue")

    for entry in entries:
        published = entry.published_at.strftime("%Y-%m-%d %H:%M") if entry.published_at else "-"
        table.add_row(
            published,
            escape(entry.channel_title or entry.channel_id or "-"),
            escape(entry.title),
            "✓" if entry.is_short else "",
            entry.link,
        )

    console.print(table)


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


@app.command()
def resolve(
    channel: str = typer.Argument(..., help="Handle, channel URL, video link or channel ID"),
):
    """Resolve channel input to its canonical channel ID."""

    async def _resolve(services: AppServices):
        return await services.resolver.resolve(channel)

    resolved = _run(_resolve)
    rprint(f"[green]✓[/green] {resolved.channel_id}  {escape(resolved.title or '')}")


@app.command()
def feed(
    page: int = typer.Option(1, min=1, help="1-based page number"),
    per_page: int | None = typer.Option(None, min=1, max=100, help="Entries per page"),
    per_channel: int | None = typer.Option(None, min=1, max=50, help="Entries per channel"),
    query: str = typer.Option("", "--query", "-q", help="Search filter"),
    feed_type: FeedType | None = typer.Option(None, "--type", help="all, video or short"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """Show one page of the aggregated feed."""

    async def _feed(services: AppServices):
        return await services.aggregator.load_aggregated_feed(
            page=page,
            search_query=query,
            feed_type=feed_type,
            per_page=per_page,
            per_channel=per_channel,
        )

    result = _run(_feed)
    if as_json:
        _print_json(result.model_dump(mode="json", by_alias=True))
        return

    _print_entries(result.items, f"Feed page {result.page} ({result.total} entries)")


@app.command("channel-feed")
def channel_feed(
    channel: str = typer.Argument(..., help="Channel ID or resolvable channel input"),
    limit: int | None = typer.Option(None, min=1, max=50, help="Maximum entries"),
    query: str | None = typer.Option(None, "--query", "-q", help="Search filter"),
    feed_type: FeedType | None = typer.Option(None, "--type", help="all, video or short"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """Show a single channel's feed."""

    async def _channel_feed(services: AppServices):
        channel_id = channel.strip()
        if not is_channel_id(channel_id):
            channel_id = (await services.resolver.resolve(channel_id)).channel_id
        return await services.aggregator.load_channel_feed(
            channel_id, search_query=query, feed_type=feed_type, limit=limit
        )

    result = _run(_channel_feed)
    if as_json:
        _print_json(result.model_dump(mode="json", by_alias=True))
        return

    _print_entries(result.items, result.channel_title or result.channel_id)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = _load_settings()
    uvicorn.run(
        "subbed.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# Subscription commands


@subs_app.command("list")
def subs_list():
    """List subscribed channels."""

    async def _list(services: AppServices):
        return await services.stores.subscriptions.list()

    refs = _run(_list)
    if not refs:
        rprint("\n[yellow]No subscriptions yet.[/yellow]")
        rprint("Use [bold]subbed subs add @Handle[/bold] to add a channel.\n")
        return

    table = Table(title=f"Subscriptions ({len(refs)})")
    table.add_column("Channel ID", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Added", style="dim")
    for ref in refs:
        table.add_row(ref.channel_id, escape(ref.title or "-"), ref.created_at.strftime("%Y-%m-%d"))
    console.print(table)


@subs_app.command("add")
def subs_add(
    channel: str = typer.Argument(..., help="Handle, channel URL, video link or channel ID"),
    title: str | None = typer.Option(None, help="Display title (looked up when omitted)"),
):
    """Subscribe to a channel."""

    async def _add(services: AppServices):
        resolved = await services.resolver.resolve(channel)
        display = title or resolved.title or await services.resolver.resolve_title(
            resolved.channel_id
        )
        url = channel if not is_channel_id(channel.strip()) else None
        ref = ChannelRef(
            channel_id=resolved.channel_id,
            title=display,
            url=url or f"{services.resolver.base_url}/channel/{resolved.channel_id}",
        )
        return await services.stores.subscriptions.add(ref)

    ref = _run(_add)
    rprint(f"[green]✓ Subscribed to {escape(ref.title or ref.channel_id)}[/green] ({ref.channel_id})")


@subs_app.command("remove")
def subs_remove(
    channel_id: str = typer.Argument(..., help="Channel ID to remove"),
):
    """Remove a subscription."""

    async def _remove(services: AppServices):
        return await services.stores.subscriptions.remove(channel_id)

    if _run(_remove):
        rprint(f"[green]✓ Removed {channel_id}[/green]")
    else:
        rprint(f"[yellow]Not subscribed to {channel_id}[/yellow]")


@subs_app.command("clear")
def subs_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Remove every subscription."""
    if not yes and not typer.confirm("Remove all subscriptions?"):
        raise typer.Abort()

    async def _clear(services: AppServices):
        await services.stores.subscriptions.clear()

    _run(_clear)
    rprint("[green]✓ All subscriptions removed[/green]")


# Settings commands


@settings_app.command("show")
def settings_show():
    """Show the current feed settings."""

    async def _read(services: AppServices):
        return await services.stores.settings.read()

    current = _run(_read)
    _print_json(current.to_record())


@settings_app.command("set")
def settings_set(
    pairs: list[str] = typer.Argument(..., help="KEY=VALUE pairs, e.g. per_page=40 sortOrder=oldest"),
):
    """Update feed settings."""
    partial: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            rprint(f"[red]✗ Expected KEY=VALUE, got {escape(pair)}[/red]")
            raise typer.Exit(2)
        # YAML scalars give ints and booleans their natural types
        partial[key.strip()] = yaml.safe_load(value)

    async def _write(services: AppServices):
        return await services.stores.settings.write(partial)

    updated = _run(_write)
    rprint("[green]✓ Settings updated[/green]")
    _print_json(updated.to_record())


if __name__ == "__main__":
    app()
