"""Log subcommand: export, stats, tail."""

from __future__ import annotations

import json

import typer

from bbforecast.storage.db import get_connection, init_schema
from bbforecast.storage.event_log import list_events, log_stats
from bbforecast.storage.export import export_events_to_parquet

app = typer.Typer(help="Ledger event log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    market: int | None = typer.Option(None, "--market", "-m", help="Filter by market ID"),
    output: str = typer.Option("events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export ledger events to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_events_to_parquet(conn, output, market_id=market)
        typer.echo(f"Exported {count} events to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show event log statistics (counts, time range, by type and market)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total events: {s['total_events']}")
        typer.echo(f"Min emitted_at: {s.get('min_emitted_at')}")
        typer.echo(f"Max emitted_at: {s.get('max_emitted_at')}")
        for event_type, count in s.get("by_type", {}).items():
            typer.echo(f"  {event_type}: {count}")
        if s.get("by_market"):
            typer.echo("By market (top 20):")
            for row in s["by_market"]:
                typer.echo(f"  {row['market_id']}  {row['count']}")
    finally:
        conn.close()


@app.command("tail")
def tail(
    ctx: typer.Context,
    market: int | None = typer.Option(None, "--market", "-m", help="Filter by market ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max events"),
) -> None:
    """Print events as JSON lines, oldest first."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        for row in list_events(conn, market_id=market, limit=limit):
            typer.echo(json.dumps(row["payload"], sort_keys=True))
    finally:
        conn.close()
