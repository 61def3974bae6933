"""Log subcommand: stats, tail."""

from __future__ import annotations

import typer

from predcascade.storage.db import get_connection, init_schema
from predcascade.storage.message_log import log_stats, stream_messages

app = typer.Typer(help="Delivered message log")


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show message log statistics (counts, time range, by kind)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total messages: {s['total_messages']}")
        typer.echo(f"Min delivered_at: {s.get('min_delivered_at')}")
        typer.echo(f"Max delivered_at: {s.get('max_delivered_at')}")
        for row in s["by_kind"]:
            typer.echo(f"  {row['kind']}  {row['count']}")
    finally:
        conn.close()


@app.command("tail")
def tail(
    ctx: typer.Context,
    kind: str | None = typer.Option(None, "--kind", "-k", help="Filter by message kind"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max messages"),
) -> None:
    """Print delivered messages in order."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        for env in stream_messages(conn, kind=kind, limit=limit):
            typer.echo(f"{env.sender} -> {env.receiver}  {env.message.model_dump_json()}")
    finally:
        conn.close()
