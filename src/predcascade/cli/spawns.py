"""Spawns subcommand: list, process."""

from __future__ import annotations

import typer

from predcascade.cli.session import caller_of, open_host

app = typer.Typer(help="Pending spawn queue")


@app.command("list")
def list_spawns(
    ctx: typer.Context,
    all_: bool = typer.Option(False, "--all", help="Include processed spawns"),
) -> None:
    """List pending spawns."""
    with open_host(ctx, save=False) as host:
        rows = host.spawn_engine.list_pending(include_processed=all_)
        for p in rows:
            flag = "done" if p.processed else "due "
            typer.echo(f"  [{flag}] {p.spawn_id}  parent={p.parent_market_id}  outcome={p.parent_outcome}")
        typer.echo(f"Total: {len(rows)}")


@app.command("process")
def process(ctx: typer.Context) -> None:
    """Promote due pending spawns to new markets."""
    with open_host(ctx) as host:
        known = set(host.markets)
        emitted = host.process_pending_spawns(caller_of(ctx))
        typer.echo(f"Processed {emitted} pending spawn(s).")
        for new_id in sorted(set(host.markets) - known):
            typer.echo(f"  spawned {new_id}: {host.market(new_id).state.question}")
