"""Tree subcommand: show, children, list."""

from __future__ import annotations

import typer

from predcascade.cli.session import open_host
from predcascade.models.market import MarketTreeNode

app = typer.Typer(help="Market tree queries (registry)")


def _print_tree(node: MarketTreeNode, depth: int = 0) -> None:
    m = node.market
    mark = " (resolved)" if m.resolved else ""
    typer.echo(f"{'  ' * depth}- {m.market_id}: {m.question}{mark}")
    for child in node.children:
        _print_tree(child, depth + 1)


@app.command("show")
def show(ctx: typer.Context, root_id: str = typer.Argument(..., help="Root market ID")) -> None:
    """Print the market tree below root_id."""
    with open_host(ctx, save=False) as host:
        _print_tree(host.live_tree(host.registry.get_market_tree(root_id)))


@app.command("children")
def children(ctx: typer.Context, parent_id: str = typer.Argument(..., help="Parent market ID")) -> None:
    """List direct children of a market."""
    with open_host(ctx, save=False) as host:
        for info in host.registry.get_child_markets(parent_id):
            typer.echo(f"  {info.market_id}: {info.question}")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    roots_only: bool = typer.Option(False, "--roots", help="Show only markets without a registered parent"),
) -> None:
    """List registered markets."""
    with open_host(ctx, save=False) as host:
        rows = host.registry.roots() if roots_only else host.registry.list_markets()
        for info in rows:
            typer.echo(f"  {info.market_id:<12} {info.question[:60]}")
        typer.echo(f"Total: {len(rows)} markets")
