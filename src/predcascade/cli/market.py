"""Market subcommand: create, bet, resolve, show, odds, bets."""

from __future__ import annotations

import typer

from predcascade.cli.session import caller_of, open_host

app = typer.Typer(help="Create, bet on and resolve markets")


@app.command("create")
def create(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Market question"),
    outcomes: list[str] = typer.Option(..., "--outcome", "-o", help="Outcome (repeat, at least 2)"),
    expires_in: int = typer.Option(3600, "--expires-in", help="Seconds until betting closes"),
    parent: str | None = typer.Option(None, "--parent", help="Parent market ID"),
) -> None:
    """Create a market through the factory; the caller becomes its creator."""
    with open_host(ctx) as host:
        expiry_time = host.clock() + expires_in * 1000
        market_id = host.create_market(caller_of(ctx), question, outcomes, expiry_time, parent_market_id=parent)
        if market_id is None:
            typer.echo("Market rejected (need at least 2 distinct outcomes).")
            raise typer.Exit(1)
        typer.echo(f"Created {market_id}")


@app.command("bet")
def bet(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    outcome: str = typer.Argument(..., help="Outcome to back"),
    amount: int = typer.Argument(..., help="Stake (token units)"),
) -> None:
    """Place a bet as the current caller."""
    with open_host(ctx) as host:
        before = host.market(market_id).state.total_staked
        host.place_bet(caller_of(ctx), market_id, outcome, amount)
        after = host.market(market_id).state.total_staked
        if after == before and amount > 0:
            typer.echo("Bet not recorded (resolved, expired or unknown outcome).")
        else:
            typer.echo(f"Total staked: {after}")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    outcome: str = typer.Argument(..., help="Winning outcome"),
) -> None:
    """Resolve a market (creator only) and run the immediate cascade."""
    with open_host(ctx) as host:
        known = set(host.markets)
        market = host.market(market_id)
        was_resolved = market.state.resolved
        host.resolve_market(caller_of(ctx), market_id, outcome)
        if was_resolved or not market.state.resolved:
            typer.echo("Resolution not applied (already resolved, unknown outcome or not the creator).")
            return
        typer.echo(f"Resolved {market_id} -> {outcome}")
        for new_id in sorted(set(host.markets) - known):
            typer.echo(f"  spawned {new_id}: {host.market(new_id).state.question}")


@app.command("show")
def show(ctx: typer.Context, market_id: str = typer.Argument(..., help="Market ID")) -> None:
    """Show a market snapshot."""
    with open_host(ctx, save=False) as host:
        s = host.market(market_id).state
        typer.echo(f"{s.market_id}: {s.question}")
        typer.echo(f"  outcomes: {', '.join(s.outcomes)}")
        typer.echo(f"  total staked: {s.total_staked}  seed liquidity: {s.seed_liquidity}")
        typer.echo(f"  creator: {s.creator}  expiry: {s.expiry_time}")
        status = f"resolved -> {s.winning_outcome}" if s.resolved else "open"
        typer.echo(f"  status: {status}")
        if s.parent_market_id:
            typer.echo(f"  parent: {s.parent_market_id}")
        if s.child_markets:
            typer.echo(f"  children: {', '.join(s.child_markets)}")


@app.command("odds")
def odds(ctx: typer.Context, market_id: str = typer.Argument(..., help="Market ID")) -> None:
    """Show decimal odds per outcome (0.00 = no stake on that outcome)."""
    with open_host(ctx, save=False) as host:
        market = host.market(market_id)
        for outcome, value in market.odds().items():
            typer.echo(f"  {outcome:<30} {value:.2f}  ({market.outcome_total(outcome)} staked)")


@app.command("bets")
def bets(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    bettor: str | None = typer.Option(None, "--bettor", help="Bettor (default: current caller)"),
) -> None:
    """List a bettor's bets on a market."""
    with open_host(ctx, save=False) as host:
        who = bettor or caller_of(ctx)
        by_outcome = host.market(market_id).user_bets(who)
        if not by_outcome:
            typer.echo(f"No bets by {who}.")
        for outcome, placed in by_outcome.items():
            for b in placed:
                typer.echo(f"  {outcome}  {b.amount}  at {b.timestamp}")
