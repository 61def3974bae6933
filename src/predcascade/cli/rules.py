"""Rules subcommand: list, create, toggle, init."""

from __future__ import annotations

import typer

from predcascade.cli.session import caller_of, open_host
from predcascade.models.operations import CreateSpawnRule, Initialize, UpdateSpawnRule
from predcascade.models.spawn import (
    CustomLogicTrigger,
    MarketResolutionTrigger,
    SpawnTemplate,
    TimeDelayTrigger,
)
from predcascade.runtime.host import SPAWN_HANDLER_ID

app = typer.Typer(help="Spawn rule management")

TRIGGERS = ("market_resolution", "time_delay", "custom_logic")


@app.command("list")
def list_rules(ctx: typer.Context) -> None:
    """List spawn rules."""
    with open_host(ctx, save=False) as host:
        for rule in host.spawn_engine.list_rules():
            flag = "on " if rule.active else "off"
            typer.echo(f"  [{flag}] {rule.rule_id:<28} {rule.trigger_condition.model_dump_json()}")
            typer.echo(f"        -> {rule.spawn_template.question_template}")


@app.command("create")
def create(
    ctx: typer.Context,
    rule_id: str = typer.Argument(..., help="Rule ID (an existing rule is overwritten)"),
    question_template: str = typer.Option(..., "--template", "-t", help="Question template"),
    outcomes: list[str] = typer.Option(..., "--outcome", "-o", help="Child outcome (repeat)"),
    trigger: str = typer.Option("market_resolution", "--trigger", help=f"One of {', '.join(TRIGGERS)}"),
    market_pattern: str = typer.Option("", "--market-pattern", help="Substring of the resolved question"),
    outcome_pattern: str = typer.Option("", "--outcome-pattern", help="Substring of the winning outcome"),
    delay_seconds: int = typer.Option(0, "--delay", help="Delay for time_delay triggers (0 = immediate)"),
    logic_hash: str = typer.Option("", "--logic-hash", help="Hash for custom_logic triggers"),
    expiry_offset: int = typer.Option(30 * 24 * 3600, "--expiry-offset", help="Child expiry offset (seconds)"),
    ratio: float = typer.Option(0.1, "--ratio", min=0.0, max=1.0, help="Seed liquidity ratio"),
) -> None:
    """Create or overwrite a spawn rule owned by the current caller."""
    if trigger == "market_resolution":
        condition = MarketResolutionTrigger(market_pattern=market_pattern, outcome_pattern=outcome_pattern)
    elif trigger == "time_delay":
        condition = TimeDelayTrigger(delay_seconds=delay_seconds)
    elif trigger == "custom_logic":
        condition = CustomLogicTrigger(logic_hash=logic_hash)
    else:
        typer.echo(f"Unknown trigger: {trigger}. Choose from: {list(TRIGGERS)}")
        raise typer.Exit(1)
    template = SpawnTemplate(
        question_template=question_template,
        outcomes=outcomes,
        expiry_offset_seconds=expiry_offset,
        seed_liquidity_ratio=ratio,
    )
    with open_host(ctx) as host:
        host.execute(
            SPAWN_HANDLER_ID,
            CreateSpawnRule(rule_id=rule_id, trigger_condition=condition, spawn_template=template),
            caller_of(ctx),
        )
        typer.echo(f"Rule {rule_id} saved.")


@app.command("toggle")
def toggle(
    ctx: typer.Context,
    rule_id: str = typer.Argument(..., help="Rule ID"),
    active: bool = typer.Option(True, "--on/--off", help="Activate or deactivate"),
) -> None:
    """Activate or deactivate a rule (creator or admin only)."""
    with open_host(ctx) as host:
        host.execute(SPAWN_HANDLER_ID, UpdateSpawnRule(rule_id=rule_id, active=active), caller_of(ctx))
        rule = host.spawn_engine.get_rule(rule_id)
        if rule.active != active:
            typer.echo("Rule not updated (caller is neither creator nor admin).")
            return
        typer.echo(f"Rule {rule_id} {'activated' if active else 'deactivated'}.")


@app.command("init")
def init(
    ctx: typer.Context,
    admin: str | None = typer.Option(None, "--admin", help="Admin identity (default: spawn.admin)"),
) -> None:
    """Initialize the spawn engine with its admin and default rules (no-op if done)."""
    with open_host(ctx) as host:
        host.execute(SPAWN_HANDLER_ID, Initialize(admin=admin or host.spawn_admin), caller_of(ctx))
        typer.echo(f"Admin: {host.spawn_engine.state.admin}  Rules: {len(host.spawn_engine.list_rules())}")
