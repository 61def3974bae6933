"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from predcascade.config import get_settings
from predcascade.config.settings import configure_logging

app = typer.Typer(
    name="predcascade",
    help="PredCascade - prediction markets that spawn follow-on markets when they resolve.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
    caller: str | None = typer.Option(
        None, "--as", help="Caller identity for operations (default: runtime.default_caller)"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {
        "settings": settings,
        "config_dir": config_dir,
        "profile": profile,
        "caller": caller or settings.default_caller,
    }


# Subcommands registered from other modules
from predcascade.cli import api_cmd, log, market, rules, spawns, tree  # noqa: E402

app.add_typer(market.app, name="market")
app.add_typer(tree.app, name="tree")
app.add_typer(rules.app, name="rules")
app.add_typer(spawns.app, name="spawns")
app.add_typer(log.app, name="log")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
