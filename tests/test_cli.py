"""CLI commands against a temporary database."""

import pytest
from typer.testing import CliRunner

from predcascade.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    cfg = tmp_path / "config"
    cfg.mkdir()
    db_path = (tmp_path / "cli.duckdb").as_posix()
    (cfg / "default.toml").write_text(
        f'[storage]\ndb_path = "{db_path}"\n\n[logging]\nlevel = "WARNING"\n'
    )
    return cfg


def _run(config_dir, *args: str, caller: str = "alice"):
    return runner.invoke(app, ["-C", str(config_dir), "--as", caller, *args])


def test_market_lifecycle(config_dir):
    r = _run(config_dir, "market", "create", "Who wins the election?", "-o", "Yes", "-o", "No")
    assert r.exit_code == 0, r.output
    assert "Created market_0" in r.output

    r = _run(config_dir, "market", "bet", "market_0", "Yes", "100", caller="bob")
    assert r.exit_code == 0
    assert "Total staked: 100" in r.output
    _run(config_dir, "market", "bet", "market_0", "No", "50", caller="carol")

    r = _run(config_dir, "market", "odds", "market_0")
    assert "1.50" in r.output and "3.00" in r.output

    r = _run(config_dir, "market", "resolve", "market_0", "Yes", caller="mallory")
    assert "Resolution not applied" in r.output

    r = _run(config_dir, "market", "resolve", "market_0", "Yes")
    assert r.exit_code == 0
    assert "Resolved market_0 -> Yes" in r.output

    r = _run(config_dir, "market", "resolve", "market_0", "Yes")
    assert "Resolution not applied" in r.output
    assert "Resolved market_0" not in r.output

    r = _run(config_dir, "market", "show", "market_0")
    assert "resolved -> Yes" in r.output

    r = _run(config_dir, "market", "bets", "market_0", "--bettor", "bob")
    assert "Yes  100" in r.output


def test_sweep_and_tree(config_dir):
    _run(config_dir, "market", "create", "Who wins the election?", "-o", "Yes", "-o", "No")
    _run(config_dir, "market", "resolve", "market_0", "Yes")

    r = _run(config_dir, "spawns", "list")
    assert "Total: 1" in r.output

    r = _run(config_dir, "spawns", "process")
    assert r.exit_code == 0
    assert "Processed 1 pending spawn(s)." in r.output
    assert "spawned market_1: What will be the economic impact of Yes?" in r.output

    r = _run(config_dir, "spawns", "process")
    assert "Processed 0 pending spawn(s)." in r.output

    r = _run(config_dir, "tree", "show", "market_0")
    assert "- market_0: Who wins the election? (resolved)" in r.output
    assert "market_1" in r.output

    r = _run(config_dir, "tree", "children", "market_0")
    assert "market_1" in r.output

    r = _run(config_dir, "log", "stats")
    assert "resolution_notification" in r.output


def test_rules_commands(config_dir):
    r = _run(config_dir, "rules", "list")
    assert "political_consequences" in r.output

    r = _run(
        config_dir, "rules", "create", "follow", "-t", "After {outcome}?", "-o", "A", "-o", "B",
        "--trigger", "time_delay", "--delay", "0",
    )
    assert "Rule follow saved." in r.output

    r = _run(config_dir, "rules", "toggle", "follow", "--off", caller="mallory")
    assert "Rule not updated" in r.output
    r = _run(config_dir, "rules", "toggle", "follow", "--off")
    assert "Rule follow deactivated." in r.output

    r = _run(config_dir, "rules", "create", "x", "-t", "Q", "-o", "A", "-o", "B", "--trigger", "bogus")
    assert r.exit_code == 1


def test_unknown_market_reports_error(config_dir):
    r = _run(config_dir, "market", "show", "market_42")
    assert r.exit_code == 1


def test_rejected_creation(config_dir):
    r = _run(config_dir, "market", "create", "Q?", "-o", "Only")
    assert r.exit_code == 1
    assert "rejected" in r.output


def test_config_rule_without_trigger_is_reported(config_dir):
    with (config_dir / "default.toml").open("a") as f:
        f.write('\n[[spawn.default_rules]]\nrule_id = "broken"\nquestion_template = "Q {outcome}"\noutcomes = ["A", "B"]\n')
    r = _run(config_dir, "rules", "list")
    assert r.exit_code == 1
