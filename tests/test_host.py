"""End-to-end cascades through the in-process host."""

import pytest

from predcascade.config.settings import Settings
from predcascade.errors import InvalidParameters, NotFound
from predcascade.models.messages import Envelope, MarketRegistered, ResolutionNotification
from predcascade.models.operations import operation_adapter
from predcascade.models.spawn import SpawnTemplate, TimeDelayTrigger
from predcascade.runtime.host import FACTORY_ID, SPAWN_HANDLER_ID, Host

from conftest import HOUR_MS, T0


def _disable_defaults(host: Host) -> None:
    for rule in host.spawn_engine.list_rules():
        host.spawn_engine.update_spawn_rule(host.spawn_admin, rule.rule_id, False)


def _election(host: Host) -> str:
    market_id = host.create_market("alice", "Who wins the election?", ["Yes", "No"], T0 + HOUR_MS)
    host.place_bet("bob", market_id, "Yes", 100)
    host.place_bet("carol", market_id, "No", 50)
    return market_id


def test_factory_assigns_sequential_ids_and_registers(host):
    a = host.create_market("alice", "First?", ["A", "B"], T0 + HOUR_MS)
    b = host.create_market("bob", "Second?", ["A", "B"], T0 + HOUR_MS, parent_market_id=a)
    assert (a, b) == ("market_0", "market_1")
    assert host.market(a).state.creator == "alice"
    assert host.registry.get_market_by_id(b).parent_market_id == a
    assert host.market(a).state.child_markets == [b]
    assert [m.market_id for m in host.registry.get_child_markets(a)] == [b]


def test_factory_rejects_bad_outcomes(host):
    assert host.create_market("alice", "Q?", ["Only"], T0) is None
    assert host.markets == {}
    assert len(host.registry) == 0
    assert host.factory.state.market_count == 0


def test_scenario_resolution_queues_then_sweep_spawns(host):
    m1 = _election(host)
    assert host.market(m1).odds() == {"Yes": 1.5, "No": 3.0}

    host.resolve_market("alice", m1, "Yes")
    assert host.market(m1).state.resolved
    # Default election rule is a resolution trigger, so it waits for the sweep
    assert len(host.markets) == 1
    assert len(host.spawn_engine.list_pending(include_processed=False)) == 1

    assert host.process_pending_spawns() == 1
    child_id = "market_1"
    child = host.market(child_id).state
    assert child.question == "What will be the economic impact of Yes?"
    assert child.parent_market_id == m1
    assert child.seed_liquidity == 100
    assert child.creator == host.spawn_admin
    assert len(child.outcomes) == 5
    assert host.market(m1).state.child_markets == [child_id]
    assert host.registry.get_market_tree(m1).market_ids() == [m1, child_id]

    assert host.process_pending_spawns() == 0
    assert len(host.markets) == 2


def test_scenario_zero_delay_rule_spawns_on_resolution(host):
    _disable_defaults(host)
    host.spawn_engine.create_spawn_rule(
        "alice",
        "follow_up",
        TimeDelayTrigger(delay_seconds=0),
        SpawnTemplate(
            question_template="What follows {outcome}?",
            outcomes=["Good", "Bad"],
            expiry_offset_seconds=3600,
            seed_liquidity_ratio=0.10,
        ),
    )
    m1 = _election(host)
    host.resolve_market("alice", m1, "Yes")
    assert sorted(host.markets) == ["market_0", "market_1"]
    child = host.market("market_1").state
    assert child.seed_liquidity == 15
    assert child.question == "What follows Yes?"
    assert child.expiry_time == T0 + 3600 * 1000
    assert host.spawn_engine.list_pending() == []


def test_cascade_grows_a_tree(host):
    _disable_defaults(host)
    host.spawn_engine.create_spawn_rule(
        "alice",
        "chain",
        TimeDelayTrigger(delay_seconds=0),
        SpawnTemplate(question_template="Next after {outcome}?", outcomes=["A", "B"], expiry_offset_seconds=60),
    )
    root = host.create_market("alice", "Start?", ["A", "B"], T0 + HOUR_MS)
    host.resolve_market("alice", root, "A")
    host.resolve_market(host.spawn_admin, "market_1", "B")
    tree = host.registry.get_market_tree(root)
    assert tree.market_ids() == ["market_0", "market_1", "market_2"]
    assert host.market("market_2").state.question == "Next after B?"


def test_unauthorized_resolution_spawns_nothing(host):
    m1 = _election(host)
    host.resolve_market("mallory", m1, "Yes")
    assert not host.market(m1).state.resolved
    assert host.spawn_engine.list_pending() == []


def test_strict_host_surfaces_operation_errors(strict_host):
    with pytest.raises(InvalidParameters):
        strict_host.create_market("alice", "Q?", ["Only"], T0)
    with pytest.raises(NotFound):
        strict_host.place_bet("bob", "market_9", "Yes", 1)


def test_message_errors_are_logged_not_raised(strict_host):
    # Duplicate registration rejected by a strict registry during delivery
    m = strict_host.create_market("alice", "Q?", ["A", "B"], T0 + HOUR_MS)
    info = strict_host.registry.get_market_by_id(m)
    strict_host.factory.emit("registry", MarketRegistered(market_info=info))
    strict_host._collect(strict_host.factory)
    assert strict_host.deliver_all() == 1
    assert len(strict_host.registry) == 1


def test_undeliverable_messages_are_dropped(host):
    host._queue.append(
        Envelope(
            sender="x",
            receiver="nowhere",
            message=ResolutionNotification(market_id="m", question="q", winning_outcome="o", total_staked=0),
        )
    )
    assert host.deliver_all() == 1
    assert host.pending_messages == 0


def test_operations_decode_from_json(host):
    op = operation_adapter.validate_json(
        '{"op": "request_market", "question": "Q?", "outcomes": ["A", "B"], "expiry_time": %d}' % (T0 + 1)
    )
    host.execute(FACTORY_ID, op, "alice")
    host.deliver_all()
    assert host.market("market_0").state.creator == "alice"
    op = operation_adapter.validate_python({"op": "update_spawn_rule", "rule_id": "sports_aftermath", "active": False})
    host.execute(SPAWN_HANDLER_ID, op, "admin")
    assert not host.spawn_engine.get_rule("sports_aftermath").active


def test_from_settings(clock):
    settings = Settings(
        engine={"strict": True},
        spawn={"admin": "root", "default_total_stake": 500},
        runtime={"max_delivery_steps": 3},
    )
    host = Host.from_settings(settings, clock=clock)
    host.initialize()
    assert host.strict
    assert host.spawn_engine.state.admin == "root"
    assert host.spawn_engine.default_total_stake == 500
    assert host.max_delivery_steps == 3


def test_live_info_reflects_resolution(host):
    m1 = _election(host)
    host.resolve_market("alice", m1, "Yes")
    host.process_pending_spawns()
    # Registry entry stays as registered
    assert host.registry.get_market_by_id(m1).resolved is False
    assert host.live_info(host.registry.get_market_by_id(m1)).resolved is True
    tree = host.live_tree(host.registry.get_market_tree(m1))
    assert tree.market.resolved is True
    assert tree.children[0].market.resolved is False
