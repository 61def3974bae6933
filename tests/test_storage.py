"""DuckDB persistence: instance states and the delivered message log."""

from predcascade.models.messages import MarketRegistered, ResolutionNotification
from predcascade.runtime.host import Host
from predcascade.storage.instances import list_instances, load_host, save_host, upsert_instance
from predcascade.storage.message_log import log_stats, stream_messages

from conftest import HOUR_MS, T0


def _populated(clock) -> Host:
    host = Host(clock=clock)
    host.initialize()
    m = host.create_market("alice", "Who wins the election?", ["Yes", "No"], T0 + HOUR_MS)
    host.place_bet("bob", m, "Yes", 100)
    host.resolve_market("alice", m, "Yes")
    host.process_pending_spawns()
    return host


def test_save_and_load_roundtrip(temp_db, clock):
    host = _populated(clock)
    save_host(temp_db, host)
    assert host.delivered == []

    restored = load_host(temp_db, Host(clock=clock))
    assert sorted(restored.markets) == sorted(host.markets)
    for market_id, market in host.markets.items():
        assert restored.market(market_id).state == market.state
    assert restored.registry.state == host.registry.state
    assert restored.spawn_engine.state == host.spawn_engine.state
    assert restored.factory.state.market_count == 2

    # Restored host keeps counting and does not reinstall defaults
    restored.initialize()
    assert restored.create_market("carol", "Another?", ["A", "B"], T0 + HOUR_MS) == "market_2"


def test_list_instances(temp_db, clock):
    save_host(temp_db, _populated(clock))
    rows = list_instances(temp_db)
    kinds = {r["instance_id"]: r["kind"] for r in rows}
    assert kinds["registry"] == "registry"
    assert kinds["spawn-handler"] == "spawn_engine"
    assert kinds["factory"] == "factory"
    assert kinds["market_0"] == "market"
    assert kinds["market_1"] == "market"


def test_kind_mismatch_is_skipped(temp_db, clock):
    upsert_instance(temp_db, "registry", "factory", '{"market_count": 3}')
    host = load_host(temp_db, Host(clock=clock))
    assert len(host.registry) == 0


def test_message_log(temp_db, clock):
    host = _populated(clock)
    save_host(temp_db, host)
    stats = log_stats(temp_db)
    by_kind = {r["kind"]: r["count"] for r in stats["by_kind"]}
    assert by_kind["market_registered"] == 2
    assert by_kind["resolution_notification"] == 1
    assert by_kind["market_creation_request"] == 1
    assert by_kind["child_market_linked"] == 1
    assert stats["total_messages"] == sum(by_kind.values())
    assert stats["min_delivered_at"] == T0

    notes = stream_messages(temp_db, kind="resolution_notification")
    assert len(notes) == 1
    assert isinstance(notes[0].message, ResolutionNotification)
    assert notes[0].receiver == "spawn-handler"
    assert notes[0].message.total_staked == 100

    first = stream_messages(temp_db, limit=1)
    assert isinstance(first[0].message, MarketRegistered)


def test_empty_log_stats(temp_db):
    stats = log_stats(temp_db)
    assert stats["total_messages"] == 0
    assert stats["by_kind"] == []
