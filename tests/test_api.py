"""Read API over a prepared host."""

import pytest
from fastapi.testclient import TestClient

from predcascade.api import main as api_main
from predcascade.runtime.host import Host
from predcascade.storage.db import get_connection, init_schema
from predcascade.storage.instances import save_host

from conftest import HOUR_MS, T0


@pytest.fixture
def prepared(clock) -> Host:
    host = Host(clock=clock)
    host.initialize()
    m = host.create_market("alice", "Who wins the election?", ["Yes", "No"], T0 + HOUR_MS)
    host.place_bet("bob", m, "Yes", 100)
    host.place_bet("carol", m, "No", 50)
    host.resolve_market("alice", m, "Yes")
    return host


@pytest.fixture
def client(prepared, tmp_path, monkeypatch) -> TestClient:
    db_path = tmp_path / "api.duckdb"
    conn = get_connection(db_path)
    init_schema(conn)
    save_host(conn, prepared)
    conn.close()
    monkeypatch.setattr(api_main, "_get_host", lambda: prepared)
    monkeypatch.setattr(api_main, "_get_conn", lambda: get_connection(db_path))
    return TestClient(api_main.app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_markets_list_and_snapshot(client):
    r = client.get("/markets")
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 1
    assert data["markets"][0]["market_id"] == "market_0"

    r = client.get("/markets/market_0")
    market = r.json()["market"]
    assert market["total_staked"] == 150
    assert market["resolved"] is True
    assert market["winning_outcome"] == "Yes"


def test_odds(client):
    r = client.get("/markets/market_0/odds")
    assert r.status_code == 200
    assert r.json()["odds"] == {"Yes": 1.5, "No": 3.0}


def test_user_bets(client):
    r = client.get("/markets/market_0/bets/bob")
    bets = r.json()["bets"]
    assert list(bets) == ["Yes"]
    assert bets["Yes"][0]["amount"] == 100


def test_tree_after_sweep(client, prepared):
    prepared.process_pending_spawns()
    r = client.get("/markets/market_0/tree")
    assert r.status_code == 200
    body = r.json()
    assert body["size"] == 2
    assert body["root"]["children"][0]["market"]["market_id"] == "market_1"
    r = client.get("/markets/market_0/children")
    assert [c["market_id"] for c in r.json()["children"]] == ["market_1"]
    r = client.get("/markets", params={"roots_only": True})
    assert r.json()["total"] == 1


def test_rules_and_spawns(client):
    rules = client.get("/rules").json()
    assert rules["admin"] == "admin"
    assert {r["rule_id"] for r in rules["rules"]} == {"political_consequences", "sports_aftermath"}
    spawns = client.get("/spawns").json()
    assert spawns["total"] == 1
    assert spawns["spawns"][0]["parent_outcome"] == "Yes"


def test_messages_stats(client):
    r = client.get("/messages/stats")
    assert r.status_code == 200
    assert r.json()["total_messages"] == 2


def test_unknown_market_is_404(client):
    r = client.get("/markets/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"
    r = client.get("/markets/nope/tree")
    assert r.status_code == 404


def test_resolution_status_is_live(client, prepared):
    prepared.process_pending_spawns()
    markets = {m["market_id"]: m for m in client.get("/markets").json()["markets"]}
    assert markets["market_0"]["resolved"] is True
    assert markets["market_1"]["resolved"] is False

    root = client.get("/markets/market_0/tree").json()["root"]
    assert root["market"]["resolved"] is True
    assert root["children"][0]["market"]["resolved"] is False

    prepared.resolve_market(prepared.spawn_admin, "market_1", "No significant impact")
    children = client.get("/markets/market_0/children").json()["children"]
    assert children[0]["resolved"] is True
