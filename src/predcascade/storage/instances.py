"""Instance state persistence - load a Host from DuckDB and save it back."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from predcascade.runtime.host import Host
from predcascade.storage.message_log import append_messages_batch, prepare_message_row

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


def upsert_instance(conn: DuckDBPyConnection, instance_id: str, kind: str, state_json: str) -> None:
    conn.execute(
        """
        INSERT INTO instances (instance_id, kind, state, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (instance_id) DO UPDATE SET
            kind = excluded.kind,
            state = excluded.state,
            updated_at = excluded.updated_at
        """,
        [instance_id, kind, state_json, int(time.time() * 1000)],
    )


def save_host(conn: DuckDBPyConnection, host: Host) -> None:
    """Commit every instance's state and flush delivered messages to the log."""
    for inst in host.all_instances():
        upsert_instance(conn, inst.instance_id, inst.kind, inst.state.model_dump_json())
    append_messages_batch(conn, [prepare_message_row(env, ts) for env, ts in host.delivered])
    host.delivered = []


def load_host(conn: DuckDBPyConnection, host: Host) -> Host:
    """Restore committed instance states into a freshly constructed host."""
    rows = conn.execute("SELECT instance_id, kind, state FROM instances ORDER BY instance_id").fetchall()
    for instance_id, kind, state_json in rows:
        if kind == "market":
            inst = host.new_market_instance(instance_id)
        else:
            inst = host.instance(instance_id)
            if inst.kind != kind:
                log.warning("instance_kind_mismatch", instance_id=instance_id, stored=kind, expected=inst.kind)
                continue
        inst.restore(state_json)
    return host


def list_instances(conn: DuckDBPyConnection) -> list[dict]:
    rows = conn.execute("SELECT instance_id, kind, updated_at FROM instances ORDER BY kind, instance_id").fetchall()
    columns = ["instance_id", "kind", "updated_at"]
    return [dict(zip(columns, r)) for r in rows]
