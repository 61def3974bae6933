"""Message log append and query - audit trail of delivered messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from predcascade.models.messages import Envelope, message_adapter

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def prepare_message_row(envelope: Envelope, delivered_at: int) -> tuple[str, str, str, str, int]:
    """Build a message_log row: (sender, receiver, kind, payload_json, delivered_at)."""
    payload_json = envelope.message.model_dump_json()
    return (envelope.sender, envelope.receiver, envelope.message.kind, payload_json, delivered_at)


def append_messages_batch(conn: DuckDBPyConnection, rows: list[tuple[str, str, str, str, int]]) -> None:
    if not rows:
        return
    conn.executemany(
        """
        INSERT INTO message_log (sender, receiver, kind, payload, delivered_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        rows,
    )


def stream_messages(
    conn: DuckDBPyConnection,
    kind: str | None = None,
    limit: int | None = None,
) -> list[Envelope]:
    """Delivered messages in delivery order, decoded back to their models."""
    sql = "SELECT sender, receiver, payload FROM message_log"
    params: list[Any] = []
    if kind:
        sql += " WHERE kind = ?"
        params.append(kind)
    sql += " ORDER BY id"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    rows = conn.execute(sql, params).fetchall()
    return [
        Envelope(sender=r[0], receiver=r[1], message=message_adapter.validate_json(r[2]))
        for r in rows
    ]


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return message log statistics: total count, time range, count by kind."""
    total = conn.execute("SELECT COUNT(*) FROM message_log").fetchone()[0]
    range_row = conn.execute("SELECT MIN(delivered_at), MAX(delivered_at) FROM message_log").fetchone()
    by_kind = conn.execute(
        "SELECT kind, COUNT(*) AS cnt FROM message_log GROUP BY kind ORDER BY cnt DESC"
    ).fetchall()
    return {
        "total_messages": total,
        "min_delivered_at": range_row[0],
        "max_delivered_at": range_row[1],
        "by_kind": [{"kind": r[0], "count": r[1]} for r in by_kind],
    }
