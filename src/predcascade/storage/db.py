"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS message_seq START 1;

-- Latest committed state per instance (market, registry, spawn engine, factory)
CREATE TABLE IF NOT EXISTS instances (
    instance_id     VARCHAR PRIMARY KEY,
    kind            VARCHAR NOT NULL,
    state           JSON NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Delivered cross-instance messages (append-only audit log)
CREATE TABLE IF NOT EXISTS message_log (
    id              BIGINT PRIMARY KEY DEFAULT nextval('message_seq'),
    sender          VARCHAR NOT NULL,
    receiver        VARCHAR NOT NULL,
    kind            VARCHAR NOT NULL,
    payload         JSON NOT NULL,
    delivered_at    BIGINT NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Open the database file, creating its directory for writers. ":memory:" is passed through.

    The API opens read_only so a CLI process can keep writing; the caller closes.
    """
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create the sequence and tables; every statement is IF NOT EXISTS, so reruns are no-ops."""
    conn.execute(SCHEMA_SQL)
