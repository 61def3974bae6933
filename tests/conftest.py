"""Shared fixtures: a controllable clock and a host wired to it."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from predcascade.runtime.host import Host
from predcascade.storage.db import get_connection, init_schema

T0 = 1_700_000_000_000  # ms epoch
HOUR_MS = 3600 * 1000


class FakeClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def host(clock: FakeClock) -> Host:
    h = Host(clock=clock)
    h.initialize()
    return h


@pytest.fixture
def strict_host(clock: FakeClock) -> Host:
    h = Host(clock=clock, strict=True)
    h.initialize()
    return h


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()
