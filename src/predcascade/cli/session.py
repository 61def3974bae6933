"""Shared CLI plumbing: load the host from DuckDB, run, deliver, save."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from predcascade.errors import CascadeError
from predcascade.runtime.host import Host
from predcascade.storage.db import get_connection, init_schema
from predcascade.storage.instances import load_host, save_host


@contextmanager
def open_host(ctx: typer.Context, save: bool = True) -> Iterator[Host]:
    """Yield a host restored from the configured database.

    On success the queued messages are delivered and state is committed. A
    CascadeError from initialization or the body is reported and exits with status 1 without
    committing.
    """
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        try:
            host = load_host(conn, Host.from_settings(settings))
            host.initialize()
            yield host
            host.deliver_all()
        except CascadeError as e:
            typer.echo(f"Error [{e.code}]: {e.message}", err=True)
            raise typer.Exit(1)
        if save:
            save_host(conn, host)
    finally:
        conn.close()


def caller_of(ctx: typer.Context) -> str:
    return ctx.obj["caller"]
