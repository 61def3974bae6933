"""FastAPI read-only views over the committed market, registry and spawn state."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predcascade.api.schemas import (
    ChildrenResponse,
    HealthResponse,
    MarketResponse,
    MarketsListResponse,
    MessagesStatsResponse,
    OddsResponse,
    RulesResponse,
    SpawnsResponse,
    TreeResponse,
    UserBetsResponse,
)
from predcascade.config import get_settings
from predcascade.errors import CascadeError, NotFound
from predcascade.runtime.host import Host
from predcascade.storage.db import get_connection, init_schema
from predcascade.storage.instances import load_host
from predcascade.storage.message_log import log_stats

# Set by run_api() so handlers read the same config the CLI used.
_config_profile: str | None = None
_config_dir: Path | None = None


def _get_conn():
    settings = get_settings(_config_profile, _config_dir)
    return get_connection(settings.db_path, read_only=True)


def _get_host() -> Host:
    """Load a fresh host snapshot for one request."""
    settings = get_settings(_config_profile, _config_dir)
    conn = _get_conn()
    try:
        return load_host(conn, Host.from_settings(settings))
    finally:
        conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure schema exists before read-only connections open the file
    settings = get_settings(_config_profile, _config_dir)
    conn = get_connection(settings.db_path, read_only=False)
    try:
        init_schema(conn)
    finally:
        conn.close()
    yield


app = FastAPI(title="PredCascade API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.exception_handler(CascadeError)
async def cascade_error_handler(request: Request, exc: CascadeError) -> JSONResponse:
    status_code = 404 if isinstance(exc, NotFound) else 400
    return _error_json(exc.code, exc.message, status_code)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    roots_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> MarketsListResponse:
    """Registered markets with optional limit/offset."""
    host = _get_host()
    all_markets = host.registry.roots() if roots_only else host.registry.list_markets()
    page = [host.live_info(m) for m in all_markets[offset : offset + limit]]
    return MarketsListResponse(markets=page, total=len(all_markets))


@app.get("/markets/{market_id}", response_model=MarketResponse)
def market_snapshot(market_id: str) -> MarketResponse:
    return MarketResponse(market=_get_host().market(market_id).state)


@app.get("/markets/{market_id}/odds", response_model=OddsResponse)
def market_odds(market_id: str) -> OddsResponse:
    market = _get_host().market(market_id)
    return OddsResponse(market_id=market_id, total_staked=market.state.total_staked, odds=market.odds())


@app.get("/markets/{market_id}/bets/{bettor}", response_model=UserBetsResponse)
def market_user_bets(market_id: str, bettor: str) -> UserBetsResponse:
    market = _get_host().market(market_id)
    return UserBetsResponse(market_id=market_id, bettor=bettor, bets=market.user_bets(bettor))


@app.get("/markets/{market_id}/children", response_model=ChildrenResponse)
def market_children(market_id: str) -> ChildrenResponse:
    host = _get_host()
    children = [host.live_info(c) for c in host.registry.get_child_markets(market_id)]
    return ChildrenResponse(parent_market_id=market_id, children=children)


@app.get("/markets/{market_id}/tree", response_model=TreeResponse)
def market_tree(market_id: str) -> TreeResponse:
    host = _get_host()
    root = host.live_tree(host.registry.get_market_tree(market_id))
    return TreeResponse(root=root, size=root.size())


@app.get("/rules", response_model=RulesResponse)
def rules_list() -> RulesResponse:
    engine = _get_host().spawn_engine
    return RulesResponse(rules=engine.list_rules(), admin=engine.state.admin)


@app.get("/spawns", response_model=SpawnsResponse)
def spawns_list(include_processed: bool = True) -> SpawnsResponse:
    spawns = _get_host().spawn_engine.list_pending(include_processed=include_processed)
    return SpawnsResponse(spawns=spawns, total=len(spawns))


@app.get("/messages/stats", response_model=MessagesStatsResponse)
def messages_stats() -> MessagesStatsResponse:
    conn = _get_conn()
    try:
        data = log_stats(conn)
        return MessagesStatsResponse(**data)
    finally:
        conn.close()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    import uvicorn
    uvicorn.run("predcascade.api.main:app", host=host, port=port, reload=False)
