"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from predcascade.models.market import Bet, MarketInfo, MarketState, MarketTreeNode
from predcascade.models.spawn import PendingSpawn, SpawnRule


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found")


# --- Markets ---
class MarketsListResponse(BaseModel):
    markets: list[MarketInfo]
    total: int


class MarketResponse(BaseModel):
    market: MarketState


class OddsResponse(BaseModel):
    market_id: str
    total_staked: int
    odds: dict[str, float] = Field(..., description="Decimal odds; 0.0 means no stake on that outcome")


class UserBetsResponse(BaseModel):
    market_id: str
    bettor: str
    bets: dict[str, list[Bet]]


class ChildrenResponse(BaseModel):
    parent_market_id: str
    children: list[MarketInfo]


class TreeResponse(BaseModel):
    root: MarketTreeNode
    size: int


# --- Spawn engine ---
class RulesResponse(BaseModel):
    rules: list[SpawnRule]
    admin: str | None = None


class SpawnsResponse(BaseModel):
    spawns: list[PendingSpawn]
    total: int


# --- Message log ---
class MessagesStatsResponse(BaseModel):
    total_messages: int
    min_delivered_at: int | None
    max_delivered_at: int | None
    by_kind: list[dict[str, Any]]
