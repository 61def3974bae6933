"""Operations submitted to instances. Tagged by ``op``; every handler returns None."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from predcascade.models.spawn import SpawnTemplate, TriggerCondition


# --- Market ---
class CreateMarket(BaseModel):
    op: Literal["create_market"] = "create_market"
    market_id: str
    question: str
    outcomes: list[str]
    expiry_time: int
    parent_market_id: str | None = None
    seed_liquidity: int = 0


class PlaceBet(BaseModel):
    op: Literal["place_bet"] = "place_bet"
    outcome: str
    amount: int


class ResolveMarket(BaseModel):
    op: Literal["resolve_market"] = "resolve_market"
    winning_outcome: str


# --- Market factory ---
class RequestMarket(BaseModel):
    """User-initiated market creation through the factory (id assigned there)."""

    op: Literal["request_market"] = "request_market"
    question: str
    outcomes: list[str]
    expiry_time: int
    parent_market_id: str | None = None


# --- Spawn engine ---
class Initialize(BaseModel):
    op: Literal["initialize"] = "initialize"
    admin: str


class CreateSpawnRule(BaseModel):
    op: Literal["create_spawn_rule"] = "create_spawn_rule"
    rule_id: str
    trigger_condition: TriggerCondition
    spawn_template: SpawnTemplate


class UpdateSpawnRule(BaseModel):
    op: Literal["update_spawn_rule"] = "update_spawn_rule"
    rule_id: str
    active: bool


class ProcessPendingSpawns(BaseModel):
    op: Literal["process_pending_spawns"] = "process_pending_spawns"


Operation = Annotated[
    Union[
        CreateMarket,
        PlaceBet,
        ResolveMarket,
        RequestMarket,
        Initialize,
        CreateSpawnRule,
        UpdateSpawnRule,
        ProcessPendingSpawns,
    ],
    Field(discriminator="op"),
]

operation_adapter: TypeAdapter[Operation] = TypeAdapter(Operation)
