"""Spawn rules, templates, trigger conditions and pending spawns."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class MarketResolutionTrigger(BaseModel):
    """Fires when the resolved question and winning outcome contain the patterns."""

    kind: Literal["market_resolution"] = "market_resolution"
    market_pattern: str = ""
    outcome_pattern: str = ""


class TimeDelayTrigger(BaseModel):
    """Fires on every resolution. Zero delay takes the immediate spawn path."""

    kind: Literal["time_delay"] = "time_delay"
    delay_seconds: int = Field(0, ge=0)


class CustomLogicTrigger(BaseModel):
    """Reserved for pluggable logic; never fires."""

    kind: Literal["custom_logic"] = "custom_logic"
    logic_hash: str = ""


TriggerCondition = Annotated[
    Union[MarketResolutionTrigger, TimeDelayTrigger, CustomLogicTrigger],
    Field(discriminator="kind"),
]


class SpawnTemplate(BaseModel):
    """Recipe for a child market. question_template may use {parent_market_id}, {outcome}, {parent_question}."""

    question_template: str
    outcomes: list[str] = Field(default_factory=list)
    expiry_offset_seconds: int = Field(0, ge=0)
    seed_liquidity_ratio: float = Field(0.0, ge=0, le=1)


class SpawnRule(BaseModel):
    rule_id: str
    trigger_condition: TriggerCondition
    spawn_template: SpawnTemplate
    active: bool = True
    created_by: str = ""


class PendingSpawn(BaseModel):
    """Scheduled child-market creation. processed flips False -> True exactly once."""

    spawn_id: str
    parent_market_id: str
    parent_outcome: str
    spawn_template: SpawnTemplate  # snapshot at enqueue time
    scheduled_time: int  # ms epoch
    processed: bool = False


class SpawnEngineState(BaseModel):
    """Full state owned by the spawn-rule engine instance."""

    spawn_rules: dict[str, SpawnRule] = Field(default_factory=dict)
    pending_spawns: list[PendingSpawn] = Field(default_factory=list)
    admin: str | None = None
    spawn_seq: int = 0
