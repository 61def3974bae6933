"""Canonical schema (Pydantic) - markets, spawn rules, messages, operations."""

from predcascade.models.market import MAX_AMOUNT, Bet, MarketInfo, MarketState, MarketTreeNode
from predcascade.models.messages import (
    ChildMarketLinked,
    Envelope,
    MarketCreationRequest,
    MarketRegistered,
    Message,
    ResolutionNotification,
)
from predcascade.models.spawn import (
    CustomLogicTrigger,
    MarketResolutionTrigger,
    PendingSpawn,
    SpawnEngineState,
    SpawnRule,
    SpawnTemplate,
    TimeDelayTrigger,
    TriggerCondition,
)

__all__ = [
    "MAX_AMOUNT",
    "Bet",
    "MarketInfo",
    "MarketState",
    "MarketTreeNode",
    "ChildMarketLinked",
    "Envelope",
    "MarketCreationRequest",
    "MarketRegistered",
    "Message",
    "ResolutionNotification",
    "CustomLogicTrigger",
    "MarketResolutionTrigger",
    "PendingSpawn",
    "SpawnEngineState",
    "SpawnRule",
    "SpawnTemplate",
    "TimeDelayTrigger",
    "TriggerCondition",
]
