"""Trigger matching and template fill.

Patterns are plain substrings compared case-insensitively, not regular
expressions: "election" matches "Who wins the ELECTION?". An empty pattern
matches everything.
"""

from __future__ import annotations

import math
from decimal import Decimal

from predcascade.models.spawn import (
    CustomLogicTrigger,
    MarketResolutionTrigger,
    TimeDelayTrigger,
    TriggerCondition,
)

PARENT_QUESTION_FILLER = "the previous event"


def matches(condition: TriggerCondition, question: str, outcome: str) -> bool:
    """True if condition fires for a market resolved to outcome."""
    if isinstance(condition, MarketResolutionTrigger):
        return (
            condition.market_pattern.casefold() in question.casefold()
            and condition.outcome_pattern.casefold() in outcome.casefold()
        )
    if isinstance(condition, TimeDelayTrigger):
        return True
    if isinstance(condition, CustomLogicTrigger):
        return False
    raise TypeError(f"unknown trigger condition: {type(condition).__name__}")


def is_immediate(condition: TriggerCondition) -> bool:
    """Zero-delay TimeDelay spawns bypass the pending queue."""
    return isinstance(condition, TimeDelayTrigger) and condition.delay_seconds == 0


def fill_template(template: str, parent_market_id: str, outcome: str) -> str:
    """Substitute {parent_market_id}, then {outcome}, then {parent_question}.

    The parent question text is not carried with the resolution context, so
    {parent_question} always becomes a fixed filler phrase.
    """
    return (
        template.replace("{parent_market_id}", parent_market_id)
        .replace("{outcome}", outcome)
        .replace("{parent_question}", PARENT_QUESTION_FILLER)
    )


def seed_liquidity(total_stake: int, ratio: float) -> int:
    """floor(total_stake * ratio), using the ratio's decimal text so 150 * 0.1 is 15."""
    return math.floor(Decimal(total_stake) * Decimal(str(ratio)))
