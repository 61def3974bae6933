"""Built-in spawn rules and parsing of [[spawn.default_rules]] config tables."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from predcascade.errors import InvalidParameters
from predcascade.models.spawn import (
    MarketResolutionTrigger,
    SpawnRule,
    SpawnTemplate,
    TriggerCondition,
)

_DAY = 24 * 3600

_trigger_adapter: TypeAdapter[TriggerCondition] = TypeAdapter(TriggerCondition)


def builtin_rules(created_by: str) -> list[SpawnRule]:
    return [
        SpawnRule(
            rule_id="political_consequences",
            trigger_condition=MarketResolutionTrigger(market_pattern="election", outcome_pattern=""),
            spawn_template=SpawnTemplate(
                question_template="What will be the economic impact of {outcome}?",
                outcomes=[
                    "Significant positive impact",
                    "Moderate positive impact",
                    "No significant impact",
                    "Moderate negative impact",
                    "Significant negative impact",
                ],
                expiry_offset_seconds=30 * _DAY,
                seed_liquidity_ratio=0.10,
            ),
            created_by=created_by,
        ),
        SpawnRule(
            rule_id="sports_aftermath",
            trigger_condition=MarketResolutionTrigger(market_pattern="championship", outcome_pattern=""),
            spawn_template=SpawnTemplate(
                question_template="How will {outcome} affect team performance next season?",
                outcomes=[
                    "Significantly better",
                    "Slightly better",
                    "No change",
                    "Slightly worse",
                    "Significantly worse",
                ],
                expiry_offset_seconds=90 * _DAY,
                seed_liquidity_ratio=0.05,
            ),
            created_by=created_by,
        ),
    ]


def rule_from_config(raw: dict[str, Any], created_by: str) -> SpawnRule:
    """Build a rule from a flat config table (template fields beside rule_id).

    The trigger_condition subtable is required; a rule without one could never fire.
    """
    trigger = raw.get("trigger_condition")
    if not trigger:
        raise InvalidParameters("spawn rule has no trigger_condition", rule_id=raw.get("rule_id"))
    return SpawnRule(
        rule_id=raw["rule_id"],
        trigger_condition=_trigger_adapter.validate_python(trigger),
        spawn_template=SpawnTemplate(
            question_template=raw["question_template"],
            outcomes=list(raw.get("outcomes") or []),
            expiry_offset_seconds=int(raw.get("expiry_offset_seconds", 0)),
            seed_liquidity_ratio=float(raw.get("seed_liquidity_ratio", 0.0)),
        ),
        active=bool(raw.get("active", True)),
        created_by=created_by,
    )


def default_rules(created_by: str, configured: list[dict[str, Any]] | None = None) -> list[SpawnRule]:
    """Configured rules when present, otherwise the built-ins."""
    if configured:
        return [rule_from_config(r, created_by) for r in configured]
    return builtin_rules(created_by)
