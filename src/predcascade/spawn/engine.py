"""Spawn-rule engine - turns resolution notifications into market-creation requests."""

from __future__ import annotations

from typing import Any

import structlog

from predcascade.errors import InvalidParameters, NotFound, Unauthorized
from predcascade.models.messages import MarketCreationRequest, ResolutionNotification
from predcascade.models.operations import (
    CreateSpawnRule,
    Initialize,
    ProcessPendingSpawns,
    UpdateSpawnRule,
)
from predcascade.models.spawn import (
    PendingSpawn,
    SpawnEngineState,
    SpawnRule,
    SpawnTemplate,
    TriggerCondition,
)
from predcascade.runtime.instance import Clock, Instance
from predcascade.spawn.defaults import default_rules
from predcascade.spawn.matching import fill_template, is_immediate, matches, seed_liquidity

log = structlog.get_logger(__name__)


class SpawnRuleEngine(Instance):
    """Holds spawn rules and the pending-spawn queue.

    On a resolution every active rule is tested. A zero-delay TimeDelay rule
    emits a creation request straight away, sized from the observed stake. Any
    other match is queued with scheduled_time = now and later promoted by
    process_pending_spawns, sized from ``default_total_stake`` because a pending
    spawn does not remember the parent's stake.
    Immediate spawns are not recorded as PendingSpawn entries, so the queue only
    audits deferred ones.
    """

    kind = "spawn_engine"
    state_model = SpawnEngineState

    def __init__(
        self,
        instance_id: str = "spawn-handler",
        factory_id: str = "factory",
        default_total_stake: int = 1000,
        configured_rules: list[dict[str, Any]] | None = None,
        clock: Clock | None = None,
        strict: bool = False,
        state: SpawnEngineState | None = None,
    ) -> None:
        super().__init__(instance_id, clock=clock, strict=strict)
        self.factory_id = factory_id
        self.default_total_stake = default_total_stake
        self.configured_rules = configured_rules
        self._state = state or SpawnEngineState()

    @property
    def state(self) -> SpawnEngineState:
        return self._state

    def execute_operation(self, operation: Any, caller: str) -> None:
        if isinstance(operation, Initialize):
            self.initialize(operation.admin)
        elif isinstance(operation, CreateSpawnRule):
            self.create_spawn_rule(caller, operation.rule_id, operation.trigger_condition, operation.spawn_template)
        elif isinstance(operation, UpdateSpawnRule):
            self.update_spawn_rule(caller, operation.rule_id, operation.active)
        elif isinstance(operation, ProcessPendingSpawns):
            self.process_pending_spawns()
        else:
            self._reject(InvalidParameters(f"unsupported operation for spawn engine: {type(operation).__name__}"))

    def handle_message(self, message: Any, sender: str) -> None:
        if isinstance(message, ResolutionNotification):
            self.on_market_resolved(message)
        else:
            log.warning("spawn_unexpected_message", kind=getattr(message, "kind", None), sender=sender)

    @property
    def initialized(self) -> bool:
        return self._state.admin is not None

    def initialize(self, admin: str) -> None:
        """Set the admin and install default rules. Later calls are no-ops."""
        if self.initialized:
            log.debug("spawn_engine_already_initialized", admin=self._state.admin)
            return
        self._state.admin = admin
        for rule in default_rules(self.instance_id, self.configured_rules):
            self._state.spawn_rules[rule.rule_id] = rule
        log.info("spawn_engine_initialized", admin=admin, rules=len(self._state.spawn_rules))

    def create_spawn_rule(
        self,
        caller: str,
        rule_id: str,
        trigger_condition: TriggerCondition,
        spawn_template: SpawnTemplate,
    ) -> None:
        """Insert or overwrite; last write wins and resets active/created_by."""
        self._state.spawn_rules[rule_id] = SpawnRule(
            rule_id=rule_id,
            trigger_condition=trigger_condition,
            spawn_template=spawn_template,
            active=True,
            created_by=caller,
        )
        log.info("spawn_rule_created", rule_id=rule_id, trigger=trigger_condition.kind, created_by=caller)

    def update_spawn_rule(self, caller: str, rule_id: str, active: bool) -> None:
        rule = self._state.spawn_rules.get(rule_id)
        if rule is None:
            self._reject(NotFound("rule not found", rule_id=rule_id))
            return
        if caller != rule.created_by and caller != self._state.admin:
            self._reject(Unauthorized("caller is neither rule creator nor admin", rule_id=rule_id, caller=caller))
            return
        rule.active = active
        log.info("spawn_rule_updated", rule_id=rule_id, active=active)

    def on_market_resolved(self, notification: ResolutionNotification) -> None:
        now = self.clock()
        for rule in list(self._state.spawn_rules.values()):
            if not rule.active:
                continue
            if not matches(rule.trigger_condition, notification.question, notification.winning_outcome):
                continue
            if is_immediate(rule.trigger_condition):
                self._emit_creation(
                    notification.market_id,
                    notification.winning_outcome,
                    rule.spawn_template,
                    notification.total_staked,
                    now,
                )
                log.info("spawn_immediate", rule_id=rule.rule_id, parent_market_id=notification.market_id)
            else:
                pending = PendingSpawn(
                    spawn_id=self._next_spawn_id(rule.rule_id, now),
                    parent_market_id=notification.market_id,
                    parent_outcome=notification.winning_outcome,
                    spawn_template=rule.spawn_template.model_copy(deep=True),
                    scheduled_time=now,
                )
                self._state.pending_spawns.append(pending)
                log.info("spawn_enqueued", rule_id=rule.rule_id, spawn_id=pending.spawn_id)

    def process_pending_spawns(self) -> int:
        """Promote every due, unprocessed spawn. Returns how many requests were emitted."""
        now = self.clock()
        emitted = 0
        for pending in self._state.pending_spawns:
            if pending.processed or pending.scheduled_time > now:
                continue
            self._emit_creation(
                pending.parent_market_id,
                pending.parent_outcome,
                pending.spawn_template,
                self.default_total_stake,
                now,
            )
            pending.processed = True
            emitted += 1
        if emitted:
            log.info("pending_spawns_processed", emitted=emitted)
        return emitted

    def _emit_creation(
        self,
        parent_market_id: str,
        outcome: str,
        template: SpawnTemplate,
        total_stake: int,
        now: int,
    ) -> None:
        self.emit(
            self.factory_id,
            MarketCreationRequest(
                parent_market_id=parent_market_id,
                question=fill_template(template.question_template, parent_market_id, outcome),
                outcomes=list(template.outcomes),
                expiry_time=now + template.expiry_offset_seconds * 1000,
                seed_liquidity=seed_liquidity(total_stake, template.seed_liquidity_ratio),
            ),
        )

    def _next_spawn_id(self, rule_id: str, now: int) -> str:
        self._state.spawn_seq += 1
        return f"{rule_id}-{now}-{self._state.spawn_seq}"

    # Reads
    def list_rules(self) -> list[SpawnRule]:
        return list(self._state.spawn_rules.values())

    def get_rule(self, rule_id: str) -> SpawnRule:
        rule = self._state.spawn_rules.get(rule_id)
        if rule is None:
            raise NotFound("rule not found", rule_id=rule_id)
        return rule

    def list_pending(self, include_processed: bool = True) -> list[PendingSpawn]:
        return [p for p in self._state.pending_spawns if include_processed or not p.processed]
