"""In-process host - owns instances, runs operations, routes messages FIFO."""

from __future__ import annotations

from collections import deque
from typing import Any

import structlog

from predcascade.config.settings import Settings
from predcascade.errors import CascadeError, NotFound
from predcascade.market.engine import MarketInstance
from predcascade.models.market import MarketInfo, MarketTreeNode
from predcascade.models.messages import Envelope
from predcascade.models.operations import (
    CreateMarket,
    PlaceBet,
    ProcessPendingSpawns,
    RequestMarket,
    ResolveMarket,
)
from predcascade.registry.registry import Registry
from predcascade.runtime.factory import MarketFactory
from predcascade.runtime.instance import Clock, Instance, now_ms
from predcascade.spawn.engine import SpawnRuleEngine

log = structlog.get_logger(__name__)

REGISTRY_ID = "registry"
SPAWN_HANDLER_ID = "spawn-handler"
FACTORY_ID = "factory"


class Host:
    """Stand-in for the execution runtime.

    Each operation or message runs to completion on one instance; whatever it
    emitted is queued and delivered in order. Rejections raised while handling a
    message (strict mode) are logged, since there is no caller to report to.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        strict: bool = False,
        spawn_admin: str = "admin",
        default_total_stake: int = 1000,
        configured_rules: list[dict[str, Any]] | None = None,
        max_delivery_steps: int = 10_000,
    ) -> None:
        self.clock: Clock = clock or now_ms
        self.strict = strict
        self.spawn_admin = spawn_admin
        self.max_delivery_steps = max_delivery_steps
        self.registry = Registry(REGISTRY_ID, clock=self._now, strict=strict)
        self.spawn_engine = SpawnRuleEngine(
            SPAWN_HANDLER_ID,
            factory_id=FACTORY_ID,
            default_total_stake=default_total_stake,
            configured_rules=configured_rules,
            clock=self._now,
            strict=strict,
        )
        self.factory = MarketFactory(
            FACTORY_ID,
            registry_id=REGISTRY_ID,
            spawn_owner=spawn_admin,
            instantiate=self._instantiate_market,
            clock=self._now,
            strict=strict,
        )
        self.markets: dict[str, MarketInstance] = {}
        self._queue: deque[Envelope] = deque()
        # Delivered since the last drain, with delivery time; persisted by storage.message_log
        self.delivered: list[tuple[Envelope, int]] = []

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock | None = None) -> Host:
        return cls(
            clock=clock,
            strict=settings.strict,
            spawn_admin=settings.spawn_admin,
            default_total_stake=settings.default_total_stake,
            configured_rules=settings.default_rules or None,
            max_delivery_steps=settings.max_delivery_steps,
        )

    def _now(self) -> int:
        return self.clock()

    def initialize(self) -> None:
        """Initialize the spawn engine (admin + default rules) if not done yet."""
        self.spawn_engine.initialize(self.spawn_admin)

    # Instances
    def instance(self, instance_id: str) -> Instance:
        if instance_id == REGISTRY_ID:
            return self.registry
        if instance_id == SPAWN_HANDLER_ID:
            return self.spawn_engine
        if instance_id == FACTORY_ID:
            return self.factory
        market = self.markets.get(instance_id)
        if market is None:
            raise NotFound("instance not found", instance_id=instance_id)
        return market

    def market(self, market_id: str) -> MarketInstance:
        market = self.markets.get(market_id)
        if market is None:
            raise NotFound("market not found", market_id=market_id)
        return market

    def new_market_instance(self, market_id: str) -> MarketInstance:
        market = MarketInstance(market_id, spawn_handler_id=SPAWN_HANDLER_ID, clock=self._now, strict=self.strict)
        self.markets[market_id] = market
        return market

    def _instantiate_market(self, market_id: str, operation: CreateMarket, owner: str) -> bool:
        market = self.new_market_instance(market_id)
        try:
            market.execute_operation(operation, owner)
        finally:
            if not market.created:
                del self.markets[market_id]
        return market.created

    # Execution
    def execute(self, instance_id: str, operation: Any, caller: str) -> None:
        """Run one operation; emitted messages are queued, not delivered."""
        inst = self.instance(instance_id)
        try:
            inst.execute_operation(operation, caller)
        finally:
            self._collect(inst)

    def _collect(self, inst: Instance) -> None:
        self._queue.extend(inst.drain_outbox())

    def deliver_all(self) -> int:
        """Deliver queued messages (and whatever they cause) until idle. Returns count delivered."""
        steps = 0
        while self._queue:
            if steps >= self.max_delivery_steps:
                log.warning("delivery_step_limit", pending=len(self._queue), limit=self.max_delivery_steps)
                break
            envelope = self._queue.popleft()
            steps += 1
            try:
                target = self.instance(envelope.receiver)
            except NotFound:
                log.warning("message_undeliverable", receiver=envelope.receiver, kind=envelope.message.kind)
                continue
            try:
                target.handle_message(envelope.message, envelope.sender)
            except CascadeError as e:
                log.warning("message_rejected", receiver=envelope.receiver, kind=envelope.message.kind, code=e.code)
            finally:
                self._collect(target)
            self.delivered.append((envelope, self.clock()))
        return steps

    @property
    def pending_messages(self) -> int:
        return len(self._queue)

    # Convenience wrappers, each runs the operation and delivers its effects
    def create_market(
        self,
        caller: str,
        question: str,
        outcomes: list[str],
        expiry_time: int,
        parent_market_id: str | None = None,
    ) -> str | None:
        """Create through the factory. Returns the assigned market id (None if rejected)."""
        before = self.factory.state.market_count
        self.execute(
            FACTORY_ID,
            RequestMarket(question=question, outcomes=outcomes, expiry_time=expiry_time, parent_market_id=parent_market_id),
            caller,
        )
        self.deliver_all()
        if self.factory.state.market_count == before:
            return None
        return self.factory.state.last_market_id

    def place_bet(self, caller: str, market_id: str, outcome: str, amount: int) -> None:
        self.execute(market_id, PlaceBet(outcome=outcome, amount=amount), caller)
        self.deliver_all()

    def resolve_market(self, caller: str, market_id: str, winning_outcome: str) -> None:
        self.execute(market_id, ResolveMarket(winning_outcome=winning_outcome), caller)
        self.deliver_all()

    def process_pending_spawns(self, caller: str = "host") -> int:
        """Run the sweep and deliver the resulting creations. Returns requests emitted."""
        before = len(self._queue)
        self.execute(SPAWN_HANDLER_ID, ProcessPendingSpawns(), caller)
        emitted = len(self._queue) - before
        self.deliver_all()
        return emitted

    def all_instances(self) -> list[Instance]:
        return [self.registry, self.spawn_engine, self.factory, *self.markets.values()]

    # Registry entries are static; resolution lives on the market instance
    def live_info(self, info: MarketInfo) -> MarketInfo:
        """Copy of a registry entry with `resolved` taken from the market instance."""
        market = self.markets.get(info.market_id)
        resolved = market.state.resolved if market is not None else info.resolved
        return info.model_copy(update={"resolved": resolved})

    def live_tree(self, node: MarketTreeNode) -> MarketTreeNode:
        return MarketTreeNode(
            market=self.live_info(node.market),
            children=[self.live_tree(child) for child in node.children],
        )
