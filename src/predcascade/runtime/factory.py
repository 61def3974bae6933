"""Market factory - consumes creation requests, instantiates markets, reports them."""

from __future__ import annotations

from typing import Any, Callable

import structlog
from pydantic import BaseModel

from predcascade.errors import InvalidParameters
from predcascade.models.market import MarketInfo
from predcascade.models.messages import ChildMarketLinked, MarketCreationRequest, MarketRegistered
from predcascade.models.operations import CreateMarket, RequestMarket
from predcascade.runtime.instance import Clock, Instance

log = structlog.get_logger(__name__)

# (market_id, create operation, owner) -> True if the market instance now exists
Instantiator = Callable[[str, CreateMarket, str], bool]


class FactoryState(BaseModel):
    market_count: int = 0
    last_market_id: str | None = None


class MarketFactory(Instance):
    """Assigns ``market_<n>`` ids and asks the host to instantiate the market.

    User requests make the caller the market's creator; spawned markets are
    owned by ``spawn_owner`` so that someone can resolve them.
    """

    kind = "factory"
    state_model = FactoryState

    def __init__(
        self,
        instance_id: str = "factory",
        registry_id: str = "registry",
        spawn_owner: str = "admin",
        instantiate: Instantiator | None = None,
        clock: Clock | None = None,
        strict: bool = False,
        state: FactoryState | None = None,
    ) -> None:
        super().__init__(instance_id, clock=clock, strict=strict)
        self.registry_id = registry_id
        self.spawn_owner = spawn_owner
        self.instantiate = instantiate
        self._state = state or FactoryState()

    @property
    def state(self) -> FactoryState:
        return self._state

    def execute_operation(self, operation: Any, caller: str) -> None:
        if isinstance(operation, RequestMarket):
            self.create_market(
                operation.question,
                operation.outcomes,
                operation.expiry_time,
                owner=caller,
                parent_market_id=operation.parent_market_id,
            )
        else:
            self._reject(InvalidParameters(f"unsupported operation for factory: {type(operation).__name__}"))

    def handle_message(self, message: Any, sender: str) -> None:
        if isinstance(message, MarketCreationRequest):
            self.create_market(
                message.question,
                message.outcomes,
                message.expiry_time,
                owner=self.spawn_owner,
                parent_market_id=message.parent_market_id,
                seed_liquidity=message.seed_liquidity,
            )
        else:
            log.warning("factory_unexpected_message", kind=getattr(message, "kind", None), sender=sender)

    def create_market(
        self,
        question: str,
        outcomes: list[str],
        expiry_time: int,
        owner: str,
        parent_market_id: str | None = None,
        seed_liquidity: int = 0,
    ) -> str | None:
        """Returns the new market id, or None if rejected."""
        if len(outcomes) < 2 or len(set(outcomes)) != len(outcomes):
            self._reject(InvalidParameters("need at least 2 distinct outcomes", outcomes=list(outcomes)))
            return None
        if self.instantiate is None:
            raise RuntimeError("factory has no instantiator; attach it to a Host")
        market_id = f"market_{self._state.market_count}"
        op = CreateMarket(
            market_id=market_id,
            question=question,
            outcomes=list(outcomes),
            expiry_time=expiry_time,
            parent_market_id=parent_market_id,
            seed_liquidity=seed_liquidity,
        )
        if not self.instantiate(market_id, op, owner):
            log.warning("factory_instantiation_failed", market_id=market_id)
            return None
        self._state.market_count += 1
        self._state.last_market_id = market_id
        info = MarketInfo(
            market_id=market_id,
            instance_id=market_id,
            question=question,
            outcomes=list(outcomes),
            parent_market_id=parent_market_id,
            created_at=self.clock(),
            creator=owner,
            seed_liquidity=seed_liquidity,
        )
        self.emit(self.registry_id, MarketRegistered(market_info=info))
        if parent_market_id:
            self.emit(parent_market_id, ChildMarketLinked(parent_market_id=parent_market_id, child_market_id=market_id))
        log.info("factory_market_created", market_id=market_id, parent_market_id=parent_market_id, owner=owner)
        return market_id
