"""Market state machine - create, place bets, resolve, compute odds."""

from __future__ import annotations

from typing import Any

import structlog

from predcascade.errors import (
    AlreadyExists,
    AlreadyResolved,
    Expired,
    InvalidOutcome,
    InvalidParameters,
    Unauthorized,
)
from predcascade.models.market import Bet, MarketInfo, MarketState, saturating_add
from predcascade.models.messages import ChildMarketLinked, ResolutionNotification
from predcascade.models.operations import CreateMarket, PlaceBet, ResolveMarket
from predcascade.runtime.instance import Clock, Instance

log = structlog.get_logger(__name__)


class MarketInstance(Instance):
    """One market: question, outcomes, bet ledger and resolution state.

    Resolution emits a ResolutionNotification to ``spawn_handler_id``; that is the
    only cross-instance effect a market has.
    """

    kind = "market"
    state_model = MarketState

    def __init__(
        self,
        instance_id: str,
        spawn_handler_id: str = "spawn-handler",
        clock: Clock | None = None,
        strict: bool = False,
        state: MarketState | None = None,
    ) -> None:
        super().__init__(instance_id, clock=clock, strict=strict)
        self.spawn_handler_id = spawn_handler_id
        self._state = state or MarketState()

    @property
    def state(self) -> MarketState:
        return self._state

    @property
    def created(self) -> bool:
        return bool(self._state.market_id)

    def execute_operation(self, operation: Any, caller: str) -> None:
        if isinstance(operation, CreateMarket):
            self.create_market(
                caller,
                operation.market_id,
                operation.question,
                operation.outcomes,
                operation.expiry_time,
                parent_market_id=operation.parent_market_id,
                seed_liquidity=operation.seed_liquidity,
            )
        elif isinstance(operation, PlaceBet):
            self.place_bet(caller, operation.outcome, operation.amount)
        elif isinstance(operation, ResolveMarket):
            self.resolve_market(caller, operation.winning_outcome)
        else:
            self._reject(InvalidParameters(f"unsupported operation for market: {type(operation).__name__}"))

    def handle_message(self, message: Any, sender: str) -> None:
        if isinstance(message, ChildMarketLinked):
            self.link_child_market(message.child_market_id)
        else:
            log.warning("market_unexpected_message", instance=self.instance_id, kind=getattr(message, "kind", None))

    def create_market(
        self,
        caller: str,
        market_id: str,
        question: str,
        outcomes: list[str],
        expiry_time: int,
        parent_market_id: str | None = None,
        seed_liquidity: int = 0,
    ) -> None:
        """Populate an empty instance. A second creation never overwrites."""
        if self.created:
            self._reject(AlreadyExists("market already created", market_id=self._state.market_id))
            return
        if not market_id:
            self._reject(InvalidParameters("market_id is required"))
            return
        if len(outcomes) < 2 or len(set(outcomes)) != len(outcomes):
            self._reject(InvalidParameters("need at least 2 distinct outcomes", outcomes=list(outcomes)))
            return
        self._state = MarketState(
            market_id=market_id,
            question=question,
            outcomes=list(outcomes),
            bets={o: [] for o in outcomes},
            total_staked=0,
            resolved=False,
            winning_outcome=None,
            expiry_time=expiry_time,
            creator=caller,
            parent_market_id=parent_market_id,
            seed_liquidity=max(seed_liquidity, 0),
        )
        log.info("market_created", market_id=market_id, outcomes=len(outcomes), creator=caller)

    def place_bet(self, caller: str, outcome: str, amount: int) -> None:
        s = self._state
        now = self.clock()
        if s.resolved:
            self._reject(AlreadyResolved("market is resolved", market_id=s.market_id))
            return
        if now > s.expiry_time:
            self._reject(Expired("market expired", market_id=s.market_id, expiry_time=s.expiry_time))
            return
        if outcome not in s.outcomes:
            self._reject(InvalidOutcome("unknown outcome", market_id=s.market_id, outcome=outcome))
            return
        if amount < 0:
            self._reject(InvalidParameters("amount must be non-negative", amount=amount))
            return
        s.bets.setdefault(outcome, []).append(Bet(bettor=caller, amount=amount, timestamp=now))
        s.total_staked = saturating_add(s.total_staked, amount)
        log.debug("bet_placed", market_id=s.market_id, outcome=outcome, amount=amount, bettor=caller)

    def resolve_market(self, caller: str, winning_outcome: str) -> None:
        """Creator-only, once. Emits exactly one ResolutionNotification on success."""
        s = self._state
        if s.resolved:
            self._reject(AlreadyResolved("market already resolved", market_id=s.market_id))
            return
        if winning_outcome not in s.outcomes:
            self._reject(InvalidOutcome("unknown outcome", market_id=s.market_id, outcome=winning_outcome))
            return
        if caller != s.creator:
            self._reject(Unauthorized("only the creator may resolve", market_id=s.market_id, caller=caller))
            return
        s.resolved = True
        s.winning_outcome = winning_outcome
        self.emit(
            self.spawn_handler_id,
            ResolutionNotification(
                market_id=s.market_id,
                question=s.question,
                winning_outcome=winning_outcome,
                total_staked=s.total_staked,
            ),
        )
        log.info("market_resolved", market_id=s.market_id, winning_outcome=winning_outcome, total_staked=s.total_staked)

    def link_child_market(self, child_market_id: str) -> None:
        if child_market_id not in self._state.child_markets:
            self._state.child_markets.append(child_market_id)

    # Reads
    def outcome_total(self, outcome: str) -> int:
        return sum(b.amount for b in self._state.bets.get(outcome, []))

    def odds(self) -> dict[str, float]:
        """Decimal odds per outcome.

        With nothing staked every outcome reports 1.0 (neutral). Otherwise an
        outcome with stake reports total_staked / outcome_total, and an outcome
        with no stake reports 0.0, meaning "undefined", not "certain loss".
        """
        s = self._state
        if s.total_staked == 0:
            return {o: 1.0 for o in s.outcomes}
        result: dict[str, float] = {}
        for o in s.outcomes:
            staked = self.outcome_total(o)
            # 1 / (staked / total), computed directly to keep exact ratios exact
            result[o] = s.total_staked / staked if staked > 0 else 0.0
        return result

    def user_bets(self, bettor: str) -> dict[str, list[Bet]]:
        """Bets placed by bettor, keyed by outcome (outcomes without bets omitted)."""
        out: dict[str, list[Bet]] = {}
        for o in self._state.outcomes:
            mine = [b for b in self._state.bets.get(o, []) if b.bettor == bettor]
            if mine:
                out[o] = mine
        return out

    def to_info(self, created_at: int | None = None) -> MarketInfo:
        s = self._state
        return MarketInfo(
            market_id=s.market_id,
            instance_id=self.instance_id,
            question=s.question,
            outcomes=list(s.outcomes),
            parent_market_id=s.parent_market_id,
            child_markets=[],
            created_at=created_at if created_at is not None else self.clock(),
            creator=s.creator or "",
            resolved=s.resolved,
            seed_liquidity=s.seed_liquidity,
        )
