"""Registry - market_id -> MarketInfo mapping and parent/child tree queries."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, Field

from predcascade.errors import AlreadyExists, InvalidParameters, NotFound
from predcascade.models.market import MarketInfo, MarketTreeNode
from predcascade.models.messages import MarketRegistered
from predcascade.runtime.instance import Clock, Instance

log = structlog.get_logger(__name__)


class RegistryState(BaseModel):
    markets: dict[str, MarketInfo] = Field(default_factory=dict)


class Registry(Instance):
    """Read registry over facts reported to it. Never touches bet data.

    Registration order across senders is not guaranteed, so a child may arrive
    before its parent. The child is stored as-is; when the parent arrives later
    every waiting child is linked to it.
    """

    kind = "registry"
    state_model = RegistryState

    def __init__(
        self,
        instance_id: str = "registry",
        clock: Clock | None = None,
        strict: bool = False,
        state: RegistryState | None = None,
    ) -> None:
        super().__init__(instance_id, clock=clock, strict=strict)
        self._state = state or RegistryState()

    @property
    def state(self) -> RegistryState:
        return self._state

    def execute_operation(self, operation: Any, caller: str) -> None:
        self._reject(InvalidParameters(f"unsupported operation for registry: {type(operation).__name__}"))

    def handle_message(self, message: Any, sender: str) -> None:
        if isinstance(message, MarketRegistered):
            self.register_market(message.market_info)
        else:
            log.warning("registry_unexpected_message", kind=getattr(message, "kind", None))

    def register_market(self, market_info: MarketInfo) -> None:
        markets = self._state.markets
        market_id = market_info.market_id
        if market_id in markets:
            self._reject(AlreadyExists("market already registered", market_id=market_id))
            return
        info = market_info.model_copy(deep=True)
        markets[market_id] = info
        parent_id = info.parent_market_id
        if parent_id:
            parent = markets.get(parent_id)
            if parent is None:
                log.info("registry_dangling_parent", market_id=market_id, parent_market_id=parent_id)
            elif market_id not in parent.child_markets:
                parent.child_markets.append(market_id)
        # Children that registered before this market
        for other in markets.values():
            if other.parent_market_id == market_id and other.market_id not in info.child_markets:
                info.child_markets.append(other.market_id)
        log.info("market_registered", market_id=market_id, parent_market_id=parent_id)

    def get_market_by_id(self, market_id: str) -> MarketInfo:
        info = self._state.markets.get(market_id)
        if info is None:
            raise NotFound("market not found", market_id=market_id)
        return info

    def get_child_markets(self, parent_id: str) -> list[MarketInfo]:
        """Registered direct children, in link order."""
        parent = self.get_market_by_id(parent_id)
        markets = self._state.markets
        return [markets[cid] for cid in parent.child_markets if cid in markets]

    def get_market_tree(self, root_id: str) -> MarketTreeNode:
        """Walk child links from root_id. A revisited id is not descended into again."""
        root = self.get_market_by_id(root_id)
        visited: set[str] = {root_id}
        return self._build_tree(root, visited)

    def _build_tree(self, info: MarketInfo, visited: set[str]) -> MarketTreeNode:
        node = MarketTreeNode(market=info)
        for child_id in info.child_markets:
            if child_id in visited:
                continue
            child = self._state.markets.get(child_id)
            if child is None:
                continue
            visited.add(child_id)
            node.children.append(self._build_tree(child, visited))
        return node

    def list_markets(self) -> list[MarketInfo]:
        return list(self._state.markets.values())

    def roots(self) -> list[MarketInfo]:
        """Markets whose parent is absent or unregistered."""
        markets = self._state.markets
        return [m for m in markets.values() if not m.parent_market_id or m.parent_market_id not in markets]

    def __len__(self) -> int:
        return len(self._state.markets)

    def __contains__(self, market_id: str) -> bool:
        return market_id in self._state.markets
