"""Bet, MarketState, MarketInfo - market ledger and registry entities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Token amounts are integers in the smallest unit; sums saturate here.
MAX_AMOUNT = 2**128 - 1


def saturating_add(a: int, b: int) -> int:
    """a + b capped at MAX_AMOUNT."""
    return min(a + b, MAX_AMOUNT)


class Bet(BaseModel):
    """Single stake on one outcome. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    bettor: str
    amount: int = Field(..., ge=0)
    timestamp: int  # ms epoch


class MarketState(BaseModel):
    """Full state owned by one market instance. Empty market_id means not created yet."""

    market_id: str = ""
    question: str = ""
    outcomes: list[str] = Field(default_factory=list)
    bets: dict[str, list[Bet]] = Field(default_factory=dict)
    total_staked: int = 0
    resolved: bool = False
    winning_outcome: str | None = None
    expiry_time: int = 0  # ms epoch
    creator: str | None = None
    parent_market_id: str | None = None
    child_markets: list[str] = Field(default_factory=list)
    seed_liquidity: int = 0  # requested by a spawn; not part of total_staked


class MarketInfo(BaseModel):
    """Registry view of a market - identity fields plus child links."""

    market_id: str
    instance_id: str = ""
    question: str = ""
    outcomes: list[str] = Field(default_factory=list)
    parent_market_id: str | None = None
    child_markets: list[str] = Field(default_factory=list)
    created_at: int = 0  # ms epoch
    creator: str = ""
    resolved: bool = False
    seed_liquidity: int = 0


class MarketTreeNode(BaseModel):
    """One node of a market tree walk."""

    market: MarketInfo
    children: list[MarketTreeNode] = Field(default_factory=list)

    def size(self) -> int:
        return 1 + sum(child.size() for child in self.children)

    def market_ids(self) -> list[str]:
        """Depth-first (pre-order) ids."""
        ids = [self.market.market_id]
        for child in self.children:
            ids.extend(child.market_ids())
        return ids
