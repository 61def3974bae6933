"""Cross-instance messages. Tagged by ``kind`` so a log row decodes back to its type."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from predcascade.models.market import MarketInfo


class ResolutionNotification(BaseModel):
    """Market -> spawn engine, once per successful resolution."""

    kind: Literal["resolution_notification"] = "resolution_notification"
    market_id: str
    question: str
    winning_outcome: str
    total_staked: int


class MarketCreationRequest(BaseModel):
    """Spawn engine -> market factory."""

    kind: Literal["market_creation_request"] = "market_creation_request"
    parent_market_id: str | None = None
    question: str
    outcomes: list[str]
    expiry_time: int  # ms epoch
    seed_liquidity: int = 0


class MarketRegistered(BaseModel):
    """Market factory -> registry."""

    kind: Literal["market_registered"] = "market_registered"
    market_info: MarketInfo


class ChildMarketLinked(BaseModel):
    """Market factory -> parent market."""

    kind: Literal["child_market_linked"] = "child_market_linked"
    parent_market_id: str
    child_market_id: str


Message = Annotated[
    Union[ResolutionNotification, MarketCreationRequest, MarketRegistered, ChildMarketLinked],
    Field(discriminator="kind"),
]

message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


class Envelope(BaseModel):
    """A message in flight between two instances."""

    sender: str
    receiver: str
    message: Message
