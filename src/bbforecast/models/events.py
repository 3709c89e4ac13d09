"""Ledger events, dispatched to sinks after a call commits."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field

from bbforecast.models.handle import Handle


class MarketCreated(BaseModel):
    """Fully plaintext: market definitions are public."""

    event_type: Literal["market_created"] = "market_created"
    market_id: int
    name: str
    option_labels: list[str] = Field(default_factory=list)


class BetPlaced(BaseModel):
    """Market and bettor are public; selection and stake stay opaque."""

    event_type: Literal["bet_placed"] = "bet_placed"
    market_id: int
    bettor: str
    encrypted_selection: Handle
    encrypted_stake: Handle


LedgerEvent = Union[MarketCreated, BetPlaced]
