"""Canonical schema (Pydantic) - market/bet views and ledger events."""

from bbforecast.models.bet import BetView
from bbforecast.models.events import BetPlaced, LedgerEvent, MarketCreated
from bbforecast.models.handle import Handle
from bbforecast.models.market import MarketInfo, MarketSummary, OptionTotals

__all__ = [
    "MarketInfo",
    "MarketSummary",
    "OptionTotals",
    "BetView",
    "MarketCreated",
    "BetPlaced",
    "LedgerEvent",
    "Handle",
]
