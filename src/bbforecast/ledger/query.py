"""Query surface - read-only views over the registry. Handles only, never plaintext totals."""

from __future__ import annotations

from bbforecast.errors import OptionOutOfRange
from bbforecast.fhe.handles import CiphertextHandle
from bbforecast.ledger.registry import MarketRegistry
from bbforecast.models import BetView, MarketInfo, MarketSummary, OptionTotals


class LedgerQueries:
    """Pure reads. Unknown ids and out-of-range indexes raise; nothing is defaulted."""

    def __init__(self, registry: MarketRegistry) -> None:
        self._registry = registry

    def market_count(self) -> int:
        return len(self._registry)

    def get_market(self, market_id: int) -> MarketInfo:
        m = self._registry.get(market_id)
        return MarketInfo(name=m.name, option_count=len(m.options), created_at=m.created_at)

    def get_option_labels(self, market_id: int) -> list[str]:
        return self._registry.get(market_id).labels

    def get_option_totals(self, market_id: int, option_index: int) -> tuple[CiphertextHandle, CiphertextHandle]:
        """(encrypted vote count, encrypted total stake) for one option."""
        options = self._registry.get(market_id).options
        if option_index < 0 or option_index >= len(options):
            raise OptionOutOfRange(f"Option index {option_index} out of range (market has {len(options)})")
        return options[option_index].handles()

    def get_bet_count(self, market_id: int, bettor: str) -> int:
        return self._registry.get(market_id).bets.count(bettor)

    def get_bet(self, market_id: int, bettor: str, index: int) -> BetView:
        bet = self._registry.get(market_id).bets.get(bettor, index)
        return BetView(selection=bet.encrypted_selection, stake=bet.encrypted_stake, placed_at=bet.placed_at)

    def list_markets(self) -> list[MarketSummary]:
        return [
            MarketSummary(
                market_id=m.id,
                name=m.name,
                option_count=len(m.options),
                created_at=m.created_at,
                option_labels=m.labels,
            )
            for m in self._registry
        ]

    def option_totals(self, market_id: int) -> list[OptionTotals]:
        """All options' current handles, in option order."""
        return [
            OptionTotals(votes=o.encrypted_vote_count, stake=o.encrypted_total_stake)
            for o in self._registry.get(market_id).options
        ]
