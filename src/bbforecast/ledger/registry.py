"""Market registry - dense arena of markets indexed by id."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from bbforecast.errors import EmptyLabel, InvalidName, InvalidOptionCount, UnknownMarket
from bbforecast.fhe.backend import FheBackend
from bbforecast.fhe.handles import CiphertextHandle, FheType
from bbforecast.ledger.bets import BetBook

MIN_OPTIONS = 2
MAX_OPTIONS = 4

VOTE_TYPE = FheType.EUINT64
STAKE_TYPE = FheType.EUINT128
SELECTION_TYPE = FheType.EUINT32


@dataclass(slots=True)
class Option:
    label: str
    encrypted_vote_count: CiphertextHandle
    encrypted_total_stake: CiphertextHandle

    def handles(self) -> tuple[CiphertextHandle, CiphertextHandle]:
        return (self.encrypted_vote_count, self.encrypted_total_stake)


@dataclass(slots=True)
class Market:
    id: int
    name: str
    options: list[Option]
    created_at: int
    exists: bool = True
    bets: BetBook = field(default_factory=BetBook)

    @property
    def labels(self) -> list[str]:
        return [o.label for o in self.options]


def validate_market_definition(name: str, labels: Sequence[str]) -> None:
    """Raise InvalidName / InvalidOptionCount / EmptyLabel. No side effects."""
    if not isinstance(name, str) or len(name) == 0:
        raise InvalidName("Market name must be non-empty")
    if isinstance(labels, str):
        raise InvalidOptionCount("Option labels must be a sequence of labels, not a single string")
    if len(labels) < MIN_OPTIONS or len(labels) > MAX_OPTIONS:
        raise InvalidOptionCount(f"Markets need {MIN_OPTIONS}-{MAX_OPTIONS} options, got {len(labels)}")
    for i, label in enumerate(labels):
        if not isinstance(label, str) or len(label) == 0:
            raise EmptyLabel(f"Option label {i} is empty")


class MarketRegistry:
    """Owns every market. Ids are allocated sequentially from 0 and never reused."""

    def __init__(self) -> None:
        self._markets: list[Market] = []

    @property
    def next_id(self) -> int:
        return len(self._markets)

    def build(self, backend: FheBackend, name: str, labels: Sequence[str], created_at: int) -> Market:
        """Validate and build the next market with zero-valued ciphertexts. Not registered until add()."""
        validate_market_definition(name, labels)
        options = [
            Option(
                label=label,
                encrypted_vote_count=backend.trivial_encrypt(0, VOTE_TYPE),
                encrypted_total_stake=backend.trivial_encrypt(0, STAKE_TYPE),
            )
            for label in labels
        ]
        return Market(id=self.next_id, name=name, options=options, created_at=created_at)

    def add(self, market: Market) -> None:
        if market.id != self.next_id:
            raise ValueError(f"Market id {market.id} is stale (next id is {self.next_id})")
        self._markets.append(market)

    def get(self, market_id: int) -> Market:
        if market_id < 0 or market_id >= len(self._markets):
            raise UnknownMarket(f"Unknown market: {market_id}")
        return self._markets[market_id]

    def __len__(self) -> int:
        return len(self._markets)

    def __iter__(self) -> Iterator[Market]:
        return iter(self._markets)
