"""Bet ledger - per-market, per-bettor append-only bet lists."""

from __future__ import annotations

from dataclasses import dataclass

from bbforecast.errors import BetOutOfRange
from bbforecast.fhe.handles import CiphertextHandle
from bbforecast.ledger.acl import normalize_identity


@dataclass(frozen=True, slots=True)
class Bet:
    encrypted_selection: CiphertextHandle  # euint32
    encrypted_stake: CiphertextHandle  # euint128
    placed_at: int


class BetBook:
    """Bets of one market, keyed by bettor identity. Entries are never replaced or removed."""

    __slots__ = ("_by_bettor", "_total")

    def __init__(self) -> None:
        self._by_bettor: dict[str, list[Bet]] = {}
        self._total = 0

    def append(self, bettor: str, bet: Bet) -> int:
        """Append and return the new bet's index in the bettor's list."""
        bets = self._by_bettor.setdefault(normalize_identity(bettor), [])
        bets.append(bet)
        self._total += 1
        return len(bets) - 1

    def count(self, bettor: str) -> int:
        return len(self._by_bettor.get(normalize_identity(bettor), ()))

    def get(self, bettor: str, index: int) -> Bet:
        bets = self._by_bettor.get(normalize_identity(bettor), [])
        if index < 0 or index >= len(bets):
            raise BetOutOfRange(f"Bet index {index} out of range (bettor has {len(bets)} bets)")
        return bets[index]

    @property
    def total(self) -> int:
        """Number of bets on the market across all bettors."""
        return self._total
