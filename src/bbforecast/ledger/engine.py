"""Oblivious tally engine - folds an encrypted selection and stake into every option.

Each bet runs the same operation sequence over the full option list: one
encrypted equality, two encrypted additions and two encrypted selects per
option, with both candidate values computed before the select. Nothing
branches on, or stops early because of, the selected index, and every
option slot receives a new handle, so traces, work done and storage diffs
are independent of the choice. Skipping options that "did not change" is
not an optimization this module may make.

A selection outside [0, option_count) matches no option: the bet is recorded
but no total moves. Vote and stake conservation per market therefore holds
only for selections the input verifier admits as in range; the ledger cannot
tell the two cases apart without decrypting.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from bbforecast.errors import (
    InvalidSelectionProof,
    InvalidStake,
    MarketInactive,
    NoOptionsConfigured,
    StakeOverflow,
    ZeroStake,
)
from bbforecast.fhe.backend import FheBackend
from bbforecast.fhe.handles import CiphertextHandle, FheError
from bbforecast.ledger.bets import Bet
from bbforecast.ledger.registry import SELECTION_TYPE, STAKE_TYPE, Market, Option

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TallyUpdate:
    """Staged result of one bet: nothing here is visible until the ledger commits it."""

    market_id: int
    bettor: str
    bet: Bet
    totals: list[tuple[CiphertextHandle, CiphertextHandle]]  # new (votes, stake) per option index

    def touched_handles(self) -> list[CiphertextHandle]:
        """Every handle this bet produced or replaced, in a fixed order."""
        handles = [self.bet.encrypted_selection, self.bet.encrypted_stake]
        for votes, stake in self.totals:
            handles.append(votes)
            handles.append(stake)
        return handles


def oblivious_tally(
    backend: FheBackend,
    options: Sequence[Option],
    selection: CiphertextHandle,
    stake: CiphertextHandle,
) -> list[tuple[CiphertextHandle, CiphertextHandle]]:
    """New (votes, stake) handles for every option; only option == selection changes in value."""
    totals = []
    for index in range(len(options)):
        option = options[index]
        is_selected = backend.eq(selection, index)
        votes_plus_one = backend.add(option.encrypted_vote_count, 1)
        stake_plus_bet = backend.add(option.encrypted_total_stake, stake)
        votes = backend.select(is_selected, votes_plus_one, option.encrypted_vote_count)
        total_stake = backend.select(is_selected, stake_plus_bet, option.encrypted_total_stake)
        totals.append((votes, total_stake))
    return totals


class ObliviousTallyEngine:
    """Validates a bet and stages its encrypted tally update."""

    def __init__(self, backend: FheBackend, ledger_address: str) -> None:
        self.backend = backend
        self.ledger_address = ledger_address

    def check_bet(self, market: Market, attached_value: int) -> None:
        """Plaintext preconditions, checked before any ciphertext work."""
        if not market.exists:
            raise MarketInactive(f"Market {market.id} is not active")
        if not market.options:
            raise NoOptionsConfigured(f"Market {market.id} has no options")
        if isinstance(attached_value, bool) or not isinstance(attached_value, int):
            raise InvalidStake(f"Attached value must be an integer amount of base units, got {attached_value!r}")
        if attached_value <= 0:
            raise ZeroStake("Bet must attach a positive value")
        if attached_value > STAKE_TYPE.max_value:
            raise StakeOverflow(f"Attached value exceeds {STAKE_TYPE.bits}-bit stake width")

    def decode_selection(
        self, encrypted_selection: CiphertextHandle | str, validity_proof: bytes, bettor: str
    ) -> CiphertextHandle:
        """Hand (handle, proof) to the input verifier; any failure is InvalidSelectionProof."""
        try:
            if not isinstance(encrypted_selection, CiphertextHandle):
                encrypted_selection = CiphertextHandle(encrypted_selection)
            return self.backend.verify_input(
                encrypted_selection,
                validity_proof,
                contract=self.ledger_address,
                user=bettor,
                fhe_type=SELECTION_TYPE,
            )
        except FheError as e:
            log.info("selection_proof_rejected", bettor=bettor, error=str(e))
            raise InvalidSelectionProof(str(e)) from e

    def stage(
        self,
        market: Market,
        encrypted_selection: CiphertextHandle | str,
        validity_proof: bytes,
        attached_value: int,
        bettor: str,
        now: int,
    ) -> TallyUpdate:
        """Run every check and all ciphertext work for one bet without touching ledger state."""
        self.check_bet(market, attached_value)
        selection = self.decode_selection(encrypted_selection, validity_proof, bettor)
        stake = self.backend.trivial_encrypt(attached_value, STAKE_TYPE)
        totals = oblivious_tally(self.backend, market.options, selection, stake)
        return TallyUpdate(
            market_id=market.id,
            bettor=bettor,
            bet=Bet(encrypted_selection=selection, encrypted_stake=stake, placed_at=now),
            totals=totals,
        )

    @staticmethod
    def apply(market: Market, update: TallyUpdate) -> int:
        """Commit a staged update to the market. Returns the bettor's new bet index.

        The option list is replaced in one assignment, so a concurrent reader sees
        either every old handle or every new one.
        """
        if len(update.totals) != len(market.options):
            raise ValueError("Staged update does not match market option count")
        market.options = [
            Option(label=option.label, encrypted_vote_count=votes, encrypted_total_stake=stake)
            for option, (votes, stake) in zip(market.options, update.totals)
        ]
        return market.bets.append(update.bettor, update.bet)
