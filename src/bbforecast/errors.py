"""Ledger error taxonomy. Every error aborts the whole call; `code` feeds API error bodies."""

from __future__ import annotations


class LedgerError(Exception):
    """Base for all ledger call failures."""

    code: str = "ledger_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


# --- Validation (bad caller input) ---
class LedgerValidationError(LedgerError):
    code = "validation_error"


class InvalidName(LedgerValidationError):
    code = "invalid_name"


class InvalidOptionCount(LedgerValidationError):
    code = "invalid_option_count"


class EmptyLabel(LedgerValidationError):
    code = "empty_label"


class ZeroStake(LedgerValidationError):
    code = "zero_stake"


class StakeOverflow(LedgerValidationError):
    code = "stake_overflow"


class InvalidStake(LedgerValidationError):
    code = "invalid_stake"


class InvalidSelectionProof(LedgerValidationError):
    code = "invalid_selection_proof"


# --- Range / lookup ---
class LedgerLookupError(LedgerError, LookupError):
    code = "not_found"


class UnknownMarket(LedgerLookupError):
    code = "unknown_market"


class MarketInactive(LedgerLookupError):
    code = "market_inactive"


class OptionOutOfRange(LedgerLookupError, IndexError):
    code = "option_out_of_range"


class BetOutOfRange(LedgerLookupError, IndexError):
    code = "bet_out_of_range"


# --- Invariant (should not happen with correct inputs) ---
class LedgerInvariantError(LedgerError):
    code = "invariant_violation"


class NoOptionsConfigured(LedgerInvariantError):
    code = "no_options_configured"
