"""Market views - public metadata and current option ciphertexts."""

from __future__ import annotations

from pydantic import BaseModel, Field

from bbforecast.models.handle import Handle


class MarketInfo(BaseModel):
    """Plaintext market metadata."""

    name: str
    option_count: int = Field(..., ge=2, le=4)
    created_at: int  # unix seconds


class MarketSummary(MarketInfo):
    """MarketInfo plus id and labels, for listings."""

    market_id: int = Field(..., ge=0)
    option_labels: list[str] = Field(default_factory=list)


class OptionTotals(BaseModel):
    """Current ciphertext handles for one option's running totals."""

    votes: Handle  # euint64
    stake: Handle  # euint128
