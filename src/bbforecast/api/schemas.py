"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bbforecast.fhe.relayer import UserDecryptRequest


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    ledger_address: str | None = None


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. unknown_market, zero_stake")


# --- Markets ---
class MarketListItem(BaseModel):
    market_id: int
    name: str
    option_count: int
    created_at: int
    option_labels: list[str] = Field(default_factory=list)


class MarketsListResponse(BaseModel):
    markets: list[MarketListItem]
    total: int


class CreateMarketRequest(BaseModel):
    name: str
    option_labels: list[str]


class CreateMarketResponse(BaseModel):
    market_id: int


class OptionTotalsResponse(BaseModel):
    market_id: int
    option_index: int
    label: str
    votes_handle: str = Field(..., description="euint64 encrypted vote count")
    stake_handle: str = Field(..., description="euint128 encrypted total stake")


# --- Bets ---
class PlaceBetRequest(BaseModel):
    encrypted_selection: str = Field(..., description="euint32 input handle (0x hex)")
    input_proof: str = Field(..., description="Input proof (hex)")
    value: int = Field(..., ge=0, description="Attached value in base units")


class BetCountResponse(BaseModel):
    market_id: int
    bettor: str
    bet_count: int


class BetResponse(BaseModel):
    market_id: int
    bettor: str
    index: int
    selection_handle: str
    stake_handle: str
    placed_at: int


# --- Mock coprocessor / relayer ---
class EncryptInputRequest(BaseModel):
    option_index: int = Field(..., ge=0, lt=2**32)


class EncryptInputResponse(BaseModel):
    handles: list[str]
    input_proof: str


class EnrollResponse(BaseModel):
    identity: str
    key: str


class DecryptRequest(BaseModel):
    request: UserDecryptRequest
    signature: str


class DecryptResponse(BaseModel):
    values: dict[str, int]


# --- Events ---
class EventsStatsResponse(BaseModel):
    total_events: int
    min_emitted_at: int | None
    max_emitted_at: int | None
    by_type: dict[str, int] = Field(default_factory=dict)
    by_market: list[dict[str, Any]] = Field(default_factory=list)
