"""FastAPI host for the ledger: call surface, query surface, mock input/decrypt endpoints."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bbforecast.api.schemas import (
    BetCountResponse,
    BetResponse,
    CreateMarketRequest,
    CreateMarketResponse,
    DecryptRequest,
    DecryptResponse,
    EncryptInputRequest,
    EncryptInputResponse,
    EnrollResponse,
    ErrorResponse,
    EventsStatsResponse,
    HealthResponse,
    MarketListItem,
    MarketsListResponse,
    OptionTotalsResponse,
    PlaceBetRequest,
)
from bbforecast.config import get_settings
from bbforecast.errors import (
    InvalidSelectionProof,
    LedgerError,
    LedgerInvariantError,
    LedgerLookupError,
)
from bbforecast.fhe.relayer import AlreadyEnrolled, DecryptionDenied, RelayerError
from bbforecast.ledger.acl import normalize_identity
from bbforecast.service import LedgerService

log = structlog.get_logger(__name__)

# Set by run_api() / set_service(); lifespan builds one from settings otherwise.
_config_profile: str | None = None
_service: LedgerService | None = None


def set_service(service: LedgerService | None) -> None:
    global _service
    _service = service


def get_service() -> LedgerService:
    if _service is None:
        raise RuntimeError("Ledger service not initialized")
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = False
    if _service is None:
        set_service(LedgerService.from_settings(get_settings(_config_profile)))
        owned = True
    log.info("api_started", ledger_address=get_service().address)
    yield
    if owned:
        get_service().close()
        set_service(None)


app = FastAPI(title="BlackBox Forecast API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

_ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Unknown market, option or bet", "model": ErrorResponse},
}


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.exception_handler(LedgerError)
async def _ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
    if isinstance(exc, LedgerLookupError):
        status = 404
    elif isinstance(exc, LedgerInvariantError):
        status = 500
    else:
        status = 400
    return _error_json(exc.code, str(exc), status)


@app.exception_handler(RelayerError)
async def _relayer_error(request: Request, exc: RelayerError) -> JSONResponse:
    if isinstance(exc, DecryptionDenied):
        status = 403
    elif isinstance(exc, AlreadyEnrolled):
        status = 409
    else:
        status = 401
    return _error_json(exc.code, str(exc), status)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", ledger_address=get_service().address)


@app.get("/markets", response_model=MarketsListResponse)
def markets_list() -> MarketsListResponse:
    """All markets in id order."""
    summaries = get_service().read(lambda ledger: ledger.list_markets())
    items = [MarketListItem(**s.model_dump()) for s in summaries]
    return MarketsListResponse(markets=items, total=len(items))


@app.post("/markets", response_model=CreateMarketResponse, responses=_ERROR_RESPONSES)
def market_create(body: CreateMarketRequest, x_identity: str = Header(..., alias="X-Identity")):
    market_id = get_service().create_market(body.name, body.option_labels, caller=x_identity)
    return CreateMarketResponse(market_id=market_id)


@app.get("/markets/{market_id}", response_model=MarketListItem, responses=_ERROR_RESPONSES)
def market_detail(market_id: int):
    info, labels = get_service().read(
        lambda ledger: (ledger.get_market(market_id), ledger.get_option_labels(market_id))
    )
    return MarketListItem(
        market_id=market_id,
        name=info.name,
        option_count=info.option_count,
        created_at=info.created_at,
        option_labels=labels,
    )


@app.get("/markets/{market_id}/options/{option_index}", response_model=OptionTotalsResponse, responses=_ERROR_RESPONSES)
def option_totals(market_id: int, option_index: int):
    """Current ciphertext handles of one option. Decrypt through /decrypt."""
    (votes, stake), labels = get_service().read(
        lambda ledger: (ledger.get_option_totals(market_id, option_index), ledger.get_option_labels(market_id))
    )
    return OptionTotalsResponse(
        market_id=market_id,
        option_index=option_index,
        label=labels[option_index],
        votes_handle=str(votes),
        stake_handle=str(stake),
    )


@app.post("/markets/{market_id}/bets", status_code=201, response_model=BetCountResponse, responses=_ERROR_RESPONSES)
def bet_place(market_id: int, body: PlaceBetRequest, x_identity: str = Header(..., alias="X-Identity")):
    try:
        proof = bytes.fromhex(body.input_proof.removeprefix("0x"))
    except ValueError:
        raise InvalidSelectionProof("Input proof is not hex") from None
    service = get_service()
    service.place_bet(market_id, body.encrypted_selection, proof, body.value, caller=x_identity)
    bettor = normalize_identity(x_identity)
    count = service.read(lambda ledger: ledger.get_bet_count(market_id, bettor))
    return BetCountResponse(market_id=market_id, bettor=bettor, bet_count=count)


@app.get("/markets/{market_id}/bets/{bettor}", response_model=BetCountResponse, responses=_ERROR_RESPONSES)
def bet_count(market_id: int, bettor: str):
    bettor = normalize_identity(bettor)
    count = get_service().read(lambda ledger: ledger.get_bet_count(market_id, bettor))
    return BetCountResponse(market_id=market_id, bettor=bettor, bet_count=count)


@app.get("/markets/{market_id}/bets/{bettor}/{index}", response_model=BetResponse, responses=_ERROR_RESPONSES)
def bet_detail(market_id: int, bettor: str, index: int):
    bettor = normalize_identity(bettor)
    bet = get_service().read(lambda ledger: ledger.get_bet(market_id, bettor, index))
    return BetResponse(
        market_id=market_id,
        bettor=bettor,
        index=index,
        selection_handle=str(bet.selection),
        stake_handle=str(bet.stake),
        placed_at=bet.placed_at,
    )


@app.post("/inputs", response_model=EncryptInputResponse, responses=_ERROR_RESPONSES)
def encrypt_input(body: EncryptInputRequest, x_identity: str = Header(..., alias="X-Identity")):
    """Mock client-side encryption of an option index, bound to this ledger and the caller."""
    enc = get_service().encrypt_selection(normalize_identity(x_identity), body.option_index)
    return EncryptInputResponse(handles=[str(h) for h in enc.handles], input_proof=enc.input_proof.hex())


@app.post("/relayer/enroll", response_model=EnrollResponse, responses={409: {"model": ErrorResponse}})
def relayer_enroll(x_identity: str = Header(..., alias="X-Identity")):
    """Mock relayer: issue the caller's request-signing key. Each identity gets its key exactly once."""
    identity = normalize_identity(x_identity)
    return EnrollResponse(identity=identity, key=get_service().enroll(identity).hex())


@app.post(
    "/decrypt",
    response_model=DecryptResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def user_decrypt(body: DecryptRequest):
    """Mock relayer user decryption: signature, validity window and grants are all checked."""
    values = get_service().user_decrypt(body.request, body.signature)
    return DecryptResponse(values=values)


@app.get("/events/stats", response_model=EventsStatsResponse, responses={404: {"model": ErrorResponse}})
def events_stats():
    stats = get_service().event_stats()
    if stats is None:
        return _error_json("no_event_log", "Event log persistence is disabled")
    return EventsStatsResponse(**stats)


def run_api(host: str = "127.0.0.1", port: int = 8000, profile: str | None = None) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn

    uvicorn.run("bbforecast.api.main:app", host=host, port=port, reload=False)
