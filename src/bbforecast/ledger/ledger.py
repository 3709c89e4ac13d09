"""Ledger - call surface for market creation, encrypted bets and queries.

Mutating calls are not thread-safe; the host serializes them. Each call
stages all work first and commits in one step, so a failure leaves no trace
in markets, bets, grants or events.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

import structlog

from bbforecast.errors import LedgerError
from bbforecast.fhe.backend import FheBackend
from bbforecast.fhe.handles import CiphertextHandle
from bbforecast.ledger.acl import AccessControlList, normalize_identity
from bbforecast.ledger.engine import ObliviousTallyEngine
from bbforecast.ledger.query import LedgerQueries
from bbforecast.ledger.registry import MarketRegistry
from bbforecast.models import BetPlaced, LedgerEvent, MarketCreated

log = structlog.get_logger(__name__)

EventSink = Callable[[LedgerEvent], None]


def _unix_now() -> int:
    return int(time.time())


class Ledger(LedgerQueries):
    """Confidential prediction ledger. Owns the market arena and the grant list."""

    def __init__(
        self,
        backend: FheBackend,
        address: str,
        *,
        clock: Callable[[], int] = _unix_now,
        acl: AccessControlList | None = None,
    ) -> None:
        self.address = normalize_identity(address)
        self.backend = backend
        self.acl = acl if acl is not None else AccessControlList()
        self.registry = MarketRegistry()
        self.engine = ObliviousTallyEngine(backend, self.address)
        self.events: list[LedgerEvent] = []
        self._sinks: list[EventSink] = []
        self._clock = clock
        super().__init__(self.registry)

    def subscribe(self, sink: EventSink) -> None:
        """Register a callable receiving every committed event, in order."""
        self._sinks.append(sink)

    def _emit(self, event: LedgerEvent) -> None:
        self.events.append(event)
        for sink in self._sinks:
            try:
                sink(event)
            except Exception:
                # State is already committed; a broken sink must not undo it.
                log.exception("event_sink_failed", event_type=event.event_type)

    def create_market(self, name: str, labels: Sequence[str], *, caller: str) -> int:
        """Register a market with 2-4 options. Returns its id."""
        caller = normalize_identity(caller)
        if not isinstance(labels, str):
            labels = list(labels)
        try:
            market = self.registry.build(self.backend, name, labels, self._clock())
        except LedgerError as e:
            log.info("market_rejected", code=e.code, caller=caller)
            raise
        labels = market.labels
        grant_handles = [h for option in market.options for h in option.handles()]

        # Grants land before the market becomes readable.
        self.acl.grant_many(grant_handles, (self.address, caller))
        self.registry.add(market)
        log.info("market_created", market_id=market.id, name=name, options=labels, caller=caller)
        self._emit(MarketCreated(market_id=market.id, name=name, option_labels=labels))
        return market.id

    def place_bet(
        self,
        market_id: int,
        encrypted_selection: CiphertextHandle | str,
        validity_proof: bytes,
        attached_value: int,
        *,
        caller: str,
    ) -> None:
        """Back the encrypted option choice with attached_value (base units)."""
        bettor = normalize_identity(caller)
        try:
            market = self.registry.get(market_id)
            update = self.engine.stage(
                market, encrypted_selection, validity_proof, attached_value, bettor, self._clock()
            )
        except LedgerError as e:
            log.info("bet_rejected", market_id=market_id, bettor=bettor, code=e.code)
            raise

        # Grants land before the new handles become readable.
        self.acl.grant_many(update.touched_handles(), (self.address, bettor))
        index = self.engine.apply(market, update)
        log.info(
            "bet_placed",
            market_id=market_id,
            bettor=bettor,
            bet_index=index,
            selection=str(update.bet.encrypted_selection),
        )
        self._emit(
            BetPlaced(
                market_id=market_id,
                bettor=bettor,
                encrypted_selection=update.bet.encrypted_selection,
                encrypted_stake=update.bet.encrypted_stake,
            )
        )
