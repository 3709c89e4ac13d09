"""Ledger host - one ledger with its mock coprocessor, relayer and event log, mutations serialized."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from threading import Lock
from typing import TypeVar

import structlog

from bbforecast.config import Settings
from bbforecast.fhe.handles import CiphertextHandle
from bbforecast.fhe.mock import EncryptedInput, MockCoprocessor
from bbforecast.fhe.relayer import MockRelayer, UserDecryptRequest
from bbforecast.ledger import Ledger
from bbforecast.storage.db import get_connection, init_schema
from bbforecast.storage.event_log import DuckDBEventSink, log_stats

log = structlog.get_logger(__name__)

T = TypeVar("T")


class LedgerService:
    """Hosts a Ledger the way a chain hosts a contract: one mutating call at a time."""

    def __init__(
        self,
        ledger_address: str,
        db_path: str | Path | None = None,
        relayer_max_duration_days: int = 10,
    ):
        self.coprocessor = MockCoprocessor()
        self.ledger = Ledger(self.coprocessor, ledger_address)
        self.relayer = MockRelayer(
            self.coprocessor, self.ledger.acl, max_duration_days=relayer_max_duration_days
        )
        self._lock = Lock()
        self._conn = None
        if db_path is not None:
            self._conn = get_connection(db_path)
            init_schema(self._conn)
            self.ledger.subscribe(DuckDBEventSink(self._conn))
            log.info("event_log_attached", db_path=str(db_path))

    @classmethod
    def from_settings(cls, settings: Settings, persist: bool = True) -> LedgerService:
        return cls(
            ledger_address=settings.ledger_address,
            db_path=settings.db_path if persist else None,
            relayer_max_duration_days=settings.relayer_max_duration_days,
        )

    @property
    def address(self) -> str:
        return self.ledger.address

    @property
    def conn(self):
        return self._conn

    def create_market(self, name: str, labels: Sequence[str], caller: str) -> int:
        with self._lock:
            return self.ledger.create_market(name, labels, caller=caller)

    def place_bet(
        self,
        market_id: int,
        encrypted_selection: CiphertextHandle | str,
        validity_proof: bytes,
        attached_value: int,
        caller: str,
    ) -> None:
        with self._lock:
            self.ledger.place_bet(market_id, encrypted_selection, validity_proof, attached_value, caller=caller)

    def read(self, query: Callable[[Ledger], T]) -> T:
        """Run a query against the ledger under the mutation lock, so it sees only committed state."""
        with self._lock:
            return query(self.ledger)

    def encrypt_selection(self, user: str, option_index: int) -> EncryptedInput:
        """Client-side step: encrypt an option index as euint32 bound to (ledger, user)."""
        return self.coprocessor.create_encrypted_input(self.address, user).add32(option_index).encrypt()

    def enroll(self, identity: str) -> bytes:
        with self._lock:
            return self.relayer.enroll(identity)

    def user_decrypt(self, request: UserDecryptRequest, signature: str) -> dict[str, int]:
        with self._lock:
            return self.relayer.user_decrypt(request, signature)

    def decrypt_for(self, identity: str, handles: list[CiphertextHandle]) -> dict[str, int]:
        with self._lock:
            return self.relayer.decrypt_for(identity, self.address, handles)

    def event_stats(self) -> dict | None:
        """Event log statistics, or None when running without persistence."""
        if self._conn is None:
            return None
        with self._lock:
            return log_stats(self._conn)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
