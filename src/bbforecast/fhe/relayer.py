"""Mock decryption relayer - user decryption gated by signature, time window and grants.

Plays the external relayer for local runs and tests. A requester signs a
time-bounded request naming the handles and the ledger contract; the relayer
checks the signature, the window, and that both the requester and the
contract hold a grant on every handle, then returns plaintexts.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time
from collections.abc import Callable

import structlog
from pydantic import BaseModel, Field, field_validator

from bbforecast.fhe.handles import CiphertextHandle
from bbforecast.fhe.mock import MockCoprocessor
from bbforecast.ledger.acl import AccessControlList, normalize_identity

log = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86_400


class RelayerError(Exception):
    code = "relayer_error"


class InvalidAuthorization(RelayerError):
    """Signature missing/invalid, unknown requester, or request outside its validity window."""

    code = "invalid_authorization"


class DecryptionDenied(RelayerError):
    """Requester or contract lacks a grant on a requested handle."""

    code = "decryption_denied"


class AlreadyEnrolled(RelayerError):
    """A signing key was already issued for this identity."""

    code = "already_enrolled"


class UserDecryptRequest(BaseModel):
    """What the requester signs (EIP-712 style payload, simplified)."""

    handles: list[str] = Field(..., min_length=1)
    contract_address: str
    user_address: str
    start_timestamp: int = Field(..., ge=0)
    duration_days: int = Field(..., ge=1)

    @field_validator("handles")
    @classmethod
    def _canonical_handles(cls, v: list[str]) -> list[str]:
        return [CiphertextHandle(h).hex for h in v]

    def signing_payload(self) -> bytes:
        body = {
            "handles": list(self.handles),
            "contract_address": normalize_identity(self.contract_address),
            "user_address": normalize_identity(self.user_address),
            "start_timestamp": self.start_timestamp,
            "duration_days": self.duration_days,
        }
        return json.dumps(body, sort_keys=True, separators=(",", ":")).encode()


def sign_request(key: bytes, request: UserDecryptRequest) -> str:
    return hmac.new(key, request.signing_payload(), hashlib.sha256).hexdigest()


class MockRelayer:
    """Decrypts on behalf of enrolled identities after checking the ledger's grants."""

    def __init__(
        self,
        coprocessor: MockCoprocessor,
        acl: AccessControlList,
        *,
        max_duration_days: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._coprocessor = coprocessor
        self._acl = acl
        self._keys: dict[str, bytes] = {}
        self.max_duration_days = max_duration_days
        self._clock = clock

    def enroll(self, identity: str) -> bytes:
        """Issue the signing key for an identity. Keys are issued once and never handed out again."""
        identity = normalize_identity(identity)
        if identity in self._keys:
            raise AlreadyEnrolled(f"Signing key already issued for {identity}")
        key = self._keys[identity] = secrets.token_bytes(32)
        log.info("relayer_enrolled", identity=identity)
        return key

    def _check_authorization(self, request: UserDecryptRequest, signature: str) -> None:
        key = self._keys.get(normalize_identity(request.user_address))
        if key is None:
            raise InvalidAuthorization(f"Unknown requester: {request.user_address}")
        if not hmac.compare_digest(sign_request(key, request), signature or ""):
            raise InvalidAuthorization("Bad signature")
        if request.duration_days > self.max_duration_days:
            raise InvalidAuthorization(f"Duration exceeds {self.max_duration_days} days")
        now = self._clock()
        end = request.start_timestamp + request.duration_days * SECONDS_PER_DAY
        if not (request.start_timestamp <= now < end):
            raise InvalidAuthorization("Request outside its validity window")

    def user_decrypt(self, request: UserDecryptRequest, signature: str) -> dict[str, int]:
        """Plaintext per requested handle, or raise without revealing anything."""
        self._check_authorization(request, signature)
        handles = [CiphertextHandle(h) for h in request.handles]
        for handle in handles:
            for holder in (request.user_address, request.contract_address):
                if not self._acl.is_granted(handle, holder):
                    log.warning("user_decrypt_denied", handle=handle.hex, identity=normalize_identity(holder))
                    raise DecryptionDenied(f"{normalize_identity(holder)} has no grant on {handle.hex}")
        log.info("user_decrypt", user=normalize_identity(request.user_address), handle_count=len(handles))
        return {h.hex: self._coprocessor.reveal(h) for h in handles}

    def _signing_key(self, identity: str) -> bytes:
        key = self._keys.get(normalize_identity(identity))
        return key if key is not None else self.enroll(identity)

    def decrypt_for(self, identity: str, contract: str, handles: list[CiphertextHandle]) -> dict[str, int]:
        """Build, sign and submit a request for an enrolled identity (what a client SDK does)."""
        request = UserDecryptRequest(
            handles=[h.hex for h in handles],
            contract_address=contract,
            user_address=identity,
            start_timestamp=int(self._clock()),
            duration_days=min(1, self.max_duration_days),
        )
        return self.user_decrypt(request, sign_request(self._signing_key(identity), request))
