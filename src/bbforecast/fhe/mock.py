"""In-process mock coprocessor: FheBackend over a private plaintext store.

Stands in for the FHE coprocessor and the input-proof service during local
runs and tests. Plaintexts never leave this module except through
reveal(), which only the relayer calls after its own access checks.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from threading import Lock

import structlog

from bbforecast.fhe.handles import CiphertextHandle, FheError, FheType, expect_type

log = structlog.get_logger(__name__)

_MAC_LEN = 32
_HANDLE_LEN = 32


@dataclass(frozen=True)
class EncryptedInput:
    """Client-side encryption result: handles plus one proof covering all of them."""

    handles: list[CiphertextHandle]
    input_proof: bytes


@dataclass
class EncryptedInputBuilder:
    """Collects plaintext inputs bound to (contract, user), then encrypts them together."""

    coprocessor: MockCoprocessor
    contract: str
    user: str
    _values: list[tuple[int, FheType]] = field(default_factory=list)

    def _add(self, value: int, fhe_type: FheType) -> EncryptedInputBuilder:
        if not isinstance(value, int) or value < 0 or value > fhe_type.max_value:
            raise FheError(f"Value out of range for {fhe_type.name.lower()}: {value!r}")
        self._values.append((int(value), fhe_type))
        return self

    def add_bool(self, value: bool) -> EncryptedInputBuilder:
        return self._add(int(bool(value)), FheType.EBOOL)

    def add32(self, value: int) -> EncryptedInputBuilder:
        return self._add(value, FheType.EUINT32)

    def add64(self, value: int) -> EncryptedInputBuilder:
        return self._add(value, FheType.EUINT64)

    def add128(self, value: int) -> EncryptedInputBuilder:
        return self._add(value, FheType.EUINT128)

    def encrypt(self) -> EncryptedInput:
        if not self._values:
            raise FheError("No values added to encrypted input")
        handles = [self.coprocessor._store_new("input", [], value, t) for value, t in self._values]
        proof = self.coprocessor._prove(self.contract, self.user, handles)
        return EncryptedInput(handles=handles, input_proof=proof)


class MockCoprocessor:
    """FheBackend implementation that keeps plaintexts in memory."""

    def __init__(self, key: bytes | None = None) -> None:
        self._key = key or secrets.token_bytes(32)
        self._plaintexts: dict[str, int] = {}
        self._nonce = 0
        self._lock = Lock()

    # --- store ---

    def _store_new(
        self, op: str, operands: list[CiphertextHandle], value: int, fhe_type: FheType
    ) -> CiphertextHandle:
        with self._lock:
            self._nonce += 1
            h = hashlib.sha256()
            h.update(op.encode())
            for operand in operands:
                h.update(bytes.fromhex(operand.hex[2:]))
            h.update(self._nonce.to_bytes(8, "big"))
            handle = CiphertextHandle.build(h.digest(), fhe_type)
            self._plaintexts[handle.hex] = value & fhe_type.max_value
        return handle

    def _load(self, handle: CiphertextHandle) -> int:
        try:
            return self._plaintexts[handle.hex]
        except KeyError:
            raise FheError(f"Unknown ciphertext handle: {handle.hex}") from None

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, CiphertextHandle) and handle.hex in self._plaintexts

    # --- FheBackend ---

    def trivial_encrypt(self, value: int, fhe_type: FheType) -> CiphertextHandle:
        if value < 0 or value > fhe_type.max_value:
            raise FheError(f"Constant out of range for {fhe_type.name.lower()}: {value}")
        return self._store_new("trivial", [], value, fhe_type)

    def eq(self, a: CiphertextHandle, b: int) -> CiphertextHandle:
        return self._store_new("eq", [a], int(self._load(a) == b), FheType.EBOOL)

    def add(self, a: CiphertextHandle, b: CiphertextHandle | int) -> CiphertextHandle:
        if isinstance(b, CiphertextHandle):
            expect_type(b, a.fhe_type)
            rhs = self._load(b)
            operands = [a, b]
        else:
            if b < 0:
                raise FheError("Scalar operand must be non-negative")
            rhs = b
            operands = [a]
        return self._store_new("add", operands, self._load(a) + rhs, a.fhe_type)

    def select(
        self, condition: CiphertextHandle, if_true: CiphertextHandle, if_false: CiphertextHandle
    ) -> CiphertextHandle:
        expect_type(condition, FheType.EBOOL)
        expect_type(if_false, if_true.fhe_type)
        t, f = self._load(if_true), self._load(if_false)
        # Both branches loaded above; result picked arithmetically.
        c = self._load(condition)
        value = c * t + (1 - c) * f
        return self._store_new("select", [condition, if_true, if_false], value, if_true.fhe_type)

    def verify_input(
        self,
        external_handle: CiphertextHandle,
        proof: bytes,
        *,
        contract: str,
        user: str,
        fhe_type: FheType,
    ) -> CiphertextHandle:
        handles = self._check_proof(contract, user, proof)
        if external_handle not in handles:
            raise FheError("Handle not covered by input proof")
        if external_handle not in self:
            raise FheError("Handle unknown to coprocessor")
        return expect_type(external_handle, fhe_type)

    # --- inputs ---

    def create_encrypted_input(self, contract: str, user: str) -> EncryptedInputBuilder:
        return EncryptedInputBuilder(self, contract, user)

    def _mac(self, contract: str, user: str, handles: list[CiphertextHandle]) -> bytes:
        msg = b"|".join([contract.lower().encode(), user.lower().encode()] + [bytes.fromhex(h.hex[2:]) for h in handles])
        return hmac.new(self._key, msg, hashlib.sha256).digest()

    def _prove(self, contract: str, user: str, handles: list[CiphertextHandle]) -> bytes:
        body = bytes([len(handles)]) + b"".join(bytes.fromhex(h.hex[2:]) for h in handles)
        return body + self._mac(contract, user, handles)

    def _check_proof(self, contract: str, user: str, proof: bytes) -> list[CiphertextHandle]:
        if not proof:
            raise FheError("Empty input proof")
        n = proof[0]
        expected_len = 1 + n * _HANDLE_LEN + _MAC_LEN
        if n == 0 or len(proof) != expected_len:
            raise FheError("Malformed input proof")
        handles = [
            CiphertextHandle("0x" + proof[1 + i * _HANDLE_LEN : 1 + (i + 1) * _HANDLE_LEN].hex()) for i in range(n)
        ]
        mac = proof[-_MAC_LEN:]
        if not hmac.compare_digest(mac, self._mac(contract, user, handles)):
            log.warning("input_proof_rejected", contract=contract, user=user)
            raise FheError("Input proof does not match contract/user binding")
        return handles

    # --- decryption (relayer only) ---

    def reveal(self, handle: CiphertextHandle) -> int:
        """Plaintext of a handle. Callers must have enforced access control first."""
        return self._load(handle)
