"""FHE backend protocol - the only way the ledger touches ciphertexts."""

from __future__ import annotations

from typing import Protocol

from bbforecast.fhe.handles import CiphertextHandle, FheType


class FheBackend(Protocol):
    """Homomorphic operations over ciphertext handles. No method returns plaintext."""

    def trivial_encrypt(self, value: int, fhe_type: FheType) -> CiphertextHandle:
        """Encrypt a public constant."""
        ...

    def eq(self, a: CiphertextHandle, b: int) -> CiphertextHandle:
        """Encrypted boolean a == b."""
        ...

    def add(self, a: CiphertextHandle, b: CiphertextHandle | int) -> CiphertextHandle:
        """Encrypted a + b, wrapping at the type's bit width."""
        ...

    def select(
        self, condition: CiphertextHandle, if_true: CiphertextHandle, if_false: CiphertextHandle
    ) -> CiphertextHandle:
        """Encrypted conditional move. Always returns a new handle."""
        ...

    def verify_input(
        self,
        external_handle: CiphertextHandle,
        proof: bytes,
        *,
        contract: str,
        user: str,
        fhe_type: FheType,
    ) -> CiphertextHandle:
        """Check that an externally encrypted input is well formed and bound to (contract, user)."""
        ...
