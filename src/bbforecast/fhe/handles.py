"""Ciphertext handles - opaque references to encrypted values, no plaintext access."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

HANDLE_VERSION = 0
_HANDLE_RE = re.compile(r"^0x[0-9a-f]{64}$")


class FheError(ValueError):
    """Raised by an FHE backend for malformed handles, type mismatches or bad inputs."""


class FheType(Enum):
    """Encrypted value types. Value is (type code embedded in handles, plaintext bit width)."""

    EBOOL = (0, 1)
    EUINT32 = (4, 32)
    EUINT64 = (5, 64)
    EUINT128 = (6, 128)

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def bits(self) -> int:
        return self.value[1]

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1

    @classmethod
    def from_code(cls, code: int) -> FheType:
        for t in cls:
            if t.code == code:
                return t
        raise FheError(f"Unknown FHE type code: {code}")


@dataclass(frozen=True, slots=True)
class CiphertextHandle:
    """32-byte handle; byte 30 carries the FHE type code, byte 31 the handle version.

    Only equality, hashing and the hex form are exposed. Operations on the
    underlying ciphertext go through an FheBackend.
    """

    hex: str

    def __post_init__(self) -> None:
        if not isinstance(self.hex, str):
            raise FheError(f"Ciphertext handle must be a hex string, got {type(self.hex).__name__}")
        value = self.hex.lower()
        if not _HANDLE_RE.match(value):
            raise FheError(f"Malformed ciphertext handle: {self.hex!r}")
        object.__setattr__(self, "hex", value)
        FheType.from_code(int(value[-4:-2], 16))

    @property
    def fhe_type(self) -> FheType:
        return FheType.from_code(int(self.hex[-4:-2], 16))

    @classmethod
    def build(cls, digest: bytes, fhe_type: FheType) -> CiphertextHandle:
        """Assemble a handle from a >=30-byte digest and a type."""
        if len(digest) < 30:
            raise FheError("Handle digest must be at least 30 bytes")
        raw = digest[:30] + bytes([fhe_type.code, HANDLE_VERSION])
        return cls("0x" + raw.hex())

    def __str__(self) -> str:
        return self.hex

    def __repr__(self) -> str:
        return f"CiphertextHandle({self.hex[:10]}..{self.hex[-6:]}, {self.fhe_type.name.lower()})"


def expect_type(handle: CiphertextHandle, fhe_type: FheType) -> CiphertextHandle:
    """Return handle unchanged if it has the given type, else raise FheError."""
    if handle.fhe_type is not fhe_type:
        raise FheError(f"Expected {fhe_type.name.lower()} handle, got {handle.fhe_type.name.lower()}")
    return handle
