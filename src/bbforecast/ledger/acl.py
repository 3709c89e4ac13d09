"""Decryption capability grants: an append-only set of (handle, identity) pairs."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from bbforecast.fhe.handles import CiphertextHandle


def normalize_identity(identity: str) -> str:
    """Canonical form for identities (0x addresses compare case-insensitively)."""
    identity = (identity or "").strip()
    return identity.lower() if identity.startswith("0x") else identity


class AccessControlList:
    """Who may request decryption of which handle. Grants are never revoked."""

    def __init__(self) -> None:
        self._grants: dict[str, set[str]] = {}
        self._count = 0

    def grant(self, handle: CiphertextHandle, identity: str) -> bool:
        """Record a grant. Returns False if it already existed (no-op)."""
        holders = self._grants.setdefault(handle.hex, set())
        identity = normalize_identity(identity)
        if identity in holders:
            return False
        holders.add(identity)
        self._count += 1
        return True

    def grant_many(self, handles: Iterable[CiphertextHandle], identities: Iterable[str]) -> int:
        """Grant every identity on every handle. Returns number of new grants."""
        identities = list(identities)
        return sum(self.grant(h, ident) for h in handles for ident in identities)

    def is_granted(self, handle: CiphertextHandle, identity: str) -> bool:
        return normalize_identity(identity) in self._grants.get(handle.hex, ())

    def grantees(self, handle: CiphertextHandle) -> frozenset[str]:
        return frozenset(self._grants.get(handle.hex, ()))

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for handle, holders in self._grants.items():
            for identity in sorted(holders):
                yield handle, identity
