"""SHA digests of strings."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


@dataclass(frozen=True)
class Digest:
    """A computed hash digest."""

    data: bytes

    def __str__(self) -> str:
        return self.data.hex()

    def __bytes__(self) -> bytes:
        return self.data


def sha256(text: str) -> Digest:
    """Return the SHA-256 digest of a string."""
    return Digest(hashlib.sha256(text.encode()).digest())


def sha1(text: str) -> Digest:
    """Return the SHA-1 digest of a string."""
    return Digest(hashlib.sha1(text.encode()).digest())