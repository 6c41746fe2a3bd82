from __future__ import annotations

import uuid
from typing import Protocol


class RandomBits(Protocol):
    def getrandbits(self, k: int) -> int: ...


def generate_id(rng: RandomBits) -> str:
    """
    UUID-v4-shaped identifier drawn from the given RNG.
    Visitor and session ids are not security-sensitive, so a seeded
    non-cryptographic source is fine (and keeps tests deterministic).
    """
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def is_valid_id(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
