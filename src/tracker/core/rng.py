from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass
class RNG:
    """Non-cryptographic random source. `seed=None` seeds from the OS."""

    seed: int | str | None = None

    def __post_init__(self) -> None:
        self._r = random.Random(self.seed)

    def random(self) -> float:
        return self._r.random()

    def getrandbits(self, k: int) -> int:
        return self._r.getrandbits(k)
