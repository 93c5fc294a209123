"""Random selection primitives shared by question and quiz building."""
from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Return a uniformly shuffled copy of *items* (Fisher-Yates).

    The input is left untouched.
    """
    rng = rng or random
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def take_random(items: Sequence[T], n: int, rng: random.Random | None = None) -> list[T]:
    """Pick min(n, len(items)) elements without replacement."""
    if n <= 0:
        return []
    return shuffle(items, rng)[:n]
