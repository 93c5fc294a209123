"""Tests for the random selection primitives."""
from __future__ import annotations

import random
from collections import Counter

from verbal_trainer.sampler import shuffle, take_random


class TestShuffle:
    def test_same_elements(self, rng):
        items = list(range(20))
        out = shuffle(items, rng)
        assert sorted(out) == items

    def test_original_untouched(self, rng):
        items = [1, 2, 3, 4, 5]
        shuffle(items, rng)
        assert items == [1, 2, 3, 4, 5]

    def test_returns_new_list(self):
        items = (1, 2, 3)
        out = shuffle(items)
        assert isinstance(out, list)
        assert out is not items

    def test_empty_and_single(self):
        assert shuffle([]) == []
        assert shuffle(["a"]) == ["a"]

    def test_all_permutations_reachable(self):
        r = random.Random(7)
        seen = Counter(tuple(shuffle("abc", r)) for _ in range(3000))
        assert len(seen) == 6
        # Roughly uniform: each permutation near 500
        assert all(350 < n < 650 for n in seen.values())


class TestTakeRandom:
    def test_takes_n(self, rng):
        out = take_random(list(range(10)), 3, rng)
        assert len(out) == 3
        assert len(set(out)) == 3

    def test_n_larger_than_length(self, rng):
        out = take_random([1, 2, 3], 10, rng)
        assert sorted(out) == [1, 2, 3]

    def test_zero_or_negative(self):
        assert take_random([1, 2, 3], 0) == []
        assert take_random([1, 2, 3], -2) == []

    def test_empty(self):
        assert take_random([], 5) == []
