"""Logistic squashing and a table-driven logit."""

from __future__ import annotations

import math
from array import array


def _slow_logit(p: float) -> float:
    return math.log(p / (1.0 - p))


class Sigmoid:
    """Logit lookups from a fixed-size table, plus logistic functions."""

    def __init__(self, logit_size: int) -> None:
        if logit_size < 1:
            raise ValueError("logit table needs at least one entry")
        self._size = logit_size
        self._table = array(
            "f", (_slow_logit((i + 0.5) / logit_size) for i in range(logit_size))
        )

    def logit(self, p: float) -> float:
        """Approximate ``log(p / (1 - p))``; ``p`` is clamped to the table."""
        index = int(p * self._size)
        if index >= self._size:
            index = self._size - 1
        elif index < 0:
            index = 0
        return self._table[index]

    @staticmethod
    def logistic(p: float) -> float:
        """The logistic function ``1 / (1 + exp(-p))``."""
        try:
            return 1.0 / (1.0 + math.exp(-p))
        except OverflowError:
            return 0.0

    @staticmethod
    def fast_logistic(p: float) -> float:
        """A cheap sigmoid-shaped curve with range (0, 1)."""
        return 0.5 * (p / (1.0 + abs(p)) + 1.0)