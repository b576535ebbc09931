"""Byte-level contexts that feed the models.

Contexts read live values through *sources*: zero-argument callables that
return the current value of whatever the context follows. Two contexts of the
same kind that read from equal sources count as the same context.
"""

from __future__ import annotations

from array import array
from typing import Callable, Sequence

Source = Callable[[], int]

_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1

_BRACKETS = {
    ord("("): ord(")"),
    ord("P"): ord("R"),
    ord("["): ord("]"),
    ord("L"): ord("N"),
}

_SPARSE_FACTORS = (
    1,
    256,
    29 * 31,
    29 * 31 * 37,
    29 * 31 * 37 * 41,
    29 * 31 * 37 * 41 * 43,
)


class Context:
    """A context value together with the number of values it can take."""

    def __init__(self, size: int = 0) -> None:
        self.context = 0
        self.size = size

    def update(self) -> None:
        """Advance the context after a byte; the plain context never changes."""

    def is_equal(self, other: Context) -> bool:
        """Whether ``other`` computes the same context as this one."""
        return False


def _check_map(interval_map: Sequence[int]) -> list[int]:
    values = list(interval_map)
    if len(values) < 256:
        raise ValueError("interval map needs an entry for every byte value")
    return values


def _shift_for(values: Sequence[int]) -> int:
    max_value = max(0, max(values))
    shift = 1
    while (1 << shift) <= max_value:
        shift += 1
    return shift


class BitContext(Context):
    """Joins a partial-byte context with a byte context."""

    def __init__(self, bit_context: Source, byte_context: Source,
                 byte_context_size: int) -> None:
        super().__init__(256 * byte_context_size)
        self._bit_context = bit_context
        self._byte_context = byte_context

    def update(self) -> None:
        self.context = ((self._byte_context() << 8) + self._bit_context()) & _MASK64

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, BitContext)
                and other._byte_context == self._byte_context
                and other._bit_context == self._bit_context)


class BracketContext(Context):
    """Tracks the innermost open bracket and the distance since it opened."""

    def __init__(self, byte: Source, distance_limit: int, stack_limit: int) -> None:
        super().__init__(257 * distance_limit)
        self._byte = byte
        self.distance_limit = distance_limit
        self.stack_limit = stack_limit
        self._open: list[list[int]] = []

    def update(self) -> None:
        byte = self._byte()
        if self._open:
            bracket, distance = self._open[-1]
            if (_BRACKETS[bracket & 0xFF] == byte
                    or distance >= self.distance_limit - 1):
                self._open.pop()
            else:
                self._open[-1][1] += 1
        if (byte & 0xFF) in _BRACKETS:
            self._open.append([byte, 0])
            if len(_BRACKETS) > self.stack_limit:
                del self._open[0]
        if self._open:
            bracket, distance = self._open[-1]
            self.context = self.distance_limit * (bracket + 1) + distance
        else:
            self.context = 0

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, BracketContext)
                and self.distance_limit == other.distance_limit
                and self.stack_limit == other.stack_limit)


class CombinedContext(Context):
    """Packs two contexts into one value."""

    def __init__(self, context1: Source, context2: Source, context1_size: int,
                 context2_size: int) -> None:
        super().__init__(context1_size * context2_size)
        self._context1 = context1
        self._context2 = context2
        shift = 1
        while (1 << shift) < context1_size:
            shift += 1
        self._shift = shift

    def update(self) -> None:
        self.context = ((self._context2() << self._shift) + self._context1()) & _MASK64

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, CombinedContext)
                and other._context1 == self._context1
                and other._context2 == self._context2)


class ContextHash(Context):
    """Hash of the last ``order`` bytes, ``hash_size`` bits per byte."""

    def __init__(self, byte: Source, order: int, hash_size: int) -> None:
        super().__init__(1 << (hash_size * order))
        self._byte = byte
        self.hash_size = hash_size

    def update(self) -> None:
        value = (self.context * (1 << self.hash_size) + self._byte()) & _MASK64
        self.context = value % self.size

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, ContextHash)
                and self.size == other.size
                and self.hash_size == other.hash_size)


class IndirectHash(Context):
    """History that followed the last occurrence of a short context."""

    def __init__(self, byte: Source, order1: int, hash_size1: int, order2: int,
                 hash_size2: int) -> None:
        super().__init__(1 << (hash_size2 * order2))
        self._byte = byte
        self.hash_size1 = hash_size1
        self.hash_size2 = hash_size2
        self.size1 = (1 << (hash_size1 * order1)) & _MASK32
        self._context1 = 0
        self._hashes = array("Q", bytes(8 * self.size1))

    def update(self) -> None:
        byte = self._byte()
        following = (self.context * (1 << self.hash_size2) + byte) & _MASK64
        self._hashes[self._context1] = following % self.size
        key = (self._context1 * (1 << self.hash_size1) + byte) & _MASK64
        self._context1 = key % self.size1
        self.context = self._hashes[self._context1]

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, IndirectHash)
                and self.size == other.size
                and self.size1 == other.size1
                and self.hash_size1 == other.hash_size1
                and self.hash_size2 == other.hash_size2)


class IntervalHash(Context):
    """Hash of recent byte classes, each class taken from a byte map."""

    def __init__(self, byte: Source, interval_map: Sequence[int], num_bits: int,
                 order: int, hash_size: int) -> None:
        super().__init__(1 << (hash_size * order))
        self._byte = byte
        self._map = _check_map(interval_map)
        self._shift = _shift_for(self._map)
        self.mask = (1 << num_bits) - 1
        self.hash_size = hash_size
        self._interval = 0

    def update(self) -> None:
        shifted = ((self._interval << self._shift) + self._map[self._byte()]) & _MASK32
        self._interval = self.mask & shifted
        value = (self.context * (1 << self.hash_size) + self._interval) & _MASK64
        self.context = value % self.size

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, IntervalHash)
                and self._map[:256] == other._map[:256]
                and self.size == other.size
                and self.hash_size == other.hash_size
                and self.mask == other.mask)


class Interval(Context):
    """The classes of the most recent bytes, packed into ``num_bits`` bits."""

    def __init__(self, byte: Source, interval_map: Sequence[int], num_bits: int) -> None:
        super().__init__(1 << num_bits)
        self._byte = byte
        self._map = _check_map(interval_map)
        self._shift = _shift_for(self._map)
        self.mask = self.size - 1

    def update(self) -> None:
        value = ((self.context << self._shift) + self._map[self._byte()]) & _MASK64
        self.context = self.mask & value

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, Interval)
                and self.size == other.size
                and self._map[:256] == other._map[:256])


class Sparse(Context):
    """Combines selected entries of a list of recent values."""

    def __init__(self, recent_contexts: list[int], orders: Sequence[int]) -> None:
        super().__init__(_MASK64)
        if not 1 <= len(orders) <= len(_SPARSE_FACTORS):
            raise ValueError(
                f"sparse context takes 1 to {len(_SPARSE_FACTORS)} orders")
        self._recent = recent_contexts
        self.orders = tuple(orders)

    def update(self) -> None:
        self.context = sum(
            factor * self._recent[order]
            for factor, order in zip(_SPARSE_FACTORS, self.orders)
        ) & _MASK64

    def is_equal(self, other: Context) -> bool:
        return (isinstance(other, Sparse)
                and self._recent is other._recent
                and self.orders == other.orders)