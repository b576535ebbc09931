"""Binary arithmetic coder driven by a bit predictor."""

from __future__ import annotations

import struct
from typing import BinaryIO, Protocol

_MASK32 = 0xFFFFFFFF
_TOP_BYTE = 0xFF000000


class _Predictor(Protocol):
    def predict(self) -> float: ...

    def perceive(self, bit: int) -> None: ...


def _float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def discretize(p: float) -> int:
    """Map a probability of a one bit onto the coder's 16-bit scale."""
    scaled = _float32(65534.0 * _float32(p))
    return int(_float32(1.0 + scaled)) & _MASK32


def _midpoint(x1: int, x2: int, p: int) -> int:
    span = (x2 - x1) & _MASK32
    return (x1 + (span >> 16) * p + (((span & 0xFFFF) * p) >> 16)) & _MASK32


class Encoder:
    """Writes bits to a binary stream using the predictor's probabilities."""

    def __init__(self, stream: BinaryIO, predictor: _Predictor) -> None:
        self._stream = stream
        self._predictor = predictor
        self._x1 = 0
        self._x2 = _MASK32

    def _shift_out(self) -> None:
        while ((self._x1 ^ self._x2) & _TOP_BYTE) == 0:
            self._stream.write(bytes((self._x2 >> 24,)))
            self._x1 = (self._x1 << 8) & _MASK32
            self._x2 = ((self._x2 << 8) & _MASK32) | 0xFF

    def encode(self, bit: int) -> None:
        """Encode one bit and let the predictor learn it."""
        bit = 1 if bit else 0
        p = discretize(self._predictor.predict())
        xmid = _midpoint(self._x1, self._x2, p)
        if bit:
            self._x2 = xmid
        else:
            self._x1 = (xmid + 1) & _MASK32
        self._predictor.perceive(bit)
        self._shift_out()

    def flush(self) -> None:
        """Write the bytes needed to finish the coded stream."""
        self._shift_out()
        self._stream.write(bytes((self._x2 >> 24,)))


class Decoder:
    """Reads bits back from a stream written by :class:`Encoder`."""

    def __init__(self, stream: BinaryIO, predictor: _Predictor) -> None:
        self._stream = stream
        self._predictor = predictor
        self._exhausted = False
        self._x1 = 0
        self._x2 = _MASK32
        self._x = 0
        for _ in range(4):
            self._x = ((self._x << 8) + self._read_byte()) & _MASK32

    def _read_byte(self) -> int:
        if self._exhausted:
            return 0
        chunk = self._stream.read(1)
        if not chunk:
            self._exhausted = True
            return 0
        return chunk[0]

    def decode(self) -> int:
        """Decode one bit and let the predictor learn it."""
        p = discretize(self._predictor.predict())
        xmid = _midpoint(self._x1, self._x2, p)
        if self._x <= xmid:
            bit = 1
            self._x2 = xmid
        else:
            bit = 0
            self._x1 = (xmid + 1) & _MASK32
        self._predictor.perceive(bit)
        while ((self._x1 ^ self._x2) & _TOP_BYTE) == 0:
            self._x1 = (self._x1 << 8) & _MASK32
            self._x2 = ((self._x2 << 8) & _MASK32) | 0xFF
            self._x = ((self._x << 8) + self._read_byte()) & _MASK32
        return bit