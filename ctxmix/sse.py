"""Secondary symbol estimation: refines a probability with adaptive tables."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from functools import lru_cache

_SCALE_LOG = 15
_SCALE = 1 << _SCALE_LOG
_HALF = _SCALE // 2
_MASK = _SCALE - 1
_ROUND = 1 << (_SCALE_LOG - 1)
_QUANT = 7
_OFFSET = 8192
_LOG2E = 1.44269504088896340736

_F0C = 10240
_F1C = 7935
_F2C = 9592
_SM6_WR = 106
_SM6_MW = 0
_SM6_C1 = 8092
_X1_W0 = 7649
_X1_WR = 6202
_F3C = 8200
_F4C = 7677
_SM7_WR = 127
_SM7_MW = 8192
_SM7_C1 = 8202
_X2_W0 = 2561
_X2_WR = 8320


def _log2(a: float) -> float:
    return _LOG2E * math.log(a)


def _exp2(a: float) -> float:
    return math.exp(a / _LOG2E)


def _st(p: float) -> float:
    return _log2((1 - p) / p)


def _sq(p: float) -> float:
    return 1.0 / (1.0 + _exp2(p))


_ST_COEF = (_HALF - 1) / _log2(_SCALE - 1)
_SQ_COEF = 1.0 / _ST_COEF


def _mx1_mask(j: int) -> int:
    if j <= 32:
        return max(j - 1, 0)
    if j < 64:
        return 31 + (j - 32) // 2
    if j < 128:
        return 47 + (j - 64) // 4
    return 63 + (j - 128) // 8


_MX1_MASK = tuple(_mx1_mask(j) for j in range(256))
_SM7_MASK = tuple(max(j - 1, 0) for j in range(256))


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _i32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


@lru_cache(maxsize=None)
def _tables() -> tuple[tuple[int, ...], tuple[int, ...]]:
    t_st = [0] * _SCALE
    t_sq = [0] * _SCALE
    for i in range(1, _SCALE):
        t_sq[i] = int(_sq((i - _HALF) * _SQ_COEF) * _SCALE) & 0xFFFF
    x = 0
    for i in range(1, _SCALE):
        s = int(_st(i / _SCALE) * _ST_COEF + _HALF) & 0xFFFF
        t_st[i] = s
        if s != t_st[x]:
            t_sq[t_st[x]] = (x + i) // 2
            x = i
    return tuple(t_st), tuple(t_sq)


def stretch_table() -> tuple[int, ...]:
    """Integer stretch of every 15-bit probability."""
    return _tables()[0]


def squash_table() -> tuple[int, ...]:
    """Integer squash of every stretched value, tuned to invert the stretch."""
    return _tables()[1]


def extrap(p1: int, c: int) -> int:
    """Scale a stretched value about the midpoint by ``c / 8192``, clamped."""
    p1 = (((p1 - _HALF) * c) >> 13) + _HALF
    return min(max(p1, 1), _MASK)


def _rdiv(x: int, a: int, d: int) -> int:
    return (x + a) >> d if x >= 0 else -((-x + a) >> d)


def _mixup(w: int, first: int, second: int) -> int:
    x = first + _rdiv(_i32((w - _HALF) * (second - first)), _ROUND, _SCALE_LOG)
    if x <= 0:
        return 1
    return x if x < _SCALE else _SCALE - 1


def _mix_delta(bit: int, first: int, second: int, rate: int, mixed: int) -> int:
    error = _SCALE - (bit << _SCALE_LOG) - mixed
    d = _rdiv(_i32(error * (first - second)), _ROUND, _SCALE_LOG)
    return _rdiv(_i32(d * rate), _ROUND, _SCALE_LOG)


def _new_cells(wi: int) -> list[int]:
    step = (_SCALE - wi) // (_QUANT - 1)
    start = wi // 2 + _OFFSET
    return [(start + i * step) & 0xFFFF for i in range(_QUANT)]


@dataclass
class _CellState:
    p: int
    sw: int
    cells: list[int]
    index: int


def _predict_cell(cells: list[int], ip: int) -> _CellState:
    scaled = (_QUANT - 1) * ip
    index = scaled >> _SCALE_LOG
    sw = scaled & _MASK
    f = (((_SCALE - sw) * cells[index] + sw * cells[index + 1]) >> _SCALE_LOG)
    f -= _OFFSET
    if f <= 0:
        f = 1
    if f >= _SCALE:
        f = _MASK
    return _CellState(f, sw, cells, index)


def _update_cell(state: _CellState, bit: int, rate: int) -> None:
    state.p = (state.p * (_SCALE - rate)) >> _SCALE_LOG
    if bit == 0:
        state.p += rate
    cells, i = state.cells, state.index
    dc = cells[i] - cells[i + 1]
    sw_dc = (state.sw * dc + _MASK) >> _SCALE_LOG
    cells[i] = (state.p + sw_dc + _OFFSET) & 0xFFFF
    cells[i + 1] = (state.p - (dc - sw_dc) + _OFFSET) & 0xFFFF


@dataclass
class _Pending:
    mix1: int
    mix2: int
    su6: _CellState
    su7: _CellState
    mix1_s0: int
    mix1_s1: int
    mix1_p: int
    mix2_s0: int
    mix2_s1: int
    mix2_p: int


class SSE:
    """Two-stage refinement of a bit probability, learned as bits arrive."""

    def __init__(self) -> None:
        self._st, self._sq = _tables()
        self._s6: dict[int, list[int]] = {}
        self._s7: dict[int, list[int]] = {}
        self._x1: dict[int, int] = {}
        self._x2: dict[int, int] = {}
        self._j = 1
        self._pc = 0
        self._ffl = 0
        self._pending: _Pending | None = None

    @staticmethod
    def _cells(table: dict[int, list[int]], key: int, wi: int) -> list[int]:
        cells = table.get(key)
        if cells is None:
            cells = _new_cells(wi)
            table[key] = cells
        return cells

    def _estimate(self, p: int) -> int:
        j, pc, ffl = self._j, self._pc, self._ffl
        prq = p >> 11
        band = (prq > 0) + (prq > 14)
        sm7x = ((((band << 5) + (ffl & 31)) << 8) + (pc & 255)) * 255 + _SM7_MASK[j]
        mix2 = ((((band << 1) + (ffl & 1)) << 8) + (pc & 255)) * 256 + j
        sm6x = ((((band << 7) + (ffl & 127)) << 8) + (pc & 255)) * 256 + j
        band1 = (prq > 0) + (prq > 7) + (prq > 14)
        mix1 = ((((band1 << 8) + (ffl & 255)) << 3) + ((pc >> 5) & 7)) * 79
        mix1 += _MX1_MASK[j]

        st, sq = self._st, self._sq
        su6 = _predict_cell(self._cells(self._s6, sm6x, _SM6_MW),
                            sq[extrap(st[p], _F0C)])
        s0 = extrap(st[p], _F1C)
        s1 = extrap(st[su6.p], _F2C)
        w1 = self._x1.get(mix1, _X1_W0 + _HALF)
        s2 = extrap(_mixup(w1, s0, s1), _SM6_C1)
        mix1_p = sq[s2]

        su7 = _predict_cell(self._cells(self._s7, sm7x, _SM7_MW),
                            sq[extrap(st[p], _F3C)])
        s4 = extrap(st[su7.p], _F4C)
        w2 = self._x2.get(mix2, _X2_W0 + _HALF)
        s5 = extrap(_mixup(w2, s2, s4), _SM7_C1)
        mix2_p = sq[s5]

        self._pending = _Pending(mix1, mix2, su6, su7, s0, s1, mix1_p,
                                 s2, s4, mix2_p)
        return mix2_p

    def predict(self, value: float) -> float:
        """Refine ``value``, a probability of a one bit."""
        if not 0.0 <= value <= 1.0:
            raise ValueError("probability must lie in [0, 1]")
        scaled = _f32(_f32(1.0 - _f32(value)) * 32766.0)
        discrete = int(_f32(1.0 + scaled))
        estimate = self._estimate(discrete)
        return _f32(1.0 - (estimate - 1) / 32766.0)

    def perceive(self, bit: int) -> None:
        """Learn from the coded bit that followed the last prediction."""
        pending = self._pending
        if pending is None:
            raise RuntimeError("perceive called before any prediction")
        bit = 1 if bit else 0
        _update_cell(pending.su6, bit, _SM6_WR)
        w1 = self._x1.get(pending.mix1, _X1_W0 + _HALF)
        self._x1[pending.mix1] = _i32(w1 + _mix_delta(
            bit, pending.mix1_s0, pending.mix1_s1, _X1_WR, pending.mix1_p))
        _update_cell(pending.su7, bit, _SM7_WR)
        w2 = self._x2.get(pending.mix2, _X2_W0 + _HALF)
        self._x2[pending.mix2] = _i32(w2 + _mix_delta(
            bit, pending.mix2_s0, pending.mix2_s1, _X2_WR, pending.mix2_p))
        self._j += self._j + bit
        if self._j >= 256:
            self._ffl = (self._ffl * 2 + (self._pc >= 0x40)) & 0xFF
            self._pc = self._j & 0xFF
            self._j = 1