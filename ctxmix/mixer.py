"""Gated linear mixing of stretched predictions, one weight set per context."""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from ctxmix.sigmoid import Sigmoid

_MASK32 = 0xFFFFFFFF
_CONTEXT_LIMIT = 10000
_OVERFLOW_KEY = 0xDEADBEEF
_WEIGHT_DECAY = np.float32(1.0 - 3.0e-6)


class ContextData:
    """Weights and step count for one mixer context."""

    __slots__ = ("steps", "weights", "extra_weights")

    def __init__(self, input_size: int, extra_input_size: int) -> None:
        self.steps = 0
        self.weights = np.zeros(input_size, dtype=np.float32)
        self.extra_weights = np.zeros(extra_input_size, dtype=np.float32)


def _decay(steps: int) -> float:
    if steps < 1_000_000:
        return 1.0
    if steps < 5_000_000:
        return 0.7
    if steps < 25_000_000:
        return 0.3
    return 0.2


class Mixer:
    """Mixes inputs with weights chosen by the current context value.

    ``inputs``, ``extra_inputs`` and ``context`` are zero-argument callables
    returning the live values the mixer reads at each step.
    """

    def __init__(self, inputs: Callable[[], np.ndarray],
                 extra_inputs: Callable[[], Sequence[float]],
                 context: Callable[[], int], learning_rate: float,
                 extra_input_size: int) -> None:
        self._inputs = inputs
        self._extra_source = extra_inputs
        self._extra = np.zeros(extra_input_size, dtype=np.float32)
        self._context = context
        self._p = 0.5
        self.learning_rate = learning_rate
        self.max_steps = 1
        self.steps = 0
        self._contexts: dict[int, ContextData] = {}

    def _context_data(self) -> ContextData:
        key = self._context() & _MASK32
        if len(self._contexts) >= _CONTEXT_LIMIT and key not in self._contexts:
            key = _OVERFLOW_KEY
        data = self._contexts.get(key)
        if data is None:
            data = ContextData(len(self._inputs()), len(self._extra))
            self._contexts[key] = data
        return data

    def mix(self) -> float:
        """Return the mixed prediction in the stretched domain."""
        data = self._context_data()
        inputs = np.asarray(self._inputs(), dtype=np.float32)
        p = np.float32(np.dot(inputs, data.weights))
        wanted = len(self._extra)
        source = list(self._extra_source())
        if len(source) < wanted:
            raise ValueError(
                f"mixer expects {wanted} extra inputs, got {len(source)}")
        self._extra[:] = source[:wanted]
        e = np.float32(np.dot(self._extra, data.extra_weights))
        self._p = float(np.float32(p + e))
        return self._p

    def perceive(self, bit: int) -> None:
        """Adjust the current context's weights towards the coded bit."""
        data = self._context_data()
        error = Sigmoid.logistic(self._p) - bit
        update = np.float32(_decay(self.steps) * self.learning_rate * error)
        self.steps += 1
        data.steps += 1
        if data.steps > self.max_steps:
            self.max_steps = data.steps
        inputs = np.asarray(self._inputs(), dtype=np.float32)
        data.weights -= update * inputs
        data.extra_weights -= update * self._extra
        if (data.steps & 1023) == 0:
            data.weights *= _WEIGHT_DECAY
            data.extra_weights *= _WEIGHT_DECAY