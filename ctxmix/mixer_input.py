"""Collects model predictions in the stretched domain for the mixers."""

from __future__ import annotations

import numpy as np

from ctxmix.sigmoid import Sigmoid


class MixerInput:
    """Stretched, clamped predictions of every model, plus extra inputs."""

    def __init__(self, sigmoid: Sigmoid, eps: float) -> None:
        self._sigmoid = sigmoid
        self._inputs = np.full(1, 0.5, dtype=np.float32)
        self._extra: list[float] = []
        self._min = eps
        self._max = 1.0 - eps
        self._stretched_min = sigmoid.logit(0.0)
        self._stretched_max = sigmoid.logit(1.0)

    @property
    def inputs(self) -> np.ndarray:
        """The current stretched inputs, one per model."""
        return self._inputs

    @property
    def extra_inputs(self) -> list[float]:
        """The extra inputs added since they were last cleared."""
        return self._extra

    def set_num_models(self, num_models: int) -> None:
        """Resize the inputs; every input is reset to 0.5."""
        self._inputs = np.full(num_models, 0.5, dtype=np.float32)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._inputs):
            raise IndexError(f"model index {index} out of range")

    def _clamp_stretched(self, p: float) -> float:
        if p > self._stretched_max:
            return self._stretched_max
        if p < self._stretched_min:
            return self._stretched_min
        return p

    def set_input(self, index: int, p: float) -> None:
        """Store a probability, clamped to [eps, 1 - eps], as its logit."""
        self._check_index(index)
        p = min(max(p, self._min), self._max)
        self._inputs[index] = self._sigmoid.logit(p)

    def set_stretched_input(self, index: int, p: float) -> None:
        """Store a value already in the stretched domain, clamped."""
        self._check_index(index)
        self._inputs[index] = self._clamp_stretched(p)

    def set_extra_input(self, p: float) -> None:
        """Append a stretched extra input, clamped."""
        self._extra.append(float(np.float32(self._clamp_stretched(p))))

    def clear_extra_inputs(self) -> None:
        """Drop all extra inputs."""
        self._extra.clear()