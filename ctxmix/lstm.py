"""A stacked LSTM that predicts a distribution over the next symbol."""

from __future__ import annotations

import os
import random
from pathlib import Path

import numpy as np

from ctxmix.lstm_layer import LstmLayer

_F32 = np.float32
_DISK_DTYPE = np.dtype("<f4")


class Lstm:
    """Learns online from a symbol stream and predicts the next symbol."""

    def __init__(self, input_size: int, output_size: int, num_cells: int,
                 num_layers: int, horizon: int, learning_rate: float,
                 gradient_clip: float, rng: random.Random | None = None) -> None:
        if min(output_size, num_cells, num_layers, horizon) < 1 or input_size < 0:
            raise ValueError("invalid LSTM dimensions")
        rng = rng if rng is not None else random.Random()
        self._input_size = input_size
        self._output_size = output_size
        self._num_cells = num_cells
        self._horizon = horizon
        self._learning_rate = _F32(learning_rate)
        self._epoch = 0
        self._input_history = [0] * horizon
        hidden_size = num_cells * num_layers + 1
        self._hidden = np.zeros(hidden_size, dtype=_F32)
        self._hidden[-1] = 1.0
        self._hidden_error = np.zeros(num_cells, dtype=_F32)
        sizes = [input_size + num_cells + 1] + \
            [input_size + 2 * num_cells + 1] * (num_layers - 1)
        self._layer_input = []
        for _ in range(horizon):
            per_layer = []
            for size in sizes:
                arr = np.zeros(size, dtype=_F32)
                arr[-1] = 1.0
                per_layer.append(arr)
            self._layer_input.append(per_layer)
        self._output_layer = np.zeros((horizon, output_size, hidden_size), dtype=_F32)
        self._output = np.full((horizon, output_size), 1.0 / output_size, dtype=_F32)
        self._layers = [
            LstmLayer(size + output_size, input_size, output_size, num_cells,
                      horizon, gradient_clip, learning_rate, rng=rng)
            for size in sizes
        ]

    def _check_symbol(self, symbol: int) -> None:
        if not 0 <= symbol < self._output_size:
            raise ValueError(f"symbol {symbol} out of range")

    def _last_epoch(self) -> int:
        return (self._epoch - 1) % self._horizon

    def set_input(self, inputs) -> None:
        """Set the auxiliary inputs for the coming step on every layer."""
        values = np.asarray(inputs, dtype=_F32)
        if len(values) < self._input_size:
            raise ValueError(
                f"expected {self._input_size} inputs, got {len(values)}")
        for layer_input in self._layer_input[self._epoch]:
            layer_input[:self._input_size] = values[:self._input_size]

    def perceive(self, symbol: int) -> np.ndarray:
        """Learn that ``symbol`` came next and return the following prediction."""
        self._check_symbol(symbol)
        last = self._last_epoch()
        old_input = self._input_history[last]
        self._input_history[last] = symbol
        nc = self._num_cells
        if self._epoch == 0:
            for epoch in reversed(range(self._horizon)):
                target = self._input_history[epoch]
                previous = old_input if epoch == 0 else self._input_history[epoch - 1]
                for index in reversed(range(len(self._layers))):
                    offset = index * nc
                    errors = self._output[epoch].copy()
                    errors[target] -= 1
                    self._hidden_error += (
                        errors @ self._output_layer[epoch][:, offset:offset + nc])
                    self._layers[index].backward_pass(
                        self._layer_input[epoch][index], epoch, index, previous,
                        self._hidden_error)

        errors = self._output[last].copy()
        errors[symbol] -= 1
        self._output_layer[self._epoch] = self._output_layer[last] - np.outer(
            self._learning_rate * errors, self._hidden)
        return self.predict(symbol)

    def predict(self, symbol: int) -> np.ndarray:
        """Run the network on ``symbol`` and return the next-symbol distribution."""
        self._check_symbol(symbol)
        nc = self._num_cells
        e = self._epoch
        inputs = self._layer_input[e]
        for index, layer in enumerate(self._layers):
            own = slice(index * nc, (index + 1) * nc)
            inputs[index][self._input_size:self._input_size + nc] = self._hidden[own]
            layer.forward_pass(inputs[index], symbol, self._hidden, index * nc)
            if index < len(self._layers) - 1:
                start = nc + self._input_size
                inputs[index + 1][start:start + nc] = self._hidden[own]
        logits = (self._output_layer[e] @ self._hidden).astype(_F32)
        logits -= logits.max()
        probs = np.exp(logits)
        probs /= probs.sum()
        self._output[e] = probs
        self._epoch = (self._epoch + 1) % self._horizon
        return self._output[e].copy()

    def _blocks(self) -> list[np.ndarray]:
        blocks = [self._output_layer[self._last_epoch()]]
        for layer in self._layers:
            blocks.extend(layer.weights())
        return blocks

    def save_to_disk(self, path: str | os.PathLike) -> None:
        """Write the output layer and all gate weights as little-endian floats."""
        with open(path, "wb") as stream:
            for block in self._blocks():
                stream.write(block.astype(_DISK_DTYPE).tobytes())

    def load_from_disk(self, path: str | os.PathLike) -> None:
        """Read weights written by :meth:`save_to_disk`."""
        data = Path(path).read_bytes()
        blocks = self._blocks()
        expected = sum(block.size for block in blocks) * _DISK_DTYPE.itemsize
        if len(data) < expected:
            raise ValueError(
                f"weight file holds {len(data)} bytes, {expected} needed")
        values = np.frombuffer(data, dtype=_DISK_DTYPE,
                               count=expected // _DISK_DTYPE.itemsize)
        pos = 0
        for block in blocks:
            block[...] = values[pos:pos + block.size].reshape(block.shape)
            pos += block.size