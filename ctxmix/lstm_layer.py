"""One layer of a layer-normalised LSTM trained by truncated backpropagation."""

from __future__ import annotations

import math
import random

import numpy as np

UPDATE_LIMIT = 3000

_F32 = np.float32
_BETA1 = 0.025
_BETA2 = 0.9999
_EPS = _F32(1e-6)
_NORM_EPS = _F32(1e-5)


def adam(g: np.ndarray, m: np.ndarray, v: np.ndarray, w: np.ndarray,
         learning_rate: float, t: float) -> None:
    """Apply one Adam step to ``w`` in place, updating the moments ``m`` and ``v``.

    The step count ``t`` is capped at :data:`UPDATE_LIMIT`.
    """
    if t <= 0:
        raise ValueError("step count must be positive")
    t = min(float(t), float(UPDATE_LIMIT))
    alpha = _F32(learning_rate * 0.1 / math.sqrt(5e-5 * t + 1.0))
    m *= _F32(_BETA1)
    m += _F32(1.0 - _BETA1) * g
    v *= _F32(_BETA2)
    v += _F32(1.0 - _BETA2) * g * g
    m_scale = _F32(1.0 - _BETA1 ** t)
    v_scale = _F32(1.0 - _BETA2 ** t)
    w -= alpha * ((m / m_scale) / np.sqrt(v / v_scale + _EPS))


class NeuronLayer:
    """Weights, normalisation parameters and per-step state of one gate."""

    def __init__(self, input_size: int, num_cells: int, horizon: int,
                 offset: int) -> None:
        self.error = np.zeros(num_cells, dtype=_F32)
        self.ivar = np.zeros(horizon, dtype=_F32)
        self.gamma = np.ones(num_cells, dtype=_F32)
        self.gamma_u = np.zeros(num_cells, dtype=_F32)
        self.gamma_m = np.zeros(num_cells, dtype=_F32)
        self.gamma_v = np.zeros(num_cells, dtype=_F32)
        self.beta = np.zeros(num_cells, dtype=_F32)
        self.beta_u = np.zeros(num_cells, dtype=_F32)
        self.beta_m = np.zeros(num_cells, dtype=_F32)
        self.beta_v = np.zeros(num_cells, dtype=_F32)
        self.weights = np.zeros((num_cells, input_size), dtype=_F32)
        self.state = np.zeros((horizon, num_cells), dtype=_F32)
        self.update = np.zeros((num_cells, input_size), dtype=_F32)
        self.m = np.zeros((num_cells, input_size), dtype=_F32)
        self.v = np.zeros((num_cells, input_size), dtype=_F32)
        self.transpose = np.zeros((input_size - offset, num_cells), dtype=_F32)
        self.norm = np.zeros((horizon, num_cells), dtype=_F32)


def _logistic(x: np.ndarray) -> np.ndarray:
    return (1.0 / (1.0 + np.exp(-x))).astype(_F32)


class LstmLayer:
    """An LSTM layer with coupled input/forget gates and layer normalisation.

    ``input_size`` counts every weight column of a gate: the one-hot symbol
    columns (``output_size`` of them) followed by the layer's input vector.
    """

    def __init__(self, input_size: int, auxiliary_input_size: int,
                 output_size: int, num_cells: int, horizon: int,
                 gradient_clip: float, learning_rate: float,
                 rng: random.Random | None = None) -> None:
        if num_cells < 1 or horizon < 1:
            raise ValueError("a layer needs at least one cell and one step")
        offset = output_size + auxiliary_input_size
        if input_size < offset:
            raise ValueError("input size smaller than symbol and auxiliary inputs")
        rng = rng if rng is not None else random.Random()
        self._num_cells = num_cells
        self._horizon = horizon
        self._input_size = auxiliary_input_size
        self._output_size = output_size
        self._gradient_clip = _F32(gradient_clip)
        self._learning_rate = learning_rate
        self._epoch = 0
        self._update_steps = 0
        self._state = np.zeros(num_cells, dtype=_F32)
        self._state_error = np.zeros(num_cells, dtype=_F32)
        self._stored_error = np.zeros(num_cells, dtype=_F32)
        self._tanh_state = np.zeros((horizon, num_cells), dtype=_F32)
        self._input_gate_state = np.zeros((horizon, num_cells), dtype=_F32)
        self._last_state = np.zeros((horizon, num_cells), dtype=_F32)
        self.forget_gate = NeuronLayer(input_size, num_cells, horizon, offset)
        self.input_node = NeuronLayer(input_size, num_cells, horizon, offset)
        self.output_gate = NeuronLayer(input_size, num_cells, horizon, offset)

        bound = math.sqrt(6.0 / float(offset)) if offset else 0.0
        low, span = -bound, 2 * bound
        gates = (self.forget_gate, self.input_node, self.output_gate)
        for i in range(num_cells):
            for j in range(input_size):
                for gate in gates:
                    gate.weights[i, j] = low + rng.random() * span
            self.forget_gate.weights[i, -1] = 1.0

    def _gates(self) -> tuple[NeuronLayer, NeuronLayer, NeuronLayer]:
        return self.forget_gate, self.input_node, self.output_gate

    def _input_columns(self, count: int) -> slice:
        available = self.forget_gate.weights.shape[1] - self._output_size
        if count > available:
            raise ValueError(f"layer takes at most {available} inputs, got {count}")
        return slice(self._output_size, self._output_size + count)

    def _check_symbol(self, symbol: int) -> None:
        if not 0 <= symbol < self._output_size:
            raise ValueError(f"symbol {symbol} out of range")

    def _forward_gate(self, gate: NeuronLayer, inputs: np.ndarray,
                      columns: slice, symbol: int) -> None:
        e = self._epoch
        norm = (gate.weights[:, symbol] + gate.weights[:, columns] @ inputs).astype(_F32)
        gate.ivar[e] = _F32(1.0) / np.sqrt(
            _F32(np.dot(norm, norm)) / _F32(self._num_cells) + _NORM_EPS)
        gate.norm[e] = norm * gate.ivar[e]
        gate.state[e] = gate.norm[e] * gate.gamma + gate.beta

    def forward_pass(self, inputs, input_symbol: int, hidden: np.ndarray,
                     hidden_start: int) -> None:
        """Run one step and write the layer's output into ``hidden`` in place."""
        self._check_symbol(input_symbol)
        inputs = np.asarray(inputs, dtype=_F32)
        columns = self._input_columns(len(inputs))
        e = self._epoch
        self._last_state[e] = self._state
        for gate in self._gates():
            self._forward_gate(gate, inputs, columns, input_symbol)
        forget = self.forget_gate.state
        node = self.input_node.state
        out = self.output_gate.state
        forget[e] = _logistic(forget[e])
        node[e] = np.tanh(node[e])
        out[e] = _logistic(out[e])
        self._input_gate_state[e] = _F32(1.0) - forget[e]
        self._state *= forget[e]
        self._state += node[e] * self._input_gate_state[e]
        self._tanh_state[e] = np.tanh(self._state)
        end = hidden_start + self._num_cells
        hidden[hidden_start:end] = out[e] * self._tanh_state[e]
        self._epoch = (self._epoch + 1) % self._horizon

    def _clip(self, arr: np.ndarray) -> None:
        np.clip(arr, -self._gradient_clip, self._gradient_clip, out=arr)

    def backward_pass(self, inputs, epoch: int, layer: int, input_symbol: int,
                      hidden_error: np.ndarray) -> None:
        """Backpropagate one step; ``hidden_error`` is read and replaced in place.

        Weights are updated once the pass reaches step 0.
        """
        self._check_symbol(input_symbol)
        inputs = np.asarray(inputs, dtype=_F32)
        columns = self._input_columns(len(inputs))
        if epoch == self._horizon - 1:
            self._stored_error[:] = hidden_error
            self._state_error[:] = 0
        else:
            self._stored_error += hidden_error

        forget = self.forget_gate.state[epoch]
        node = self.input_node.state[epoch]
        out = self.output_gate.state[epoch]
        tanh_state = self._tanh_state[epoch]
        input_gate = self._input_gate_state[epoch]
        one = _F32(1.0)

        self.output_gate.error[:] = (tanh_state * self._stored_error
                                     * out * (one - out))
        self._state_error += self._stored_error * out * (one - tanh_state * tanh_state)
        self.input_node.error[:] = self._state_error * input_gate * (one - node * node)
        self.forget_gate.error[:] = ((self._last_state[epoch] - node)
                                     * self._state_error * forget * input_gate)

        hidden_error[:] = 0
        if epoch > 0:
            self._state_error *= forget
            self._stored_error[:] = 0
        elif self._update_steps < UPDATE_LIMIT:
            self._update_steps += 1

        for gate in self._gates():
            self._backward_gate(gate, inputs, columns, epoch, layer,
                                input_symbol, hidden_error)

        self._clip(self._state_error)
        self._clip(self._stored_error)
        self._clip(hidden_error)

    def _backward_gate(self, gate: NeuronLayer, inputs: np.ndarray,
                       columns: slice, epoch: int, layer: int,
                       input_symbol: int, hidden_error: np.ndarray) -> None:
        n = self._num_cells
        if epoch == self._horizon - 1:
            gate.gamma_u[:] = 0
            gate.beta_u[:] = 0
            gate.update[:] = 0
            gate.transpose[:] = gate.weights[:, self._output_size + self._input_size:].T
        norm = gate.norm[epoch]
        gate.beta_u += gate.error
        gate.gamma_u += gate.error * norm
        gate.error *= gate.gamma * gate.ivar[epoch]
        gate.error -= (_F32(np.dot(gate.error, norm)) / _F32(n)) * norm
        if layer > 0:
            hidden_error += gate.transpose[n:2 * n] @ gate.error
        if epoch > 0:
            self._stored_error += gate.transpose[:n] @ gate.error
        gate.update[:, columns] += np.outer(gate.error, inputs)
        gate.update[:, input_symbol] += gate.error
        if epoch == 0:
            steps = self._update_steps
            adam(gate.update, gate.m, gate.v, gate.weights, self._learning_rate, steps)
            adam(gate.gamma_u, gate.gamma_m, gate.gamma_v, gate.gamma,
                 self._learning_rate, steps)
            adam(gate.beta_u, gate.beta_m, gate.beta_v, gate.beta,
                 self._learning_rate, steps)

    def weights(self) -> list[np.ndarray]:
        """The forget, input-node and output gate weight matrices (live)."""
        return [gate.weights for gate in self._gates()]