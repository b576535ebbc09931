import pytest

from ctxmix.mixer_input import MixerInput
from ctxmix.sigmoid import Sigmoid


@pytest.fixture
def sigmoid():
    return Sigmoid(4096)


def test_starts_with_single_half_input(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    assert list(mi.inputs) == [0.5]
    assert mi.extra_inputs == []


def test_resize_resets_all_inputs(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    mi.set_num_models(3)
    mi.set_input(1, 0.9)
    mi.set_num_models(4)
    assert list(mi.inputs) == [0.5, 0.5, 0.5, 0.5]


def test_set_input_stores_logit(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    mi.set_num_models(2)
    mi.set_input(0, 0.7)
    assert mi.inputs[0] == pytest.approx(sigmoid.logit(0.7), rel=1e-6)
    assert mi.inputs[1] == 0.5


def test_set_input_clamps_to_eps(sigmoid):
    eps = 0.01
    mi = MixerInput(sigmoid, eps)
    mi.set_num_models(4)
    mi.set_input(0, 0.0)
    mi.set_input(1, eps)
    mi.set_input(2, 1.0)
    mi.set_input(3, 1.0 - eps)
    assert mi.inputs[0] == mi.inputs[1]
    assert mi.inputs[2] == mi.inputs[3]


def test_stretched_input_clamped(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    mi.set_num_models(3)
    mi.set_stretched_input(0, 1e9)
    mi.set_stretched_input(1, -1e9)
    mi.set_stretched_input(2, 1.25)
    assert mi.inputs[0] == pytest.approx(sigmoid.logit(1.0))
    assert mi.inputs[1] == pytest.approx(sigmoid.logit(0.0))
    assert mi.inputs[2] == pytest.approx(1.25)


def test_extra_inputs_append_and_clear(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    mi.set_extra_input(0.5)
    mi.set_extra_input(1e9)
    assert mi.extra_inputs[0] == pytest.approx(0.5)
    assert mi.extra_inputs[1] == pytest.approx(sigmoid.logit(1.0))
    mi.clear_extra_inputs()
    assert mi.extra_inputs == []


def test_index_out_of_range(sigmoid):
    mi = MixerInput(sigmoid, 0.001)
    mi.set_num_models(2)
    with pytest.raises(IndexError):
        mi.set_input(2, 0.5)
    with pytest.raises(IndexError):
        mi.set_stretched_input(-1, 0.5)