import pytest

from ctxmix.context_manager import ContextManager
from ctxmix.contexts import BitContext, ContextHash


def make_manager(history_size=64):
    return ContextManager(history_size=history_size, shared_map_size=16)


def feed(manager, data):
    for byte in data:
        manager.bit_context = 1
        for shift in range(7, -1, -1):
            manager.update_contexts((byte >> shift) & 1)


def test_initial_state():
    manager = make_manager()
    assert manager.bit_context == 1
    assert manager.long_bit_context == 1
    assert len(manager.history) == 64
    assert len(manager.shared_map) == 16
    assert manager.words == [0] * 8
    assert manager.recent_bytes == [0] * 8


def test_byte_completion_updates_history_and_recent_bytes():
    manager = make_manager()
    feed(manager, b"ab")
    assert manager.bit_context == ord("b")
    assert manager.long_bit_context == 1
    assert bytes(manager.history[:2]) == b"ab"
    assert manager.history_pos == 2
    assert manager.recent_bytes[:3] == [ord("b"), ord("a"), 0]


def test_partial_byte_state():
    manager = make_manager()
    for bit in (0, 1, 1):
        manager.update_contexts(bit)
    assert manager.long_bit_context == manager.bit_context
    assert manager.bit_context >> 3 == 1
    assert manager.history_pos == 0


def test_history_wraps_around():
    manager = make_manager(history_size=3)
    feed(manager, b"abcd")
    assert bytes(manager.history) == b"dbc"
    assert manager.history_pos == 1


def test_line_break_counting():
    manager = make_manager()
    feed(manager, b"ab\ncd")
    assert manager.line_break == 2
    feed(manager, b"x" * 150)
    assert manager.line_break == 99


def test_update_words_letters_then_space():
    manager = make_manager()
    manager.bit_context = ord("a")
    manager.update_words()
    assert manager.words[0] == ord("a")
    assert manager.words[1] == ord("a")
    assert manager.words[7] == ord("a")
    word_hash = manager.words[1]
    manager.bit_context = ord(" ")
    manager.update_words()
    assert manager.words[1] == 0
    assert manager.words[2] == word_hash
    assert manager.words[7] == 0
    assert manager.words[0] == ord("a")


def test_update_words_digits_extend_word_but_not_letter_run():
    manager = make_manager()
    manager.bit_context = ord("7")
    manager.update_words()
    assert manager.words[0] == ord("7")
    assert manager.words[7] == 0


def test_words_zero_mask():
    manager = make_manager()
    feed(manager, b"abcdefghijklmnopqrstuvwxyz")
    assert manager.words[0] <= 0xFFFFFFF
    assert manager.words[1] < 2**64


def test_wrt_context_accumulates_high_bytes():
    manager = make_manager()
    manager.bit_context = 0x81
    manager.update_wrt_context()
    assert manager.wrt_context == 0x81
    manager.bit_context = 0x82
    manager.update_wrt_context()
    assert manager.wrt_context == (0x81 << 8) | 0x82
    manager.bit_context = ord("a")
    manager.update_wrt_context()
    assert manager.wrt_state == 0
    manager.bit_context = 0x90
    manager.update_wrt_context()
    assert manager.wrt_context == 0x90


def test_wrt_context_resets_past_limit():
    manager = make_manager()
    feed(manager, b"\xff\xff\xff")
    assert manager.wrt_context == 0
    assert manager.wrt_state == 1


def test_add_context_deduplicates():
    manager = make_manager()
    first = manager.add_context(ContextHash(lambda: manager.bit_context, 2, 8))
    second = manager.add_context(ContextHash(lambda: manager.bit_context, 2, 8))
    third = manager.add_context(ContextHash(lambda: manager.bit_context, 3, 8))
    assert second is first
    assert third is not first
    assert manager.contexts == [first, third]


def test_add_bit_context_deduplicates():
    manager = make_manager()

    def bits():
        return manager.long_bit_context

    def last_byte():
        return manager.recent_bytes[0]

    first = manager.add_bit_context(BitContext(bits, last_byte, 256))
    again = manager.add_bit_context(BitContext(bits, last_byte, 256))
    assert again is first
    assert len(manager.bit_contexts) == 1


def test_byte_contexts_update_on_byte_boundaries():
    manager = make_manager()
    ctx = manager.add_context(ContextHash(lambda: manager.bit_context, 2, 8))
    feed(manager, b"xyz")
    assert ctx.context.to_bytes(2, "big") == b"yz"


def test_bit_contexts_update_every_bit():
    manager = make_manager()
    ctx = manager.add_bit_context(
        BitContext(lambda: manager.long_bit_context,
                   lambda: manager.recent_bytes[0], 256))
    feed(manager, b"q")
    manager.bit_context = 1
    for bit in (1, 0):
        manager.update_contexts(bit)
        assert ctx.context & 0xFF == manager.long_bit_context
        assert ctx.context >> 8 == ord("q")


@pytest.mark.parametrize("data", [b"hello", b"\x00\xff\x80", b"\n\n"])
def test_recent_bytes_match_history(data):
    manager = make_manager()
    feed(manager, data)
    expected = list(reversed(data))[:8]
    assert manager.recent_bytes[: len(expected)] == expected
    assert bytes(manager.history[: len(data)]) == data