import pytest

from ctxmix.contexts import (
    BitContext,
    BracketContext,
    CombinedContext,
    Context,
    ContextHash,
    IndirectHash,
    Interval,
    IntervalHash,
    Sparse,
)


class ValueSource:
    def __init__(self, value=0):
        self.value = value

    def __call__(self):
        return self.value


def feed(context, source, data):
    for byte in data:
        source.value = byte
        context.update()
    return context.context


ALPHA_MAP = [1 if chr(i).isalpha() else 0 for i in range(256)]


def test_base_context_is_never_equal():
    ctx = Context()
    ctx.update()
    assert ctx.context == 0
    assert ctx.is_equal(Context()) is False


def test_bit_context_packs_byte_and_bits():
    bits, byte = ValueSource(5), ValueSource(3)
    ctx = BitContext(bits, byte, 256)
    ctx.update()
    assert divmod(ctx.context, 256) == (3, 5)
    assert ctx.size == 256 * 256


def test_bit_context_equality():
    bits, byte = ValueSource(), ValueSource()
    ctx = BitContext(bits, byte, 256)
    assert ctx.is_equal(BitContext(bits, byte, 16))
    assert not ctx.is_equal(BitContext(byte, bits, 256))
    assert not ctx.is_equal(ContextHash(byte, 1, 8))


def test_bracket_context_tracks_open_bracket():
    src = ValueSource()
    ctx = BracketContext(src, 10, 4)
    feed(ctx, src, b"(")
    assert divmod(ctx.context, 10) == (ord("(") + 1, 0)
    feed(ctx, src, b"xy")
    assert divmod(ctx.context, 10) == (ord("(") + 1, 2)
    feed(ctx, src, b")")
    assert ctx.context == 0


def test_bracket_context_nesting():
    src = ValueSource()
    ctx = BracketContext(src, 10, 4)
    feed(ctx, src, b"(a[")
    assert ctx.context // 10 == ord("[") + 1
    feed(ctx, src, b"]")
    assert ctx.context // 10 == ord("(") + 1


def test_bracket_context_distance_limit():
    src = ValueSource()
    ctx = BracketContext(src, 10, 4)
    feed(ctx, src, b"(" + b"x" * 9)
    assert ctx.context % 10 == 9
    feed(ctx, src, b"x")
    assert ctx.context == 0


def test_bracket_context_small_stack_limit_drops_new_brackets():
    src = ValueSource()
    ctx = BracketContext(src, 10, 2)
    feed(ctx, src, b"(")
    assert ctx.context == 0


def test_bracket_context_equality_and_size():
    src = ValueSource()
    ctx = BracketContext(src, 10, 4)
    assert ctx.size == 257 * 10
    assert ctx.is_equal(BracketContext(ValueSource(), 10, 4))
    assert not ctx.is_equal(BracketContext(src, 11, 4))
    assert not ctx.is_equal(BracketContext(src, 10, 5))


def test_combined_context():
    first, second = ValueSource(200), ValueSource(7)
    ctx = CombinedContext(first, second, 256, 100)
    ctx.update()
    assert divmod(ctx.context, 256) == (7, 200)
    assert ctx.size == 256 * 100
    assert ctx.is_equal(CombinedContext(first, second, 1, 1))
    assert not ctx.is_equal(CombinedContext(second, first, 256, 100))


def test_context_hash_keeps_last_bytes():
    src = ValueSource()
    ctx = ContextHash(src, 2, 8)
    value = feed(ctx, src, b"xyz")
    assert value.to_bytes(2, "big") == b"yz"
    assert ctx.size == 1 << 16


def test_context_hash_depends_only_on_recent_bytes():
    a_src, b_src = ValueSource(), ValueSource()
    a = ContextHash(a_src, 3, 5)
    b = ContextHash(b_src, 3, 5)
    assert feed(a, a_src, b"hello world") == feed(b, b_src, b"xyzrld")
    assert a.context < a.size


def test_context_hash_equality():
    src = ValueSource()
    ctx = ContextHash(src, 2, 8)
    assert ctx.is_equal(ContextHash(ValueSource(), 2, 8))
    assert not ctx.is_equal(ContextHash(src, 2, 4))
    assert not ctx.is_equal(ContextHash(src, 4, 4))


def test_indirect_hash_recalls_following_byte():
    src = ValueSource()
    ctx = IndirectHash(src, 1, 8, 1, 8)
    value = feed(ctx, src, b"aba")
    assert value == ord("b")
    value = feed(ctx, src, b"c")
    assert value == 0


def test_indirect_hash_equality():
    src = ValueSource()
    ctx = IndirectHash(src, 1, 8, 1, 8)
    assert ctx.is_equal(IndirectHash(ValueSource(), 1, 8, 1, 8))
    assert not ctx.is_equal(IndirectHash(src, 1, 8, 2, 8))
    assert not ctx.is_equal(IndirectHash(src, 2, 4, 1, 8))


def test_interval_packs_byte_classes():
    src = ValueSource()
    ctx = Interval(src, ALPHA_MAP, 3)
    assert feed(ctx, src, b"a1b") == 0b101
    assert ctx.size == 8


def test_interval_stays_within_size():
    src = ValueSource()
    ctx = Interval(src, ALPHA_MAP, 3)
    for byte in b"The quick 42 brown foxes":
        src.value = byte
        ctx.update()
        assert 0 <= ctx.context < ctx.size


def test_interval_rejects_short_map():
    with pytest.raises(ValueError):
        Interval(ValueSource(), [0, 1, 2], 3)


def test_interval_equality():
    src = ValueSource()
    ctx = Interval(src, ALPHA_MAP, 3)
    other_map = list(ALPHA_MAP)
    other_map[0] = 1
    assert ctx.is_equal(Interval(ValueSource(), ALPHA_MAP, 3))
    assert not ctx.is_equal(Interval(src, other_map, 3))
    assert not ctx.is_equal(Interval(src, ALPHA_MAP, 4))


def test_interval_hash_depends_only_on_recent_bytes():
    a_src, b_src = ValueSource(), ValueSource()
    a = IntervalHash(a_src, ALPHA_MAP, 3, 2, 3)
    b = IntervalHash(b_src, ALPHA_MAP, 3, 2, 3)
    assert feed(a, a_src, b"xyz" + b"ab1c") == feed(b, b_src, b"12" + b"ab1c")
    assert a.context < a.size
    c_src = ValueSource()
    c = IntervalHash(c_src, ALPHA_MAP, 3, 2, 3)
    assert feed(c, c_src, b"12" + b"a11c") != a.context


def test_interval_hash_equality():
    src = ValueSource()
    ctx = IntervalHash(src, ALPHA_MAP, 3, 2, 3)
    assert ctx.is_equal(IntervalHash(ValueSource(), ALPHA_MAP, 3, 2, 3))
    assert not ctx.is_equal(IntervalHash(src, ALPHA_MAP, 4, 2, 3))
    assert not ctx.is_equal(Interval(src, ALPHA_MAP, 3))


def test_sparse_single_order():
    recent = [5, 7, 9, 11]
    ctx = Sparse(recent, [2])
    ctx.update()
    assert ctx.context == recent[2]
    assert ctx.size == 2**64 - 1


def test_sparse_reads_list_live():
    recent = [5, 7, 0, 0]
    ctx = Sparse(recent, [0, 1])
    ctx.update()
    assert divmod(ctx.context, 256) == (7, 5)
    recent[1] = 3
    ctx.update()
    assert divmod(ctx.context, 256) == (3, 5)


def test_sparse_order_count_is_checked():
    with pytest.raises(ValueError):
        Sparse([0] * 8, [])
    with pytest.raises(ValueError):
        Sparse([0] * 8, [0, 1, 2, 3, 4, 5, 6])


def test_sparse_equality():
    recent = [0] * 8
    ctx = Sparse(recent, [0, 2])
    assert ctx.is_equal(Sparse(recent, [0, 2]))
    assert not ctx.is_equal(Sparse(list(recent), [0, 2]))
    assert not ctx.is_equal(Sparse(recent, [0, 3]))