"""Shared state updated after every coded bit."""

from __future__ import annotations

from ctxmix.contexts import BitContext, Context

_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1
_WRT_LIMIT = 0xFFEFCF


def _is_lower(c: int) -> bool:
    return ord("a") <= c <= ord("z")


class ContextManager:
    """Holds byte history and the registered contexts, and keeps them current."""

    def __init__(self, history_size: int = 100_000_000,
                 shared_map_size: int = 256 * 500_000) -> None:
        self.bit_context = 1
        self.wrt_state = 0
        self.long_bit_context = 1
        self.zero_context = 0
        self.history_pos = 0
        self.line_break = 0
        self.longest_match = 0
        self.auxiliary_context = 0
        self.wrt_context = 0
        self.history = bytearray(history_size)
        self.shared_map = bytearray(shared_map_size)
        self.words = [0] * 8
        self.recent_bytes = [0] * 8
        self.contexts: list[Context] = []
        self.bit_contexts: list[BitContext] = []

    def add_context(self, context: Context) -> Context:
        """Register a byte context, or return an equal one already registered."""
        for old in self.contexts:
            if old.is_equal(context):
                return old
        self.contexts.append(context)
        return context

    def add_bit_context(self, bit_context: BitContext) -> BitContext:
        """Register a bit context, or return an equal one already registered."""
        for old in self.bit_contexts:
            if old.is_equal(bit_context):
                return old
        self.bit_contexts.append(bit_context)
        return bit_context

    def update_history(self) -> None:
        """Append the finished byte to the circular history."""
        self.history[self.history_pos] = self.bit_context & 0xFF
        self.history_pos += 1
        if self.history_pos == len(self.history):
            self.history_pos = 0

    def update_words(self) -> None:
        """Update the word hashes with the finished byte."""
        words = self.words
        c = self.bit_context & 0xFF
        if _is_lower(c) or c >= 0x80:
            words[7] = (words[7] * 997 * 16 + c) & _MASK64
        else:
            words[7] = 0
        if (_is_lower(c) or ord("0") <= c <= ord("9") or c in (6, 8)
                or c >= 0x80):
            words[0] = (words[0] * 997 * 16 + c) & 0xFFFFFFF
            words[1] = (words[1] * 263 * 32 + c) & _MASK64
        else:
            words[2:7] = words[1:6]
            words[1] = 0

    def update_recent_bytes(self) -> None:
        """Push the finished byte onto the list of recent bytes."""
        self.recent_bytes[1:] = self.recent_bytes[:-1]
        self.recent_bytes[0] = self.bit_context

    def update_wrt_context(self) -> None:
        """Track runs of high bytes such as dictionary codes."""
        if self.bit_context < 0x80:
            self.wrt_state = 0
            return
        if self.wrt_state == 0:
            self.wrt_context = 0
        self.wrt_state = 1
        self.wrt_context = ((self.wrt_context << 8) + self.bit_context) & _MASK64
        if self.wrt_context > _WRT_LIMIT:
            self.wrt_context = 0

    def update_contexts(self, bit: int) -> None:
        """Take in one coded bit, updating byte state when a byte completes."""
        self.bit_context = (self.bit_context * 2 + bit) & _MASK32
        self.long_bit_context = self.bit_context
        if self.bit_context >= 256:
            self.bit_context -= 256
            self.long_bit_context = 1
            self.longest_match = 0
            if self.bit_context == ord("\n"):
                self.line_break = 0
            elif self.line_break < 99:
                self.line_break += 1
            self.update_history()
            self.update_words()
            self.update_recent_bytes()
            self.update_wrt_context()
            for context in self.contexts:
                context.update()
        for context in self.bit_contexts:
            context.update()