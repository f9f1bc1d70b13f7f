import math

import pytest

from token_watch.engine import ConversationTurn
from token_watch.estimator import (
    BUFFER_FACTOR,
    estimate_conversation,
    estimate_text,
    strip_code,
)


# ── estimate_text() ────────────────────────────────────────────────────────────

class TestEstimateText:
    def test_empty_string_is_zero(self):
        assert estimate_text("", True) == 0
        assert estimate_text("", False) == 0

    @pytest.mark.parametrize("value", [None, 42, ["a", "b"], {"text": "x"}])
    def test_non_string_is_zero(self, value):
        assert estimate_text(value) == 0

    def test_thirteen_words(self):
        text = "one two three four five six seven eight nine ten eleven twelve thirteen"
        assert estimate_text(text, True) == math.ceil(13 * 1.3 * 1.15) == 20

    @pytest.mark.parametrize("text", ["a", "   ", "\n\t", "x" * 5000, "你好"])
    def test_non_empty_is_at_least_one(self, text):
        assert estimate_text(text) >= 1

    def test_whitespace_only_falls_back_to_characters(self):
        # no words: 4 chars * 0.25 * 1.15 rounds up to 2
        assert estimate_text("    ") == math.ceil(4 * 0.25 * BUFFER_FACTOR) == 2

    def test_excluding_code_lowers_estimate(self):
        text = "Here is code:\n```python\nprint('x')\nprint('y')\n```\nDone"
        assert estimate_text(text, include_code=False) == 6
        assert estimate_text(text, include_code=False) < estimate_text(text, include_code=True)

    def test_all_code_still_counts_one(self):
        assert estimate_text("```\nx = 1\n```", include_code=False) == 1


class TestStripCode:
    def test_removes_fenced_block(self):
        assert strip_code("before\n```\ncode here\n```\nafter") == "before\nafter"

    def test_removes_inline_span(self):
        assert strip_code("call `len(x)` now") == "call  now"

    def test_removes_pre_and_code_markup(self):
        assert strip_code("a <PRE>x\ny</PRE> b <code>z</code> c") == "a  b  c"

    def test_removes_indented_lines(self):
        assert strip_code("text\n    indented = True\nmore") == "text\nmore"

    def test_plain_text_unchanged(self):
        assert strip_code("just words here") == "just words here"


# ── estimate_conversation() ────────────────────────────────────────────────────

class TestEstimateConversation:
    def test_overhead_per_turn_and_conversation(self, monkeypatch):
        monkeypatch.setattr("token_watch.estimator.estimate_text", lambda text, include_code=True: 10)
        turns = [
            {"role": "user", "content": "ten tokens worth"},
            {"role": "assistant", "content": "ten more tokens"},
        ]
        assert estimate_conversation(turns) == 10 + 4 + 10 + 4 + 3 == 31

    @pytest.mark.parametrize("value", [None, "text", 7, {"role": "user", "content": "hi"}])
    def test_non_list_is_zero(self, value):
        assert estimate_conversation(value) == 0

    def test_empty_list_is_zero(self):
        assert estimate_conversation([]) == 0

    def test_turns_without_role_or_content_are_skipped(self):
        turns = [{"role": "user", "content": ""}, {"role": "", "content": "orphan text"}]
        assert estimate_conversation(turns) == 3

    def test_objects_and_mappings_agree(self):
        text = "How many tokens does this sentence use?"
        as_obj = [ConversationTurn(role="user", content=text, index=0)]
        as_map = [{"role": "user", "content": text}]
        assert estimate_conversation(as_obj) == estimate_conversation(as_map)

    def test_idempotent(self):
        turns = [
            {"role": "user", "content": "What is a monad?"},
            {"role": "assistant", "content": "A monad is a way of chaining computations."},
        ]
        assert estimate_conversation(turns) == estimate_conversation(turns)

    def test_appending_a_turn_never_decreases(self):
        turns = [{"role": "user", "content": "First question about tokens."}]
        before = estimate_conversation(turns)
        for text in ("x", "A longer answer with several words in it.", "```\ncode\n```"):
            turns = turns + [{"role": "assistant", "content": text}]
            after = estimate_conversation(turns, include_code=False)
            assert after >= before
            before = after
