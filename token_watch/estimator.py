"""
Token estimates for conversation text.

This is a calibrated approximation, not a tokenizer: roughly 1.3 tokens per
whitespace-separated word (a quarter token per character when there are no
words), padded by a 15% buffer because real tokenizers tend to count higher.
"""

import math
import re
from collections.abc import Mapping

TOKENS_PER_WORD = 1.3
TOKENS_PER_CHAR = 0.25
BUFFER_FACTOR = 1.15

TURN_OVERHEAD = 4          # role and formatting tokens per message
CONVERSATION_OVERHEAD = 3  # priming tokens for the whole exchange

_CODE_PATTERNS = (
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`[^`\n]*`"), ""),
    (re.compile(r"<pre[\s\S]*?</pre>", re.I), ""),
    (re.compile(r"<code[\s\S]*?</code>", re.I), ""),
    (re.compile(r"^(?: {4,}|\t).*$", re.M), ""),
    (re.compile(r"\n\s*\n"), "\n"),
)


def strip_code(text: str) -> str:
    """Remove fenced blocks, inline spans, pre/code markup and indented code lines."""
    for pattern, repl in _CODE_PATTERNS:
        text = pattern.sub(repl, text)
    return text.strip()


def estimate_text(text, include_code: bool = True) -> int:
    if not isinstance(text, str) or not text:
        return 0

    processed = text if include_code else strip_code(text)
    words = len(processed.split())
    if words > 0:
        base = words * TOKENS_PER_WORD
    else:
        base = len(processed) * TOKENS_PER_CHAR

    return max(math.ceil(base * BUFFER_FACTOR), 1)


def _field(turn, name):
    if isinstance(turn, Mapping):
        return turn.get(name)
    return getattr(turn, name, None)


def estimate_conversation(turns, include_code: bool = True) -> int:
    """Estimate for a whole exchange; turns are ConversationTurn objects or role/content mappings."""
    if not isinstance(turns, (list, tuple)) or not turns:
        return 0

    total = 0
    for turn in turns:
        role, content = _field(turn, "role"), _field(turn, "content")
        if role and content:
            total += estimate_text(content, include_code)
            total += TURN_OVERHEAD

    return total + CONVERSATION_OVERHEAD
