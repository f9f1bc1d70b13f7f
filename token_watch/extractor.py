"""
Text recovery for a single turn candidate.

Tiers run in order, each only when the text so far is still too short, and
each is broader than the last: the platform's content selectors, the node's
own text, generic text tags, a text-node walk that skips button labels, and
finally the first sizeable descendant block free of UI chrome.
"""

import re

from bs4 import NavigableString, Tag
from bs4.element import Comment

from .dom import attr, class_list, class_string, node_text, select
from .log import log_debug
from .registry import PlatformConfig

TEXT_CONTAINERS = 'p, div, span, [dir="auto"], pre, code'
CHROME_WORDS = ("Copy", "Regenerate")
SKIPPED_TAGS = ("script", "style", "noscript", "template")

SHORT_TEXT = 10   # below this the generic-container and block-scan tiers run
WALK_TEXT = 20    # below this the text-node walk runs
BLOCK_TEXT = 20   # a block must be longer than this to be picked


def rejects(node: Tag, config: PlatformConfig) -> bool:
    """True when the platform pre-filter marks the node as UI chrome."""
    pre = config.prefilter
    if not pre.active:
        return False
    classes = class_string(node)
    if any(fragment in classes for fragment in pre.class_fragments):
        log_debug(f"Skipping UI element by class: {classes}")
        return True
    raw = node.get_text()
    if len(raw) < pre.min_length:
        return True
    if pre.chrome_pattern and re.match(pre.chrome_pattern, raw):
        log_debug(f"Skipping UI element by text: {raw[:30]!r}")
        return True
    return False


def _joined(nodes) -> str:
    return " ".join(t for t in (node_text(n) for n in nodes) if t).strip()


def _is_control(el: Tag) -> bool:
    return el.name == "button" or "button" in class_list(el) or attr(el, "role") == "button"


def _hidden_from_walk(s: NavigableString, node: Tag) -> bool:
    el = s.parent
    while el is not None:
        if el.name in SKIPPED_TAGS or _is_control(el):
            return True
        if el is node:
            return False
        el = el.parent
    return False


def walk_text(node: Tag) -> str:
    """Every text node under `node` except button labels, space-joined."""
    parts = []
    for s in node.descendants:
        if not isinstance(s, NavigableString) or isinstance(s, Comment):
            continue
        value = s.strip()
        if value and not _hidden_from_walk(s, node):
            parts.append(value)
    return " ".join(parts)


def extract(node: Tag, config: PlatformConfig) -> str:
    content = ""

    matched = select(node, config.selectors.content)
    if matched:
        content = _joined(matched)
        log_debug(f"Content tier 1: {len(matched)} nodes, {len(content)} chars")

    if not content:
        content = node_text(node)
        log_debug(f"Content tier 2: {len(content)} chars")

    if len(content) < SHORT_TEXT:
        texts = _joined(select(node, TEXT_CONTAINERS))
        if texts:
            content = texts
            log_debug(f"Content tier 3: {len(content)} chars")

    if len(content) < WALK_TEXT:
        walked = walk_text(node)
        if walked:
            content = walked
            log_debug(f"Content tier 4: {len(content)} chars")

    # Only reached when the walk dropped control labels an earlier tier had kept
    if len(content) < SHORT_TEXT:
        for block in node.find_all("div"):
            text = node_text(block)
            if len(text) > BLOCK_TEXT and not any(word in text for word in CHROME_WORDS):
                content = text
                log_debug(f"Content tier 5: {len(content)} chars")
                break

    return content.strip()
