"""
Author-role classification for turn candidates.

Every platform has an ordered battery of strategies. A strategy looks at one
node (plus the pass-wide RoleContext) and returns a role label or None; the
first label wins. The tables a strategy reads (identifier keywords, class
markers, content thresholds) come from the platform profile's `hints`.

Positional alternation is the last resort on platforms whose markup carries
no reliable author signal: among the candidates with substantial text, even
positions are the human, odd positions the assistant.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from bs4 import Tag

from .dom import attr, class_list, class_string, closest, index_of, node_text, parents, select
from .extractor import extract
from .log import log_debug
from .registry import Platform, PlatformConfig

UNKNOWN_ROLE = "unknown"

SUBSTANTIAL_TEXT = 20
CONTENT_HINT_MIN = 10
ANCESTOR_LEVELS = 3
CONVERSATION_TURN_ID = "conversation-turn"


@dataclass
class RoleContext:
    """State shared by every classification in one scan pass; discarded afterwards."""
    config: PlatformConfig
    candidates: list[Tag]
    _texts: dict[int, str] = field(default_factory=dict)
    _substantial: Optional[list[Tag]] = None

    def text_of(self, node: Tag) -> str:
        key = id(node)
        if key not in self._texts:
            self._texts[key] = extract(node, self.config)
        return self._texts[key]

    @property
    def substantial(self) -> list[Tag]:
        if self._substantial is None:
            self._substantial = [n for n in self.candidates if len(self.text_of(n)) > SUBSTANTIAL_TEXT]
        return self._substantial

    @property
    def user(self) -> str:
        return self.config.user_role

    @property
    def assistant(self) -> str:
        return self.config.assistant_role


RoleStrategy = Callable[[Tag, RoleContext], Optional[str]]


def _contains_any(value: str, needles) -> bool:
    return any(n in value for n in needles)


def _identifier_role(node: Tag, ctx: RoleContext) -> Optional[str]:
    hints = ctx.config.hints
    ident = attr(node, hints.identifier_attribute).lower()
    if not ident:
        return None
    if _contains_any(ident, hints.user_identifiers):
        return ctx.user
    if _contains_any(ident, hints.assistant_identifiers):
        return ctx.assistant
    return None


def _class_tables(ctx: RoleContext):
    """(role, substring markers) pairs in the order the profile wants them tried."""
    hints = ctx.config.hints
    tables = [(ctx.user, hints.user_classes), (ctx.assistant, hints.assistant_classes)]
    return tables[::-1] if hints.assistant_classes_first else tables


def _class_role(node: Tag, ctx: RoleContext) -> Optional[str]:
    classes = class_string(node)
    for role, markers in _class_tables(ctx):
        if _contains_any(classes, markers):
            return role
    return None


# --- Strategies ---

def author_attribute(node, ctx):
    """Explicit authorship attribute; its value is taken as-is."""
    name = ctx.config.hints.author_attribute
    if not name:
        return None
    return attr(node, name) or None


def streaming_marker(node, ctx):
    # Only assistant replies carry a generating flag, whatever its value
    if attr(node, ctx.config.hints.streaming_attribute) in ("true", "false"):
        return ctx.assistant
    return None


def conversation_turn_marker(node, ctx):
    if attr(node, ctx.config.hints.identifier_attribute) != CONVERSATION_TURN_ID:
        return None
    prefixes = ctx.config.hints.request_prefixes
    if prefixes and node.get_text().lstrip().startswith(prefixes):
        return ctx.user
    return ctx.assistant


def identifier_substring(node, ctx):
    return _identifier_role(node, ctx)


def marked_role(node, ctx):
    """Whole class token or identifier keyword, user side first."""
    hints = ctx.config.hints
    tokens = class_list(node)
    ident = attr(node, hints.identifier_attribute).lower()
    sides = (
        (ctx.user, hints.user_class_tokens, hints.user_identifiers),
        (ctx.assistant, hints.assistant_class_tokens, hints.assistant_identifiers),
    )
    for role, class_tokens, keywords in sides:
        if any(t in tokens for t in class_tokens) or (ident and _contains_any(ident, keywords)):
            return role
    return None


def identifier_closest(node, ctx):
    """Identifier keyword on the node or on any ancestor, user side first."""
    hints = ctx.config.hints
    name = hints.identifier_attribute
    for role, keywords in ((ctx.user, hints.user_identifiers), (ctx.assistant, hints.assistant_identifiers)):
        for keyword in keywords:
            if closest(node, f'[{name}*="{keyword}"]') is not None:
                return role
    return None


def class_convention(node, ctx):
    role = _class_role(node, ctx)
    if role or not ctx.config.hints.inherit_classes:
        return role
    for role, markers in _class_tables(ctx):
        for marker in markers:
            if closest(node, f'[class*="{marker}"]') is not None:
                return role
    return None


def embedded_post_author(node, ctx):
    """Grok answers embedded in X timelines: a tweet cell is Grok's if it shows a Grok marker."""
    ident = attr(node, ctx.config.hints.identifier_attribute)
    if "tweet" not in ident and "cellInnerDiv" not in ident:
        return None
    has_grok = (
        select(node, '[data-testid*="grok"]')
        or "@grok" in node.get_text()
        or closest(node, '[aria-label*="Grok"]') is not None
    )
    return ctx.assistant if has_grok else ctx.user


def structural_identifier(node, ctx):
    # Individually boxed articles with an identifier are usually replies
    if attr(node, "role") == "article" and attr(node, ctx.config.hints.identifier_attribute):
        return ctx.assistant
    return None


def layout_position(node, ctx):
    layout = ctx.config.hints.layout_classes
    if _contains_any(class_string(node), layout):
        return ctx.user
    for marker in layout:
        if closest(node, f'[class*="{marker}"]') is not None:
            return ctx.user
    return None


def ancestor_walk(node, ctx):
    for parent in parents(node, ANCESTOR_LEVELS):
        role = _class_role(parent, ctx) or _identifier_role(parent, ctx)
        if role:
            return role
    return None


def content_pattern(node, ctx):
    hints = ctx.config.hints
    text = node_text(node)
    if len(text) <= CONTENT_HINT_MIN:
        return None
    if _contains_any(text, hints.user_markers) and len(text) < hints.user_max_length:
        return ctx.user
    if _contains_any(text, hints.assistant_markers) or len(text) > hints.assistant_min_length:
        return ctx.assistant
    return None


def positional_alternation(node, ctx):
    idx = index_of(node, ctx.substantial)
    if idx < 0:
        idx = index_of(node, ctx.candidates)
        if idx < 0:
            return None
    return ctx.user if idx % 2 == 0 else ctx.assistant


BATTERIES: dict[Platform, tuple[RoleStrategy, ...]] = {
    Platform.CHATGPT: (author_attribute,),
    Platform.CLAUDE: (
        streaming_marker,
        conversation_turn_marker,
        identifier_substring,
        class_convention,
        structural_identifier,
        layout_position,
        ancestor_walk,
        content_pattern,
        positional_alternation,
    ),
    Platform.GEMINI: (marked_role, class_convention),
    Platform.GROK: (
        class_convention,
        embedded_post_author,
        identifier_closest,
        positional_alternation,
    ),
}


def run_battery(node: Tag, ctx: RoleContext) -> str:
    for strategy in BATTERIES.get(ctx.config.platform, ()):
        role = strategy(node, ctx)
        if role:
            log_debug(f"Role {role} from {strategy.__name__}")
            return role
    return UNKNOWN_ROLE


def infer_default_role(node: Tag, config: PlatformConfig) -> str:
    """Role for substantial text no heuristic could place.

    Counting does not care who spoke, so the assistant label is the safe guess.
    """
    return config.assistant_role or "assistant"


def role_for(node: Tag, ctx: RoleContext) -> str:
    """Battery result, or the default guess when the node still has real content."""
    role = run_battery(node, ctx)
    if role == UNKNOWN_ROLE and len(ctx.text_of(node)) > CONTENT_HINT_MIN:
        role = infer_default_role(node, ctx.config)
        log_debug(f"Role unknown; counting as {role}")
    return role


def classify(node: Tag, candidates: list[Tag], config: PlatformConfig) -> str:
    return role_for(node, RoleContext(config, list(candidates)))
