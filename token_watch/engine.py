"""
One full pass over a page: detect the platform, find and read its turns,
and price them against the platform's context limit.

Nothing here is cached between passes; every call re-derives the turns from
the tree it is given, so the result always reflects the current page.
"""

from dataclasses import dataclass, field

from .cascade import collect_candidates
from .dom import DocumentTree
from .estimator import estimate_conversation
from .extractor import rejects
from .log import log_debug
from .registry import PlatformConfig, PlatformRegistry
from .resolver import DetectionResult, Location, resolve
from .roles import CONTENT_HINT_MIN, UNKNOWN_ROLE, RoleContext, role_for
from .settings import Settings

CRITICAL_PERCENT = 95

NORMAL = "normal"
WARNING = "warning"
CRITICAL = "critical"


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str
    index: int


@dataclass(frozen=True)
class BudgetStatus:
    tokens: int
    limit: int
    warning_threshold: int = 80
    min_remaining_tokens: int = 1000

    @property
    def percentage(self) -> float:
        if self.limit <= 0:
            return 0.0
        return self.tokens / self.limit * 100

    @property
    def remaining(self) -> int:
        return self.limit - self.tokens

    @property
    def level(self) -> str:
        if self.percentage >= CRITICAL_PERCENT:
            return CRITICAL
        if self.percentage >= self.warning_threshold or self.remaining <= self.min_remaining_tokens:
            return WARNING
        return NORMAL


@dataclass(frozen=True)
class ScanResult:
    detection: DetectionResult
    turns: list[ConversationTurn] = field(default_factory=list)
    tokens: int = 0
    limit: int = 0
    settings: Settings = field(default_factory=Settings)

    @property
    def status(self) -> BudgetStatus:
        return BudgetStatus(
            tokens=self.tokens,
            limit=self.limit,
            warning_threshold=self.settings.warning_threshold,
            min_remaining_tokens=self.settings.min_remaining_tokens,
        )

    def as_dict(self) -> dict:
        status = self.status
        return {
            "platform": self.detection.platform.value,
            "name": self.detection.name,
            "supported": self.detection.is_supported,
            "turns": len(self.turns),
            "tokens": self.tokens,
            "limit": self.limit,
            "percentage": round(status.percentage, 1),
            "remaining": status.remaining,
            "level": status.level,
        }


def extract_turns(tree: DocumentTree, config: PlatformConfig) -> list[ConversationTurn]:
    """Classified, non-trivial turns in document order."""
    candidates = collect_candidates(tree, config)
    ctx = RoleContext(config, candidates)
    turns = []

    for node in candidates:
        if rejects(node, config):
            continue
        content = ctx.text_of(node)
        role = role_for(node, ctx)
        if len(content) <= CONTENT_HINT_MIN or role == UNKNOWN_ROLE:
            log_debug(f"Dropping candidate <{node.name}>: {len(content)} chars, role {role}")
            continue
        turns.append(ConversationTurn(role=role, content=content, index=len(turns)))

    log_debug(f"Found {len(turns)} turns on {config.name}")
    return turns


def scan(tree: DocumentTree, location: Location, registry: PlatformRegistry, settings: Settings | None = None) -> ScanResult:
    settings = settings or Settings()
    detection = resolve(location, tree, registry)
    limit = detection.token_limit or settings.max_tokens

    if not settings.enabled or not detection.is_supported:
        return ScanResult(detection=detection, limit=limit, settings=settings)

    turns = extract_turns(tree, detection.config)
    tokens = estimate_conversation(turns, settings.include_code)
    return ScanResult(detection=detection, turns=turns, tokens=tokens, limit=limit, settings=settings)
