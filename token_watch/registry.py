"""
Platform profiles.

Each supported chat site is described by one YAML file in platforms/: where
it lives (domains, URL patterns), how its turns are found (selectors), what
it calls the two parties (role labels), its context ceiling, and the tables
the role heuristics read. Profiles are loaded once and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .log import log_debug, log_warn

PLATFORMS_DIR = Path(__file__).resolve().parent / "platforms"

DEFAULT_TOKEN_LIMIT = 8000


class Platform(str, Enum):
    CHATGPT = "chatgpt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GROK = "grok"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Selectors:
    primary: str
    fallback: tuple[str, ...] = ()
    content: str = ""


@dataclass(frozen=True)
class Prefilter:
    """Rejects UI chrome before any extraction is attempted."""
    class_fragments: tuple[str, ...] = ()
    chrome_pattern: str = ""
    min_length: int = 0

    @property
    def active(self) -> bool:
        return bool(self.class_fragments or self.chrome_pattern or self.min_length)


@dataclass(frozen=True)
class RoleHints:
    author_attribute: str = ""
    streaming_attribute: str = "data-is-streaming"
    identifier_attribute: str = "data-testid"
    user_identifiers: tuple[str, ...] = ()
    assistant_identifiers: tuple[str, ...] = ()
    # whole class tokens, checked before the substring tables
    user_class_tokens: tuple[str, ...] = ()
    assistant_class_tokens: tuple[str, ...] = ()
    user_classes: tuple[str, ...] = ()
    assistant_classes: tuple[str, ...] = ()
    assistant_classes_first: bool = False
    inherit_classes: bool = False
    layout_classes: tuple[str, ...] = ("justify-end", "ml-auto")
    request_prefixes: tuple[str, ...] = ()
    user_markers: tuple[str, ...] = ()
    assistant_markers: tuple[str, ...] = ()
    # Content-pattern thresholds, tuned by inspection
    user_max_length: int = 500
    assistant_min_length: int = 800


@dataclass(frozen=True)
class PlatformConfig:
    platform: Platform
    name: str
    domains: tuple[str, ...]
    selectors: Selectors
    user_role: str
    assistant_role: str
    token_limit: int = DEFAULT_TOKEN_LIMIT
    url_patterns: tuple[str, ...] = ()
    enabled: bool = True
    priority: int = 100
    prefilter: Prefilter = field(default_factory=Prefilter)
    hints: RoleHints = field(default_factory=RoleHints)


class ProfileError(ValueError):
    pass


def _strings(value, key) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ProfileError(f"{key} must be a string or a list of strings")
    return tuple(value)


def _build_hints(data: dict) -> RoleHints:
    data = data or {}
    identifiers = data.get("identifiers") or {}
    classes = data.get("classes") or {}
    tokens = classes.get("tokens") or {}
    content = data.get("content") or {}
    defaults = RoleHints()
    layout = data.get("layout_classes")
    return RoleHints(
        author_attribute=data.get("author_attribute", ""),
        streaming_attribute=data.get("streaming_attribute", defaults.streaming_attribute),
        identifier_attribute=data.get("identifier_attribute", defaults.identifier_attribute),
        user_identifiers=_strings(identifiers.get("user"), "hints.identifiers.user"),
        assistant_identifiers=_strings(identifiers.get("assistant"), "hints.identifiers.assistant"),
        user_classes=_strings(classes.get("user"), "hints.classes.user"),
        assistant_classes=_strings(classes.get("assistant"), "hints.classes.assistant"),
        user_class_tokens=_strings(tokens.get("user"), "hints.classes.tokens.user"),
        assistant_class_tokens=_strings(tokens.get("assistant"), "hints.classes.tokens.assistant"),
        assistant_classes_first=bool(classes.get("assistant_first", False)),
        inherit_classes=bool(classes.get("inherit", False)),
        layout_classes=defaults.layout_classes if layout is None else _strings(layout, "hints.layout_classes"),
        request_prefixes=_strings(content.get("request_prefixes"), "hints.content.request_prefixes"),
        user_markers=_strings(content.get("user_markers"), "hints.content.user_markers"),
        assistant_markers=_strings(content.get("assistant_markers"), "hints.content.assistant_markers"),
        user_max_length=int(content.get("user_max_length", defaults.user_max_length)),
        assistant_min_length=int(content.get("assistant_min_length", defaults.assistant_min_length)),
    )


def build_config(data: dict) -> PlatformConfig:
    """PlatformConfig from a parsed profile mapping; raises ProfileError when invalid."""
    if not isinstance(data, dict):
        raise ProfileError("profile must be a mapping")
    try:
        platform = Platform(str(data.get("platform", "")).lower())
    except ValueError:
        raise ProfileError(f"unknown platform tag {data.get('platform')!r}") from None
    if platform is Platform.UNKNOWN:
        raise ProfileError("'unknown' cannot be registered")

    sel = data.get("selectors") or {}
    primary = sel.get("primary") or ""
    if not isinstance(primary, str) or not primary.strip():
        raise ProfileError("selectors.primary must be a non-empty string")

    roles = data.get("roles") or {}
    user_role = str(roles.get("user") or "").strip()
    assistant_role = str(roles.get("assistant") or "").strip()
    if not user_role or not assistant_role:
        raise ProfileError("roles.user and roles.assistant are required")

    try:
        token_limit = int(data.get("token_limit", DEFAULT_TOKEN_LIMIT))
        priority = int(data.get("priority", 100))
    except (TypeError, ValueError) as e:
        raise ProfileError(str(e)) from None
    if token_limit <= 0:
        raise ProfileError("token_limit must be positive")

    domains = _strings(data.get("domains"), "domains")
    pre = data.get("prefilter") or {}

    return PlatformConfig(
        platform=platform,
        name=str(data.get("name") or platform.value.title()),
        domains=tuple(d.lower() for d in domains),
        url_patterns=_strings(data.get("url_patterns"), "url_patterns"),
        enabled=bool(data.get("enabled", True)),
        priority=priority,
        selectors=Selectors(
            primary=primary,
            fallback=_strings(sel.get("fallback"), "selectors.fallback"),
            content=sel.get("content") or "",
        ),
        user_role=user_role,
        assistant_role=assistant_role,
        token_limit=token_limit,
        prefilter=Prefilter(
            class_fragments=_strings(pre.get("class_fragments"), "prefilter.class_fragments"),
            chrome_pattern=pre.get("chrome_pattern") or "",
            min_length=int(pre.get("min_length", 0)),
        ),
        hints=_build_hints(data.get("hints")),
    )


class PlatformRegistry:
    """Profiles in resolution order: ascending priority, then profile name."""

    def __init__(self, configs):
        ordered = sorted(configs, key=lambda c: (c.priority, c.platform.value))
        self._configs: dict[Platform, PlatformConfig] = {}
        for config in ordered:
            if config.platform in self._configs:
                log_warn(f"Duplicate profile for {config.platform.value}; keeping the first")
                continue
            self._configs[config.platform] = config

    def __iter__(self):
        return iter(self._configs.values())

    def __len__(self):
        return len(self._configs)

    def __contains__(self, platform):
        return platform in self._configs

    def get(self, platform: Platform) -> PlatformConfig | None:
        return self._configs.get(platform)

    def supported_domains(self) -> list[str]:
        """Host match patterns for every registered domain, duplicates removed."""
        patterns = []
        for config in self:
            for domain in config.domains:
                pattern = f"https://{domain}/*"
                if pattern not in patterns:
                    patterns.append(pattern)
        return patterns


def load_profiles(directory: Path | None = None) -> list[PlatformConfig]:
    directory = directory or PLATFORMS_DIR
    configs = []
    if not directory.exists():
        log_warn(f"Platform directory not found: {directory}")
        return configs
    for p_path in sorted(directory.glob("*.yaml")):
        try:
            data = yaml.safe_load(p_path.read_text(encoding="utf-8"))
            configs.append(build_config(data))
            log_debug(f"Loaded platform profile {p_path.stem}")
        except (OSError, yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
            log_warn(f"Failed to load profile {p_path.name}: {e}")
    return configs


def load_registry(directory: Path | None = None) -> PlatformRegistry:
    return PlatformRegistry(load_profiles(directory))
