"""
Which chat platform is this page?

Location decides first (domain, then URL patterns where a profile declares
them); page structure is the fallback. Resolution never raises: a page no
profile claims is a normal UNKNOWN result.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

from .dom import DocumentTree
from .log import log_debug, log_warn
from .registry import Platform, PlatformConfig, PlatformRegistry


@dataclass(frozen=True)
class Location:
    hostname: str = ""
    pathname: str = ""
    href: str = ""

    @classmethod
    def from_url(cls, url: str | None) -> "Location":
        url = (url or "").strip()
        if not url:
            return cls()
        try:
            parts = urlsplit(url if "://" in url else f"https://{url}")
        except ValueError as e:
            log_warn(f"Unparseable page URL {url!r}: {e}")
            return cls(href=url)
        return cls(hostname=(parts.hostname or "").lower(), pathname=parts.path or "/", href=url)


@dataclass(frozen=True)
class DetectionResult:
    platform: Platform
    config: PlatformConfig | None
    is_supported: bool

    @classmethod
    def of(cls, config: PlatformConfig | None) -> "DetectionResult":
        if config is None:
            return cls(Platform.UNKNOWN, None, False)
        return cls(config.platform, config, config.enabled)

    @property
    def name(self) -> str:
        return self.config.name if self.config else "Unknown Platform"

    @property
    def token_limit(self) -> int | None:
        return self.config.token_limit if self.config else None


def domain_matches(hostname: str, config: PlatformConfig) -> bool:
    if not hostname:
        return False
    return any(domain in hostname or hostname in domain for domain in config.domains)


def url_pattern_matches(location: Location, config: PlatformConfig) -> bool:
    return any(
        p in location.pathname or p in location.href or p in location.hostname
        for p in config.url_patterns
    )


def match_location(location: Location, registry: PlatformRegistry) -> PlatformConfig | None:
    for config in registry:
        if not domain_matches(location.hostname, config):
            continue
        log_debug(f"Domain match for {config.platform.value}: {location.hostname}")
        if not config.url_patterns:
            return config
        if url_pattern_matches(location, config):
            log_debug(f"URL pattern match for {config.platform.value}")
            return config
        log_debug(f"Domain matched but URL pattern failed for {config.platform.value}")
    return None


def match_structure(tree: DocumentTree, registry: PlatformRegistry) -> PlatformConfig | None:
    for config in registry:
        if tree.exists(config.selectors.primary):
            log_debug(f"DOM match for {config.platform.value} (primary)")
            return config
        for selector in config.selectors.fallback:
            if tree.exists(selector):
                log_debug(f"DOM match for {config.platform.value} with fallback {selector!r}")
                return config
    return None


def resolve(location: Location, tree: DocumentTree | None, registry: PlatformRegistry) -> DetectionResult:
    config = match_location(location, registry)
    if config is None and tree is not None:
        log_debug("No domain match, trying DOM detection")
        config = match_structure(tree, registry)
    result = DetectionResult.of(config)
    log_debug(f"Detected {result.platform.value} (supported={result.is_supported})")
    return result


def debug_info(location: Location, tree: DocumentTree, registry: PlatformRegistry) -> dict:
    """Per-platform view of what matched, for diagnosing stale selectors."""
    platforms = {}
    for config in registry:
        sel = config.selectors
        platforms[config.platform.value] = {
            "domain_match": domain_matches(location.hostname, config),
            "url_pattern_match": url_pattern_matches(location, config) if config.url_patterns else None,
            "primary": len(tree.query(sel.primary)),
            "fallback": {s: len(tree.query(s)) for s in sel.fallback},
            "content": len(tree.query(sel.content)) if sel.content else 0,
        }
    detected = resolve(location, tree, registry)
    return {
        "platform": detected.platform.value,
        "supported": detected.is_supported,
        "hostname": location.hostname,
        "pathname": location.pathname,
        "url": location.href,
        "platforms": platforms,
    }
