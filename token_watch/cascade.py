from bs4 import Tag

from .dom import DocumentTree
from .log import log_debug
from .registry import PlatformConfig


def collect_candidates(tree: DocumentTree, config: PlatformConfig) -> list[Tag]:
    """Turn-candidate nodes: the primary selector's matches, else the first fallback that matches anything.

    Fallback tiers are never merged; each describes a different page shape.
    """
    nodes = tree.query(config.selectors.primary)
    log_debug(f"{len(nodes)} candidates from primary selector")
    if nodes:
        return nodes

    for selector in config.selectors.fallback:
        nodes = tree.query(selector)
        log_debug(f"Fallback {selector!r}: {len(nodes)} candidates")
        if nodes:
            return nodes
    return []
