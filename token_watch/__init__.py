"""
AI Token Watch - estimate how much of a chat platform's context window the
conversation on a page has used, and warn before it runs out.
"""

from .dom import DocumentTree
from .engine import BudgetStatus, ConversationTurn, ScanResult, extract_turns, scan
from .estimator import estimate_conversation, estimate_text
from .registry import Platform, PlatformConfig, PlatformRegistry, load_registry
from .resolver import DetectionResult, Location, resolve
from .settings import Settings, load_settings

__version__ = "0.3.0"

__all__ = [
    "BudgetStatus",
    "ConversationTurn",
    "DetectionResult",
    "DocumentTree",
    "Location",
    "Platform",
    "PlatformConfig",
    "PlatformRegistry",
    "ScanResult",
    "Settings",
    "estimate_conversation",
    "estimate_text",
    "extract_turns",
    "load_registry",
    "load_settings",
    "resolve",
    "scan",
]
