"""
User settings for the token monitor.

Defaults ship as config.default.yaml next to this module. A user config.yaml
(current directory first, then the per-user config folder) is deep-merged on
top, and an explicit path given on the command line wins over both.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .log import log_debug, log_warn

DEFAULTS = {
    "enabled": True,
    "include_code": True,
    "warning_threshold": 80,
    "min_remaining_tokens": 1000,
    "max_tokens": 8000,
    "update_interval": 2000,
}

# Keys as exported by the browser extension's settings page
CAMEL_CASE_KEYS = {
    "includeCode": "include_code",
    "warningThreshold": "warning_threshold",
    "minRemainingTokens": "min_remaining_tokens",
    "maxTokens": "max_tokens",
    "updateInterval": "update_interval",
}


@dataclass(frozen=True)
class Settings:
    enabled: bool = True
    include_code: bool = True
    warning_threshold: int = 80
    min_remaining_tokens: int = 1000
    max_tokens: int = 8000
    update_interval: int = 2000  # milliseconds

    @property
    def interval_seconds(self) -> float:
        return self.update_interval / 1000.0

    def problems(self) -> list[str]:
        found = []
        if self.min_remaining_tokens >= self.max_tokens:
            found.append("min_remaining_tokens must be less than max_tokens")
        if self.warning_threshold >= 100:
            found.append("warning_threshold must be less than 100")
        if self.max_tokens <= 0:
            found.append("max_tokens must be positive")
        if self.update_interval <= 0:
            found.append("update_interval must be positive")
        return found

    @classmethod
    def from_mapping(cls, data: dict) -> "Settings":
        merged = dict(DEFAULTS)
        for key, value in (data or {}).items():
            key = CAMEL_CASE_KEYS.get(key, key)
            if key in merged:
                merged[key] = value

        kwargs = {}
        for f in fields(cls):
            value = merged[f.name]
            default = DEFAULTS[f.name]
            try:
                kwargs[f.name] = bool(value) if isinstance(default, bool) else int(value)
            except (TypeError, ValueError):
                log_warn(f"Invalid value for {f.name!r}: {value!r}, using {default!r}")
                kwargs[f.name] = default

        settings = cls(**kwargs)
        issues = settings.problems()
        if issues:
            for issue in issues:
                log_warn(f"Settings rejected: {issue}")
            return cls()
        return settings


def get_config_paths():
    """Candidate paths for config.yaml, in override order."""
    base_dir = Path(__file__).resolve().parent
    appdata = os.environ.get("APPDATA")
    if appdata:
        user_dir = Path(appdata) / "ai-token-watch"
    else:
        user_dir = Path.home() / ".config" / "ai-token-watch"

    return {
        "local": Path.cwd() / "config.yaml",
        "user": user_dir / "config.yaml",
        "default": base_dir / "config.default.yaml",
    }


def deep_merge(target: dict, source: dict):
    for k, v in source.items():
        if k in target and isinstance(target[k], dict) and isinstance(v, dict):
            deep_merge(target[k], v)
        else:
            target[k] = v


def normalize(d):
    if isinstance(d, dict):
        return {k: normalize(v) for k, v in d.items()}
    if isinstance(d, list):
        return [normalize(i) for i in d]
    if isinstance(d, str) and d.lower() in ("true", "false"):
        return d.lower() == "true"
    return d


def load_file(path: Path | None) -> dict:
    if not path or not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        log_warn(f"Failed to load {path.name}: {e}")
        return {}
    if not isinstance(data, dict):
        log_warn(f"Ignoring {path.name}: expected a mapping, got {type(data).__name__}")
        return {}
    return normalize(data)


def load_config(path: Path | None = None) -> dict:
    """Merged raw configuration: defaults, then user file (local > user dir), then `path`."""
    paths = get_config_paths()
    config = dict(DEFAULTS)

    deep_merge(config, load_file(paths["default"]))

    if paths["local"].exists():
        log_debug(f"Using config override {paths['local']}")
        deep_merge(config, load_file(paths["local"]))
    elif paths["user"].exists():
        log_debug(f"Using config override {paths['user']}")
        deep_merge(config, load_file(paths["user"]))

    if path is not None:
        if not path.exists():
            log_warn(f"Config file not found: {path}")
        deep_merge(config, load_file(path))

    return config


def load_settings(path: Path | None = None) -> Settings:
    return Settings.from_mapping(load_config(path))
