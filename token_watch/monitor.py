"""
Periodic re-scanning of a page source.

Single-threaded: `poll()` runs at most one synchronous cycle and `run()` just
sleeps between polls, so cycles can never overlap. The last ScanResult is the
only state carried from one cycle to the next, and it is replaced wholesale.

A URL change seen by a cycle (or reported through `notify_navigation`) is a
navigation: the count drops to zero and the timer restarts after a short
settle delay instead of a second scan racing the periodic one.
"""

import time
from dataclasses import replace

from .engine import CRITICAL, WARNING, ScanResult, scan
from .log import log_debug, log_warn
from .registry import PlatformRegistry
from .resolver import DetectionResult
from .settings import Settings

NAVIGATION_SETTLE_SECONDS = 1.0
WARNING_COOLDOWN_SECONDS = 300.0


class Monitor:
    def __init__(self, source, registry: PlatformRegistry, settings: Settings | None = None,
                 on_update=None, on_warning=None, clock=time.monotonic, sleep=time.sleep):
        self.source = source
        self.registry = registry
        self.settings = settings or Settings()
        self.on_update = on_update
        self.on_warning = on_warning
        self.clock = clock
        self.sleep = sleep

        self.last_result: ScanResult | None = None
        self.last_url: str | None = None
        self._next_due: float | None = None
        self._last_warning: float | None = None

    @property
    def current_tokens(self) -> int:
        return self.last_result.tokens if self.last_result else 0

    def notify_navigation(self, url: str):
        if url == self.last_url:
            return
        log_debug(f"Navigation to {url or '(no url)'}; restarting timer")
        self.last_url = url
        if self.last_result is not None:
            self.last_result = replace(self.last_result, turns=[], tokens=0)
        else:
            self.last_result = ScanResult(detection=DetectionResult.of(None), settings=self.settings,
                                          limit=self.settings.max_tokens)
        self._next_due = self.clock() + NAVIGATION_SETTLE_SECONDS
        self._publish(self.last_result)

    def cycle(self) -> ScanResult | None:
        """One synchronous detect/extract/estimate pass."""
        snap = self.source.snapshot()
        if snap is None:
            log_debug("No page snapshot available")
            return self.last_result

        href = snap.location.href
        if self.last_url is not None and href != self.last_url:
            self.notify_navigation(href)
            return self.last_result
        self.last_url = href

        result = scan(snap.tree, snap.location, self.registry, self.settings)
        self.last_result = result
        self._publish(result)
        self._maybe_warn(result)
        return result

    def poll(self) -> bool:
        """Run a cycle if one is due; True when it ran."""
        now = self.clock()
        if self._next_due is not None and now < self._next_due:
            return False
        self._next_due = now + self.settings.interval_seconds
        try:
            self.cycle()
        except Exception as e:  # a broken page must not stop the watch loop
            log_warn(f"Token estimation error: {e}")
        return True

    def run(self, max_cycles: int | None = None):
        done = 0
        while max_cycles is None or done < max_cycles:
            if self.poll():
                done += 1
                continue
            self.sleep(max(0.0, self._next_due - self.clock()))

    def _publish(self, result: ScanResult):
        if self.on_update:
            self.on_update(result)

    def _maybe_warn(self, result: ScanResult):
        if not self.settings.enabled or not result.detection.is_supported:
            return
        if result.status.level not in (WARNING, CRITICAL):
            return
        now = self.clock()
        if self._last_warning is not None and now - self._last_warning < WARNING_COOLDOWN_SECONDS:
            return
        self._last_warning = now
        if self.on_warning:
            self.on_warning(result)
