#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
AI Token Watch - estimate the context budget used by an AI chat page

Reads a chat page as HTML (from a saved file or from the clipboard, supporting
the Windows HTML clipboard format), detects which AI platform it came from,
extracts the conversation turns, and reports how many tokens they are likely
to cost against that platform's context limit. With --watch the source is
re-read on the configured interval and a warning is printed when the budget
runs low.
"""

import sys
import json
import argparse
import datetime as dt
from dataclasses import replace
from pathlib import Path

from token_watch import __version__
from token_watch.engine import CRITICAL, WARNING, ScanResult, scan
from token_watch.log import log_debug, log_warn, set_debug
from token_watch.monitor import Monitor
from token_watch.registry import load_registry
from token_watch.resolver import debug_info
from token_watch.settings import load_settings
from token_watch.sources import ClipboardSource, FileSource

# --- Global State ---
args = None


def build_source(opts):
    if opts.file:
        return FileSource(Path(opts.file), url=opts.url)
    return ClipboardSource(url=opts.url)


def format_status(result: ScanResult) -> str:
    status = result.status
    if not result.detection.is_supported:
        name = result.detection.name
        if result.detection.config is not None:
            return f"{name}: detected but disabled, not counting."
        return f"{name}: no supported chat platform found."
    return (f"{result.detection.name}: {result.tokens:,} / {result.limit:,} tokens "
            f"({status.percentage:.1f}%, {status.remaining:,} remaining) "
            f"[{len(result.turns)} turns, {status.level}]")


def format_warning(result: ScanResult) -> str:
    status = result.status
    label = "Critical" if status.level == CRITICAL else "Warning"
    return f"{label}: token usage {round(status.percentage)}% ({status.remaining:,} remaining)"


def render_turns_markdown(result: ScanResult, title: str) -> str:
    """Turn dump in the same layout the extractor writes chat logs in."""
    config = result.detection.config
    user_role = config.user_role if config else "user"
    md_output = [f"# {title}\n\nPlatform: {result.detection.name}\n"
                 f"Estimated tokens: {result.tokens:,} / {result.limit:,}\n"
                 f"Extracted Date: {dt.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n---\n"]
    for turn in result.turns:
        header = "## User" if turn.role == user_role else "## AI"
        md_output.append(f"{header}\n\n{turn.content}\n")
    return "\n".join(md_output)


def print_result(result: ScanResult, title: str = ""):
    if args.json:
        data = result.as_dict()
        if args.turns:
            data["messages"] = [{"role": t.role, "content": t.content} for t in result.turns]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    print(format_status(result))
    if args.turns and result.turns:
        print("-" * 40)
        print(render_turns_markdown(result, title or "Conversation"))


def main():
    global args
    parser = argparse.ArgumentParser(description="Estimate token usage of an AI chat page.")
    parser.add_argument("--file", help="Read the page from this HTML file instead of the clipboard.")
    parser.add_argument("--url", help="Page URL, used to detect the platform.")
    parser.add_argument("--config", help="Path to a config.yaml with setting overrides.")
    parser.add_argument("--no-code", action="store_true", help="Leave code blocks out of the estimate.")
    parser.add_argument("--turns", action="store_true", help="Also print the extracted turns.")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON.")
    parser.add_argument("--watch", action="store_true", help="Keep re-scanning on the configured interval.")
    parser.add_argument("--cycles", type=int, help="Stop watching after this many scans.")
    parser.add_argument("--debug-selectors", action="store_true", help="Show which platform selectors match the page.")
    parser.add_argument("--debug", action="store_true", help="Show debug information.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    set_debug(args.debug)

    # Fix Windows console encoding
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding='utf-8')
        except AttributeError:
            pass

    settings = load_settings(Path(args.config) if args.config else None)
    if args.no_code:
        settings = replace(settings, include_code=False)
    registry = load_registry()
    log_debug(f"{len(registry)} platform profiles loaded")

    source = build_source(args)

    if args.watch:
        def on_update(result):
            if not args.json:
                print(f"[{dt.datetime.now().strftime('%H:%M:%S')}] {format_status(result)}")
            else:
                print(json.dumps(result.as_dict(), ensure_ascii=False))

        monitor = Monitor(source, registry, settings,
                          on_update=on_update,
                          on_warning=lambda result: log_warn(format_warning(result)))
        try:
            monitor.run(max_cycles=args.cycles)
        except KeyboardInterrupt:
            print("\nStopped.")
        return 0

    snap = source.snapshot()
    if snap is None or not snap.html.strip():
        print("Clipboard or input file is empty.")
        return 1

    if args.debug_selectors:
        print(json.dumps(debug_info(snap.location, snap.tree, registry), ensure_ascii=False, indent=2))
        return 0

    result = scan(snap.tree, snap.location, registry, settings)
    title = snap.tree.title()
    if not title:
        for turn in result.turns:
            if result.detection.config and turn.role == result.detection.config.user_role:
                title = turn.content[:40].split("\n")[0].strip()
                break
    print_result(result, title=title)

    if result.detection.is_supported and result.status.level in (WARNING, CRITICAL):
        log_warn(format_warning(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
