"""
Where page snapshots come from.

A source hands out a fresh (tree, location) pair on every call; the monitor
never keeps a tree between cycles. The page URL is taken from the caller when
given, otherwise from what the HTML itself records: the clipboard's
SourceURL header, a browser "saved from url" mark, or canonical/og:url tags.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import pyperclip

from .dom import DocumentTree
from .log import log_debug, log_warn
from .resolver import Location

_FRAGMENT_RE = re.compile(r"<!--StartFragment-->(.*)<!--EndFragment-->", re.DOTALL)
_SOURCE_URL_RE = re.compile(r"^SourceURL:(\S+)", re.M)
_SAVED_FROM_RE = re.compile(r"<!--\s*saved from url=\(\d+\)(\S+?)\s*-->", re.I)


@dataclass(frozen=True)
class Snapshot:
    tree: DocumentTree
    location: Location
    html: str = ""


def split_clipboard_html(raw: str) -> tuple[str, str]:
    """(fragment html, source url) from Windows CF_HTML clipboard text; plain HTML passes through."""
    url = ""
    m = _SOURCE_URL_RE.search(raw[:2048])
    if m:
        url = m.group(1)
    if "StartFragment:" in raw:
        match = _FRAGMENT_RE.search(raw)
        if match:
            return match.group(1), url
    return raw, url


def url_from_html(html: str, tree: DocumentTree) -> str:
    m = _SAVED_FROM_RE.search(html[:4096])
    if m:
        return m.group(1)
    for selector, key in (('link[rel="canonical"]', "href"), ('meta[property="og:url"]', "content")):
        tag = tree.query_one(selector)
        if tag is not None and tag.get(key):
            return str(tag.get(key))
    return ""


def make_snapshot(html: str, url: str | None = None) -> Snapshot:
    tree = DocumentTree.from_html(html)
    if not url:
        url = url_from_html(html, tree)
        if url:
            log_debug(f"Page URL taken from the document: {url}")
    return Snapshot(tree=tree, location=Location.from_url(url), html=html)


class HtmlSource:
    """Fixed HTML, mostly for tests and one-shot scans."""

    def __init__(self, html: str, url: str | None = None):
        self.html = html
        self.url = url

    def snapshot(self) -> Snapshot:
        return make_snapshot(self.html, self.url)


class FileSource:
    """An HTML file on disk, re-read on every snapshot so edits and re-saves show up."""

    def __init__(self, path: Path, url: str | None = None):
        self.path = Path(path)
        self.url = url

    def snapshot(self) -> Snapshot | None:
        try:
            html = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            log_warn(f"Cannot read {self.path}: {e}")
            return None
        return make_snapshot(html, self.url)


class ClipboardSource:
    """Whatever HTML (or text) is on the clipboard right now."""

    def __init__(self, url: str | None = None):
        self.url = url

    def snapshot(self) -> Snapshot | None:
        try:
            raw = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            log_warn(f"Clipboard unavailable: {e}")
            return None
        if not raw or not raw.strip():
            return None
        html, source_url = split_clipboard_html(raw)
        return make_snapshot(html, self.url or source_url)
