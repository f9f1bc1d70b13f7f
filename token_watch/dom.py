"""
Read-only query surface over a parsed page.

Everything the engine knows about the page goes through DocumentTree and the
node helpers below. Selectors are opaque CSS strings handed to soupsieve; a
selector the platform profile got wrong is logged and treated as matching
nothing.
"""

from bs4 import BeautifulSoup, Tag
import soupsieve as sv

from .log import log_warn


class DocumentTree:
    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    @classmethod
    def from_html(cls, html: str) -> "DocumentTree":
        return cls(BeautifulSoup(html or "", "html.parser"))

    def query(self, selector: str, scope: Tag | None = None) -> list[Tag]:
        """All matches of `selector` under `scope` (default: whole page), in document order."""
        return select(self.soup if scope is None else scope, selector)

    def query_one(self, selector: str, scope: Tag | None = None) -> Tag | None:
        if not selector:
            return None
        root = self.soup if scope is None else scope
        try:
            return root.select_one(selector)
        except sv.SelectorSyntaxError as e:
            log_warn(f"Bad selector {selector!r}: {e}")
            return None

    def exists(self, selector: str) -> bool:
        return self.query_one(selector) is not None

    def title(self) -> str:
        tag = self.soup.find("title")
        return tag.get_text().strip() if tag else ""

    # Node views, exposed on the tree for callers holding only the capability

    def text(self, node: Tag) -> str:
        return node_text(node)

    def attributes(self, node: Tag) -> dict[str, str]:
        return node_attributes(node)


def select(root: Tag, selector: str) -> list[Tag]:
    """Descendants of root matching selector, document order, each node once."""
    if not selector:
        return []
    try:
        found = root.select(selector)
    except sv.SelectorSyntaxError as e:
        log_warn(f"Bad selector {selector!r}: {e}")
        return []
    seen, nodes = set(), []
    for node in found:
        if id(node) not in seen:
            seen.add(id(node))
            nodes.append(node)
    return nodes


def node_text(node: Tag | None) -> str:
    """Visible text of a node; script/style/comments are not included."""
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def node_attributes(node: Tag) -> dict[str, str]:
    attrs = {}
    for name, value in node.attrs.items():
        attrs[name] = " ".join(value) if isinstance(value, list) else str(value)
    return attrs


def attr(node: Tag | None, name: str) -> str:
    if node is None:
        return ""
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def class_list(node: Tag | None) -> list[str]:
    if node is None:
        return []
    value = node.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def class_string(node: Tag | None) -> str:
    return " ".join(class_list(node))


def parents(node: Tag, limit: int | None = None) -> list[Tag]:
    """Element ancestors, nearest first, stopping below the document root."""
    chain = []
    current = node.parent
    while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
        chain.append(current)
        if limit is not None and len(chain) >= limit:
            break
        current = current.parent
    return chain


def closest(node: Tag, selector: str) -> Tag | None:
    """Nearest of node or its ancestors matching selector, like Element.closest()."""
    try:
        return sv.closest(selector, node)
    except sv.SelectorSyntaxError as e:
        log_warn(f"Bad selector {selector!r}: {e}")
        return None


def index_of(node: Tag, nodes: list[Tag]) -> int:
    """Position of this exact node in `nodes`, or -1.

    bs4 tags compare equal by structure, so two identical messages would
    collide under list.index().
    """
    for i, candidate in enumerate(nodes):
        if candidate is node:
            return i
    return -1
