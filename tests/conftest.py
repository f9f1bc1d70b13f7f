import pytest

from token_watch.dom import DocumentTree
from token_watch.log import set_debug
from token_watch.registry import Platform, PlatformConfig, Selectors, load_registry


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path):
    """Keep a developer's own config.yaml out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    yield
    set_debug(False)


@pytest.fixture(scope="session")
def registry():
    return load_registry()


@pytest.fixture
def chatgpt(registry):
    return registry.get(Platform.CHATGPT)


@pytest.fixture
def claude(registry):
    return registry.get(Platform.CLAUDE)


@pytest.fixture
def gemini(registry):
    return registry.get(Platform.GEMINI)


@pytest.fixture
def grok(registry):
    return registry.get(Platform.GROK)


def make_config(platform=Platform.CHATGPT, primary="[data-turn]", fallback=(), content="", **kwargs):
    kwargs.setdefault("name", platform.value.title())
    kwargs.setdefault("domains", ())
    kwargs.setdefault("user_role", "user")
    kwargs.setdefault("assistant_role", "assistant")
    return PlatformConfig(
        platform=platform,
        selectors=Selectors(primary=primary, fallback=tuple(fallback), content=content),
        **kwargs,
    )


def tree_of(html: str) -> DocumentTree:
    return DocumentTree.from_html(html)


CHATGPT_PAGE = """
<html><head><title>Reversing lists</title></head><body><main>
  <div data-message-author-role="user">
    <div class="whitespace-pre-wrap">How do I reverse a list in Python?</div>
  </div>
  <div data-message-author-role="assistant">
    <div class="markdown prose"><p>Use slicing with a negative step.</p><pre><code>items[::-1]</code></pre></div>
    <button>Copy</button>
  </div>
</main></body></html>
"""
