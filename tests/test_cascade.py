from token_watch.cascade import collect_candidates

from conftest import CHATGPT_PAGE, make_config, tree_of


def texts(nodes):
    return [n.get_text(strip=True) for n in nodes]


def test_primary_wins_over_fallbacks():
    config = make_config(primary=".turn", fallback=[".msg"])
    tree = tree_of('<div class="turn">a</div><div class="msg">b</div><div class="turn">c</div>')
    assert texts(collect_candidates(tree, config)) == ["a", "c"]


def test_first_non_empty_fallback_only():
    config = make_config(primary=".turn", fallback=[".none", ".msg", "p"])
    tree = tree_of(
        '<div class="msg">one</div><div class="msg">two</div>'
        "<p>x</p><p>y</p><p>z</p>"
    )
    assert texts(collect_candidates(tree, config)) == ["one", "two"]


def test_nothing_matches():
    config = make_config(primary=".turn", fallback=[".msg"])
    assert collect_candidates(tree_of("<p>hello</p>"), config) == []


def test_document_order_and_no_duplicates():
    # both selectors in the group hit the same node
    config = make_config(primary=".turn, [data-turn]")
    tree = tree_of('<div class="turn" data-turn="1">first</div><div data-turn="2">second</div>')
    nodes = collect_candidates(tree, config)
    assert texts(nodes) == ["first", "second"]
    assert len({id(n) for n in nodes}) == 2


def test_broken_selector_falls_through():
    config = make_config(primary="div[", fallback=[".msg"])
    assert texts(collect_candidates(tree_of('<div class="msg">ok</div>'), config)) == ["ok"]


def test_chatgpt_profile(chatgpt):
    nodes = collect_candidates(tree_of(CHATGPT_PAGE), chatgpt)
    assert [n["data-message-author-role"] for n in nodes] == ["user", "assistant"]
