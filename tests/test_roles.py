import pytest

from token_watch.registry import Platform
from token_watch.roles import BATTERIES, UNKNOWN_ROLE, RoleContext, classify, role_for

from conftest import tree_of


def role_of(html, config, selector="#turn"):
    node = tree_of(html).query_one(selector)
    return classify(node, [node], config)


def roles_in_order(html, config, selector=".t"):
    nodes = tree_of(html).query(selector)
    ctx = RoleContext(config, nodes)
    return [role_for(n, ctx) for n in nodes]


def test_every_platform_has_a_battery():
    assert set(BATTERIES) == set(Platform) - {Platform.UNKNOWN}


class TestChatGPT:
    def test_author_attribute_value_is_the_role(self, chatgpt):
        html = '<div id="turn" data-message-author-role="assistant">An answer to the question.</div>'
        assert role_of(html, chatgpt) == "assistant"

    def test_unlisted_value_is_passed_through(self, chatgpt):
        html = '<div id="turn" data-message-author-role="tool">Result of a tool call here.</div>'
        assert role_of(html, chatgpt) == "tool"


class TestClaude:
    @pytest.mark.parametrize(
        "html, expected",
        [
            ('<div id="turn" data-is-streaming="false">A finished answer text</div>', "assistant"),
            ('<div id="turn" data-is-streaming="true">A reply still being written</div>', "assistant"),
            ('<div id="turn" data-testid="conversation-turn">請幫我寫一首關於秋天的詩</div>', "human"),
            ('<div id="turn" data-testid="conversation-turn">Sure, here is a poem.</div>', "assistant"),
            ('<div id="turn" data-testid="user-message">hello there my friend</div>', "human"),
            ('<div id="turn" data-testid="assistant-reply">hello there my friend</div>', "assistant"),
            ('<div id="turn" class="font-user-message">A message typed by a person</div>', "human"),
            ('<div id="turn" class="font-claude-message">A message written back</div>', "assistant"),
            ('<div id="turn" role="article" data-testid="msg-42">Some boxed reply content</div>', "assistant"),
        ],
    )
    def test_markup_signals(self, claude, html, expected):
        assert role_of(html, claude) == expected

    def test_class_inherited_from_ancestor(self, claude):
        html = '<div class="font-claude-message"><div id="turn" class="inner">Reply body text</div></div>'
        assert role_of(html, claude) == "assistant"

    def test_own_class_beats_ancestor_class(self, claude):
        html = '<div class="font-user-message"><div id="turn" class="font-claude-message">Reply body text</div></div>'
        assert role_of(html, claude) == "assistant"

    def test_right_aligned_layout_is_human(self, claude):
        html = '<div class="flex justify-end"><div id="turn" class="bubble">Neutral words in a bubble</div></div>'
        assert role_of(html, claude) == "human"

    def test_ancestor_identifier(self, claude):
        html = (
            '<div data-testid="human-turn"><section>'
            '<div id="turn" class="x">Neutral words nested deeper</div>'
            "</section></div>"
        )
        assert role_of(html, claude) == "human"

    def test_question_text_is_human(self, claude):
        assert role_of('<div id="turn">Can you help me with this?</div>', claude) == "human"

    def test_assistant_phrasing(self, claude):
        assert role_of('<div id="turn">Let me explain how that works in detail.</div>', claude) == "assistant"

    def test_very_long_text_is_assistant(self, claude):
        body = "word " * 200
        assert role_of(f'<div id="turn">{body}</div>', claude) == "assistant"

    def test_alternation_when_nothing_else_applies(self, claude):
        html = (
            '<div class="t">The first neutral paragraph of text</div>'
            '<div class="t">The second neutral paragraph of text</div>'
            '<div class="t">The third neutral paragraph of text</div>'
            '<div class="t">The fourth neutral paragraph of text</div>'
        )
        assert roles_in_order(html, claude) == ["human", "assistant", "human", "assistant"]

    def test_alternation_skips_short_candidates(self, claude):
        html = (
            '<div class="t">The first neutral paragraph of text</div>'
            '<div class="t">tiny</div>'
            '<div class="t">The second neutral paragraph of text</div>'
            '<div class="t">The third neutral paragraph of text</div>'
        )
        roles = roles_in_order(html, claude)
        assert [roles[0], roles[2], roles[3]] == ["human", "assistant", "human"]

    def test_identical_turns_keep_their_own_positions(self, claude):
        same = '<div class="t">Exactly the same words in both turns</div>'
        assert roles_in_order(same * 2, claude) == ["human", "assistant"]


class TestGrok:
    def test_not_prose_is_assistant(self, grok):
        assert role_of('<div id="turn" class="not-prose">An answer from Grok itself</div>', grok) == "assistant"

    def test_timeline_post_by_person(self, grok):
        html = '<div id="turn" data-testid="cellInnerDiv">Just a regular post by a person</div>'
        assert role_of(html, grok) == "user"

    def test_timeline_post_mentioning_grok(self, grok):
        html = '<div id="turn" data-testid="cellInnerDiv">Replying to @grok about the weather</div>'
        assert role_of(html, grok) == "assistant"

    def test_timeline_post_with_grok_badge(self, grok):
        html = (
            '<div id="turn" data-testid="tweet"><span data-testid="grok-badge"></span>'
            "The forecast says rain tomorrow</div>"
        )
        assert role_of(html, grok) == "assistant"

    def test_identifier_on_a_distant_ancestor(self, grok):
        html = (
            '<div data-testid="grok-thread"><div><div><div><section>'
            '<div id="turn">Neutral words deep inside the thread</div>'
            "</section></div></div></div></div>"
        )
        assert role_of(html, grok) == "assistant"

    def test_user_ancestor_wins_over_grok_ancestor(self, grok):
        html = (
            '<div data-testid="grok-thread"><div><div><div data-testid="user-bubble"><div>'
            '<div id="turn">Neutral words deep inside the thread</div>'
            "</div></div></div></div></div>"
        )
        assert role_of(html, grok) == "user"

    def test_alternation(self, grok):
        html = (
            '<div class="t">What should I cook tonight for dinner</div>'
            '<div class="t">A simple pasta with garlic and olive oil</div>'
        )
        assert roles_in_order(html, grok) == ["user", "assistant"]


class TestGemini:
    def test_response_container(self, gemini):
        assert role_of('<div id="turn" class="response-container">The model answer</div>', gemini) == "model"

    def test_response_box_with_prompt_classes_is_model(self, gemini):
        html = '<div id="turn" class="response-container prompt-chips">The model answer text here</div>'
        assert role_of(html, gemini) == "model"

    def test_exact_class_tokens_come_first(self, gemini):
        html = '<div id="turn" class="user-message response-container">Words typed by a person</div>'
        assert role_of(html, gemini) == "user"
        html = '<div id="turn" class="model-message prompt-suggestions">Generated answer words</div>'
        assert role_of(html, gemini) == "model"

    def test_class_token_is_not_a_substring_match(self, gemini):
        html = '<div id="turn" class="user-message-footer">Generated answer words</div>'
        assert role_of(html, gemini) == "model"

    def test_query_input(self, gemini):
        assert role_of('<div id="turn" class="query-input">What is the capital?</div>', gemini) == "user"

    def test_identifier(self, gemini):
        html = '<div id="turn" data-testid="model-message">An answer here</div>'
        assert role_of(html, gemini) == "model"

    def test_short_unplaced_text_is_unknown(self, gemini):
        assert role_of('<div id="turn" class="other">hmm</div>', gemini) == UNKNOWN_ROLE

    def test_substantial_unplaced_text_defaults_to_assistant(self, gemini):
        html = '<div id="turn" class="other">Some longer text without any markers</div>'
        assert role_of(html, gemini) == "model"
