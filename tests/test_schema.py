import pytest

from voxly.llm.schema import (
    normalize_action_items,
    normalize_chat_messages,
    normalize_string_list,
    normalize_summary,
    parse_loose,
)

EMPTY_SUMMARY = {"decisions": [], "keyPoints": [], "nextSteps": [], "actionItems": []}


@pytest.mark.parametrize("raw", [None, "text", 12, ["a"], {}])
def test_normalize_summary_non_dict(raw):
    assert normalize_summary(raw) == EMPTY_SUMMARY


def test_normalize_summary_keeps_lists():
    raw = {
        "decisions": ["A"],
        "keyPoints": "B",
        "nextSteps": None,
        "actionItems": [{"text": "C"}],
        "extra": ["dropped"],
    }
    assert normalize_summary(raw) == {
        "decisions": ["A"],
        "keyPoints": [],
        "nextSteps": [],
        "actionItems": [{"text": "C"}],
    }


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {"decisions": "x"},
        {"decisions": ["a"], "keyPoints": ["b"], "nextSteps": [], "actionItems": [1]},
    ],
)
def test_normalize_summary_idempotent(raw):
    once = normalize_summary(raw)
    assert normalize_summary(once) == once


def test_normalize_action_items():
    items = [
        {"text": " Send deck ", "priority": "high", "assignee": " Alice "},
        {"text": "Review budget", "priority": "urgent", "assignee": "  "},
        {"text": "", "priority": "LOW"},
        {"priority": "LOW"},
        "Book the room",
        42,
    ]
    assert normalize_action_items(items) == [
        {"text": "Send deck", "priority": "HIGH", "assignee": "Alice"},
        {"text": "Review budget", "priority": "MEDIUM"},
        {"text": "Book the room", "priority": "MEDIUM"},
    ]


def test_normalize_action_items_not_a_list():
    assert normalize_action_items({"text": "x"}) == []


def test_parse_loose_strict():
    assert parse_loose('{"decisions": ["a"]}') == {"decisions": ["a"]}


def test_parse_loose_code_fence():
    raw = 'Here you go:\n```json\n{"keyPoints": ["b"]}\n```'
    assert parse_loose(raw) == {"keyPoints": ["b"]}


def test_parse_loose_embedded_object():
    raw = 'Sure! {"nextSteps": ["c"]} Hope this helps.'
    assert parse_loose(raw) == {"nextSteps": ["c"]}


@pytest.mark.parametrize("raw", ["", "no json here", "{broken", None, "} {"])
def test_parse_loose_gives_up(raw):
    assert parse_loose(raw) == {}


def test_normalize_chat_messages():
    messages = [
        {"role": "system", "content": " hi "},
        {"role": "assistant", "content": ""},
        "x",
    ]
    assert normalize_chat_messages(messages) == [{"role": "user", "content": "hi"}]


def test_normalize_chat_messages_non_string_content():
    messages = [
        {"role": "assistant", "content": ["list"]},
        {"role": "assistant", "content": "ok"},
    ]
    assert normalize_chat_messages(messages) == [
        {"role": "assistant", "content": "ok"}
    ]
    assert normalize_chat_messages(None) == []


def test_normalize_chat_messages_roles_and_trimming():
    messages = [
        {"role": "x", "content": "hi"},
        {"content": ""},
        {"role": "assistant", "content": " ok "},
    ]
    assert normalize_chat_messages(messages) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "ok"},
    ]


def test_normalize_string_list():
    items = ["  Ship Friday ", {"text": "Freeze scope"}, {"title": "x"}, "", 3, None]
    assert normalize_string_list(items) == ["Ship Friday", "Freeze scope"]


@pytest.mark.parametrize("items", [None, "Ship", {"text": "Ship"}])
def test_normalize_string_list_not_a_list(items):
    assert normalize_string_list(items) == []
