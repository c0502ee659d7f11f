import pytest

from eliza.domain.generation.parsing import (
    clean_json_response,
    parse_boolean_from_text,
    parse_json_array_from_text,
    parse_json_object_from_text,
    parse_should_respond,
)


def test_clean_json_response_strips_fences():
    assert clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json_response('```\n[1]\n```') == "[1]"
    assert clean_json_response("  plain  ") == "plain"


@pytest.mark.parametrize("text,expected", [
    ('["a", "b"]', ["a", "b"]),
    ('Here you go:\n```json\n["x"]\n```\nThanks', ["x"]),
    ("Selected: ['FACTS', 'GOALS'] done", ["FACTS", "GOALS"]),
    ("[]", []),
])
def test_parse_json_array(text, expected):
    assert parse_json_array_from_text(text) == expected


@pytest.mark.parametrize("text", ["", "no brackets", "[not, json", '{"a": 1}'])
def test_parse_json_array_rejects(text):
    assert parse_json_array_from_text(text) is None


def test_parse_json_object():
    text = 'Answer:\n```json\n{ "user": "Ada", "text": "hi", "action": "NONE" }\n```'
    assert parse_json_object_from_text(text) == {"user": "Ada", "text": "hi", "action": "NONE"}
    assert parse_json_object_from_text('prefix {"a": {"b": 2}} suffix') == {"a": {"b": 2}}
    assert parse_json_object_from_text("[1, 2]") is None
    assert parse_json_object_from_text("") is None


@pytest.mark.parametrize("text,expected", [
    ("YES", True),
    ("yes.", True),
    ("True", True),
    ("no", False),
    ("FALSE!", False),
    ("perhaps", None),
    ("", None),
])
def test_parse_boolean(text, expected):
    assert parse_boolean_from_text(text) is expected


@pytest.mark.parametrize("text,expected", [
    ("[RESPOND]", "RESPOND"),
    ("ignore", "IGNORE"),
    ("I think we should STOP here", "STOP"),
    ("[IGNORE]\nbecause the user is rude", "IGNORE"),
    ("nothing relevant", None),
    ("", None),
])
def test_parse_should_respond(text, expected):
    assert parse_should_respond(text) == expected
