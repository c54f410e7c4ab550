import json

import pytest

from contentgen.exceptions import JSONRepairError
from contentgen.lenient_json import repair_json


def test_bare_keys_single_quotes_and_trailing_comma():
    assert json.loads(repair_json("{title: 'A', content: 'x',}")) == {
        "title": "A",
        "content": "x",
    }


def test_curly_quotes_become_straight_quotes():
    text = "{“title”: “Winter care”, “tags”: [“snow”, “boots”]}"
    assert json.loads(repair_json(text)) == {
        "title": "Winter care",
        "tags": ["snow", "boots"],
    }


def test_colons_and_commas_inside_strings_are_left_alone():
    text = "{'url': 'https://example.com/a,b', note: 'opens at 10:30, closes at 18:00',}"
    assert json.loads(repair_json(text)) == {
        "url": "https://example.com/a,b",
        "note": "opens at 10:30, closes at 18:00",
    }


def test_unquoted_url_value_is_kept_whole():
    assert json.loads(repair_json("{link: https://example.com/shop}")) == {
        "link": "https://example.com/shop"
    }


def test_apostrophe_inside_single_quoted_string():
    text = "{'title': 'Don't panic', 'content': 'x'}"
    assert json.loads(repair_json(text))["title"] == "Don't panic"


def test_unescaped_quotes_in_html_attributes():
    text = '{"content": "<a href="/shop">Shop</a>", "title": "T"}'
    assert json.loads(repair_json(text)) == {
        "content": '<a href="/shop">Shop</a>',
        "title": "T",
    }


def test_control_characters_in_strings_collapse_to_one_space():
    text = '{"content": "line one\n\n\tline two"}'
    assert json.loads(repair_json(text)) == {"content": "line one line two"}


def test_python_literals_and_comments():
    text = "{a: True, b: None, // trailing note\n c: 1.50,}"
    assert json.loads(repair_json(text)) == {"a": True, "b": None, "c": 1.5}


def test_truncated_output_is_closed():
    text = '{"title": "A", "tags": ["x", "y'
    assert json.loads(repair_json(text)) == {"title": "A", "tags": ["x", "y"]}


def test_dangling_key_becomes_null():
    assert json.loads(repair_json('{"title": "A", "content":')) == {
        "title": "A",
        "content": None,
    }


def test_missing_comma_between_objects():
    text = '[{"title": "A"} {"title": "B"}]'
    assert json.loads(repair_json(text)) == [{"title": "A"}, {"title": "B"}]


def test_text_after_top_level_value_is_dropped():
    assert json.loads(repair_json('{"a": 1} Hope this helps!')) == {"a": 1}


@pytest.mark.parametrize(
    "text",
    [
        "{title: 'A', content: 'x',}",
        "{'a': [1, 2, 3,], 'b': {'c': 'd',},}",
        "{“title”: “A”}",
        '{"content": "<a href="/x">y</a>"}',
        '{"text": "tab\there", "n": +.5}',
        '{"a": "b\\q", "u": "\\u00e9"}',
        '{"title": "cut off',
    ],
)
def test_repair_is_idempotent(text):
    once = repair_json(text)
    assert repair_json(once) == once


@pytest.mark.parametrize("text", ["", "   ", "}"])
def test_nothing_to_repair_raises(text):
    with pytest.raises(JSONRepairError):
        repair_json(text)

