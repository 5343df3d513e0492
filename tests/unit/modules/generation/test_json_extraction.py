"""Recovering JSON from model output."""

import pytest

from src.modules.generation.json_extraction import extract_json, find_json_text


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1}', {"a": 1}),
        ('  [1, 2, 3]  ', [1, 2, 3]),
        ('```json\n{"a": {"b": [1]}}\n```', {"a": {"b": [1]}}),
        ('```\n{"a": 1}\n```', {"a": 1}),
        ('Here is the test:\n{"passage": "x"}\nGood luck!', {"passage": "x"}),
        ('Result: [{"q": 1}] as requested', [{"q": 1}]),
    ],
)
def test_extracts_embedded_documents(text, expected):
    extraction = extract_json(text)

    assert extraction.ok
    assert extraction.value == expected


def test_trailing_prose_with_braces_is_ignored():
    text = '{"instruction": "Answer"} Note: keep {braces} out of answers.'

    assert extract_json(text).value == {"instruction": "Answer"}


def test_object_before_array_is_preferred():
    assert find_json_text('Prefix {"items": [1, 2]} suffix') == '{"items": [1, 2]}'


@pytest.mark.parametrize("text", [None, "", "   ", "no json here", '{"unterminated": '])
def test_failures_are_reported_not_raised(text):
    extraction = extract_json(text)

    assert not extraction.ok
    assert extraction.value is None
    assert extraction.error
