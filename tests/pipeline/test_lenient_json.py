"""Tests for tolerant JSON parsing."""

import pytest

from menu_lens.exceptions import UnparseableResponseError
from menu_lens.pipeline.lenient_json import REPAIR_STAGES, extract_json_block, parse_lenient_json


def test_valid_json_parses_directly():
    """Valid JSON needs no repair."""
    assert parse_lenient_json('{"items": [{"name": "Soup"}]}') == {"items": [{"name": "Soup"}]}


def test_fenced_block_with_surrounding_prose():
    """A fenced block is preferred over the surrounding chatter."""
    text = 'Here is the menu:\n```json\n{"items": [{"name": "Tacos", "price": 9}]}\n```\nEnjoy!'

    assert parse_lenient_json(text) == {"items": [{"name": "Tacos", "price": 9}]}


def test_trailing_comma_is_repaired():
    assert parse_lenient_json('{"items": [{"name": "Soup",},]}') == {"items": [{"name": "Soup"}]}


def test_comments_bare_keys_and_single_quotes():
    text = """
    {
      // first page only
      items: [{name: 'Pho', price: '12.50'}], /* more later */
      hasMore: true,
    }
    """

    assert parse_lenient_json(text) == {"items": [{"name": "Pho", "price": "12.50"}], "hasMore": True}


def test_balanced_brace_scan_ignores_braces_in_strings():
    """Braces inside string literals do not close the block."""
    text = 'Sure! {"items": [{"name": "Curly {fries}"}]} hope that helps'

    assert extract_json_block(text) == '{"items": [{"name": "Curly {fries}"}]}'


def test_extract_json_block_without_object():
    assert extract_json_block("Burger $5") is None
    assert extract_json_block('{"open": ') is None
    assert extract_json_block("") is None


def test_unrepairable_text_raises():
    """Plain prose is not forced into JSON."""
    with pytest.raises(UnparseableResponseError):
        parse_lenient_json("Burger $5, fries $2")


def test_empty_text_raises():
    with pytest.raises(UnparseableResponseError):
        parse_lenient_json("   ")


def test_repair_ladder_preserves_valid_json():
    """Each repair stage leaves already valid JSON unchanged."""
    text = '{"items": [{"name": "Soup", "price": 4.5, "tags": ["vegan"]}], "hasMore": false}'
    expected = parse_lenient_json(text)

    candidate = text
    for _, repair in REPAIR_STAGES:
        candidate = repair(candidate)
        assert parse_lenient_json(candidate) == expected


def test_deeply_nested_text_raises_unparseable():
    """Runaway nesting is reported as unparseable rather than a recursion crash."""
    with pytest.raises(UnparseableResponseError):
        parse_lenient_json("[" * 3000)
