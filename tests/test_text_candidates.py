"""Tests for OCR place-name candidate extraction."""

import re

import text_candidates
from text_candidates import extract_candidates, extract_simple_candidates


def test_street_address_is_extracted_verbatim():
    """A 'number + name + street type' substring is returned as-is."""
    candidates = extract_candidates("Visit us at 221 Baker Street for tea")
    assert "221 Baker Street" in candidates


def test_street_address_is_case_insensitive():
    candidates = extract_candidates("deliveries to 12 main st only")
    assert "12 main st" in candidates


def test_city_state_zip():
    candidates = extract_candidates("Springfield, IL 62701")
    assert "Springfield, IL 62701" in candidates


def test_city_state_requires_uppercase_code():
    assert extract_candidates("Springfield, il") == []


def test_landmark_business_and_geographic_names():
    text = "Meet at Blue Bottle Coffee near Emerald Bay by the Harvard University gate"
    candidates = extract_candidates(text)
    assert "Bottle Coffee" in candidates
    assert "Emerald Bay" in candidates
    assert "Harvard University" in candidates


def test_duplicate_matches_from_different_patterns_appear_once():
    """'Central Park' is both a landmark-style and a generic proper name."""
    candidates = extract_candidates("Central Park")
    assert candidates == ["Central Park"]


def test_candidates_sorted_longest_first():
    candidates = extract_candidates("Welcome to Central Park New York")
    assert candidates == ["Central Park New York", "Central Park"]


def test_length_ordering_with_stable_ties(monkeypatch):
    """Discovery order 5, 12, 8 comes back as 12, 8, 5; equal lengths keep first-seen order."""
    monkeypatch.setattr(text_candidates, "CANDIDATE_PATTERNS", [
        re.compile(r"a{5}"),
        re.compile(r"b{12}"),
        re.compile(r"c{8}"),
        re.compile(r"d{8}"),
    ])
    text = "dddddddd aaaaa bbbbbbbbbbbb cccccccc"
    assert extract_candidates(text) == ["b" * 12, "c" * 8, "d" * 8, "a" * 5]


def test_generic_names_cap_at_four_words():
    candidates = extract_candidates("Grand Old Royal Opera House")
    assert "Grand Old Royal Opera" in candidates
    assert "Grand Old Royal Opera House" not in candidates


def test_empty_text_yields_nothing():
    assert extract_candidates("") == []
    assert extract_candidates(None) == []


def test_simple_candidates_two_capitalized_words():
    pairs, towns = extract_simple_candidates("Welcome to Central Park New York")
    assert pairs == ["Central Park", "New York"]
    assert towns == []


def test_simple_candidates_city_town_village():
    pairs, towns = extract_simple_candidates("Visit Dodge City")
    assert pairs == ["Visit Dodge"]
    assert towns == ["Dodge City"]


def test_simple_candidates_empty_text():
    assert extract_simple_candidates("") == [[], []]
