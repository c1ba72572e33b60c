from __future__ import annotations

import pytest

from src.weather import SKY_COVER, WEATHER, Phenomenon, match_abbreviation


def test_tables_have_expected_entries() -> None:
    assert len(SKY_COVER) == 9
    assert SKY_COVER["VV"] == "vertical visibility"
    assert WEATHER["-"] == "light intensity"
    assert WEATHER["FC"] == "funnel cloud"
    assert all(1 <= len(code) <= 3 for code in (*SKY_COVER, *WEATHER))


def test_tables_are_read_only() -> None:
    with pytest.raises(TypeError):
        WEATHER["XX"] = "nope"  # type: ignore[index]


def test_longest_prefix_wins() -> None:
    table = {"ABC": "three", "AB": "two", "A": "one"}
    assert match_abbreviation("ABCD", table) == Phenomenon("ABC", "three")
    assert match_abbreviation("ABX", table) == Phenomenon("AB", "two")
    assert match_abbreviation("AXX", table) == Phenomenon("A", "one")


def test_short_code_does_not_shadow_longer_code() -> None:
    assert match_abbreviation("+SHRA", WEATHER) == Phenomenon("+", "heavy intensity")
    assert match_abbreviation("BKN025", SKY_COVER) == Phenomenon("BKN", "broken")
    assert match_abbreviation("VV001", SKY_COVER) == Phenomenon("VV", "vertical visibility")


def test_no_match_and_empty_input() -> None:
    assert match_abbreviation("Q1012", WEATHER) is None
    assert match_abbreviation("", WEATHER) is None
    assert match_abbreviation(None, WEATHER) is None


def test_lookup_is_idempotent() -> None:
    first = match_abbreviation("TSRA", WEATHER)
    second = match_abbreviation("TSRA", WEATHER)
    assert first == second == Phenomenon("TS", "thunderstorm")
    assert WEATHER["TS"] == "thunderstorm"
