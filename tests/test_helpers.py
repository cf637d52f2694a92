"""
Tests for helpers.py

Tests cover:
- Liberal column detection
- Ratio text coercion (sentinels, separators, errors)
- Word-boundary pattern construction
- Filename suffixes
"""

import re
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from errors import ParseError
from helpers import (
    RATIO_SENTINELS,
    _find_col,
    is_missing_ratio,
    parse_ratio,
    word_boundary_pattern,
)


class TestFindCol:
    """Test liberal header detection"""

    def test_finds_by_substrings(self):
        df = pd.DataFrame(columns=["Publication Year", "US$/QALY (2018 US$)"])
        assert _find_col(df, ["us$/qaly"]) == "US$/QALY (2018 US$)"

    def test_requires_all_substrings(self):
        df = pd.DataFrame(columns=["Target Population", "Year"])
        assert _find_col(df, ["target", "year"]) is None

    def test_none_when_absent(self):
        df = pd.DataFrame(columns=["a", "b"])
        assert _find_col(df, ["qaly"]) is None


class TestParseRatio:
    """Test cost-ratio coercion"""

    @pytest.mark.parametrize("text", ["Cost-Saving", "Dominated", "", "\u00a0"])
    def test_sentinels_are_absent(self, text):
        assert text in RATIO_SENTINELS
        assert is_missing_ratio(text)
        assert parse_ratio(text) is None

    def test_nan_and_none_are_absent(self):
        assert parse_ratio(np.nan) is None
        assert parse_ratio(None) is None

    def test_whitespace_only_is_absent(self):
        assert parse_ratio("   ") is None

    def test_plain_number(self):
        assert parse_ratio("50") == 50.0
        assert parse_ratio(" 12.5 ") == 12.5

    def test_thousands_separator(self):
        assert parse_ratio("1,250") == 1250.0

    def test_unparseable_raises(self):
        with pytest.raises(ParseError):
            parse_ratio("n/a")

    @pytest.mark.parametrize("text", ["0", "-10", "inf"])
    def test_non_positive_or_infinite_raises(self, text):
        with pytest.raises(ParseError):
            parse_ratio(text)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_ratio("abc")


class TestWordBoundaryPattern:
    """Test whole-word alias patterns"""

    def test_whole_word(self):
        pat = word_boundary_pattern("Niger")
        assert re.search(pat, "Niger children")
        assert not re.search(pat, "Nigeria children")

    def test_escapes_regex_characters(self):
        pat = word_boundary_pattern("Guinea-Bissau")
        assert re.search(pat, "adults in Guinea-Bissau")
        assert not re.search(word_boundary_pattern("C.A"), "CxA")

    def test_hyphen_is_boundary(self):
        assert re.search(word_boundary_pattern("Indo"), "Indo-Pacific region")

