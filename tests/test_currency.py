"""
Tests for currency.py

Tests cover:
- Annual averaging of a monthly price index
- Constant-dollar conversion, identity, and range errors
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from currency import build_price_index, convert


def _monthly(year_values):
    rows = []
    for year, values in year_values.items():
        for m, v in enumerate(values, start=1):
            rows.append({"date": pd.Timestamp(year=year, month=m, day=1), "value": v})
    return pd.DataFrame(rows)


INDEX = {2010: 100.0, 2018: 130.0, 2020: 140.0}


class TestBuildPriceIndex:

    def test_mean_within_year(self):
        cpi = _monthly({2010: [99.0, 100.0, 101.0], 2011: [110.0, 112.0]})
        idx = build_price_index(cpi)
        assert idx == pytest.approx({2010: 100.0, 2011: 111.0})

    def test_partial_year_uses_available_months(self):
        cpi = _monthly({2020: [140.0]})
        assert build_price_index(cpi) == {2020: 140.0}

    def test_keys_are_int(self):
        idx = build_price_index(_monthly({2015: [1.0] * 12}))
        assert all(isinstance(k, int) for k in idx)

    def test_empty_series(self):
        with pytest.raises(ValueError):
            build_price_index(pd.DataFrame({"date": [], "value": []}))


class TestConvert:

    @pytest.mark.parametrize("year", [2010, 2018, 2020])
    def test_identity(self, year):
        assert convert(123.45, year, year, INDEX) == 123.45

    def test_2018_to_2010(self):
        assert convert(50.0, 2018, 2010, INDEX) == pytest.approx(50.0 * 100 / 130)

    def test_round_trip(self):
        x = convert(convert(10.0, 2010, 2020, INDEX), 2020, 2010, INDEX)
        assert x == pytest.approx(10.0)

    def test_vectorised(self):
        s = pd.Series([1.0, 2.0, np.nan])
        out = convert(s, 2020, 2010, INDEX)
        assert out.iloc[:2].tolist() == pytest.approx([100 / 140, 200 / 140])
        assert np.isnan(out.iloc[2])

    def test_missing_from_year(self):
        with pytest.raises(LookupError):
            convert(1.0, 2005, 2010, INDEX)

    def test_missing_to_year(self):
        with pytest.raises(KeyError, match="2030"):
            convert(1.0, 2010, 2030, INDEX)

    def test_no_extrapolation_for_identity_outside_range(self):
        with pytest.raises(LookupError):
            convert(1.0, 1999, 1999, INDEX)
