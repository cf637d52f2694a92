# src/currency.py
"""
Constant-dollar conversion from a monthly price index.

The index is collapsed to one value per calendar year (mean of the months
observed in that year). Conversions only ever use years present in the fetched
window; there is no interpolation or extrapolation.
"""
from __future__ import annotations

from typing import Dict
import pandas as pd


def build_price_index(cpi: pd.DataFrame) -> Dict[int, float]:
    """
    Annual price index from a monthly series.

    Parameters
    ----------
    cpi : pd.DataFrame
        Columns 'date' (datetime-like) and 'value'.

    Returns
    -------
    dict[int, float]
        year -> arithmetic mean of the monthly index values in that year.
    """
    if cpi.empty:
        raise ValueError("[currency] Empty price-index series.")
    years = pd.to_datetime(cpi["date"]).dt.year
    annual = cpi["value"].astype(float).groupby(years).mean()
    return {int(y): float(v) for y, v in annual.items()}


def convert(amount, from_year: int, to_year: int, index: Dict[int, float]):
    """
    Express `amount` nominal dollars of `from_year` in dollars of `to_year`:

        amount * index[to_year] / index[from_year]

    Works on scalars, numpy arrays and pandas Series.
    Raises KeyError (a LookupError) when either year is outside the index.
    """
    for y in (from_year, to_year):
        if int(y) not in index:
            lo, hi = (min(index), max(index)) if index else (None, None)
            raise KeyError(f"[currency] Year {y} outside price-index range {lo}..{hi}")
    if int(from_year) == int(to_year):
        return amount
    return amount * index[int(to_year)] / index[int(from_year)]
