# src/joiner.py
import numpy as np
import pandas as pd

from currency import convert
from errors import ConfigurationError
from helpers import _missing_cols

SECTORS = ["public", "private", "non_profit"]
KEY = ["year", "country_code"]


def join_indicators(aggregated: pd.DataFrame, expenditure: pd.DataFrame, index: dict,
                    current_year: int, base_year: int = 2010) -> pd.DataFrame:
    """
    Left-join lag-adjusted VEL rows to expenditure indicators on (year, country_code).

    total_spending is the sum of the three sectors, present only when all three
    are. log_total_spending deflates it from `current_year` dollars to
    `base_year` dollars:

        ln(total * index[base_year] / index[current_year])

    Note the reference point is the run's current year, not the indicator's
    reporting year, so results depend on when the pipeline is run.
    """
    missing = _missing_cols(expenditure, KEY + SECTORS)
    if missing:
        raise ConfigurationError(f"[join] expenditure table missing columns: {missing}")
    exp = expenditure[KEY + SECTORS].copy()
    if exp.duplicated(KEY).any():
        raise ConfigurationError("[join] expenditure table has duplicate (year, country_code) rows.")

    out = aggregated.merge(exp, on=KEY, how="left", validate="many_to_one")
    complete = out[SECTORS].notna().all(axis=1)
    out["total_spending"] = out[SECTORS].sum(axis=1).where(complete)
    out["log_total_spending"] = np.log(convert(out["total_spending"], current_year, base_year, index))

    print(f"[join] {int(complete.sum())} of {len(out)} VEL row(s) have complete expenditure data.")
    return out
