# src/vel.py
import numpy as np
import pandas as pd

from currency import convert
from errors import ParseError
from helpers import parse_ratio, RATIO_SENTINELS

LIFESPAN = 70
RATIO_YEAR = 2018   # registry ratios are reported in 2018 US$
BASE_YEAR = 2010
LAG = 2             # expenditure indicators trail publication by two years


def compute_vel(resolved: pd.DataFrame, index: dict, *, lifespan: float = LIFESPAN,
                ratio_year: int = RATIO_YEAR, base_year: int = BASE_YEAR,
                sentinels=RATIO_SENTINELS) -> pd.DataFrame:
    """
    Turn resolved cost ratios into VEL records (ratio_id, year, country_code, vel).

    vel = ratio (ratio_year US$) converted to base_year US$ * lifespan.

    Sentinel ratios ('Cost-Saving', 'Dominated', blanks) have no VEL and are
    dropped silently. A ratio that fails to parse, or parses to a non-positive
    number, drops only that record; the count is printed.
    """
    factor = convert(1.0, ratio_year, base_year, index)

    values = []
    n_parse_err = 0
    for txt in resolved["ratio_text"]:
        try:
            values.append(parse_ratio(txt, sentinels))
        except ParseError:
            n_parse_err += 1
            values.append(None)
    if n_parse_err:
        print(f"[vel] Dropped {n_parse_err} unparseable or non-positive cost ratio(s).")

    out = resolved[["ratio_id", "year", "country_code"]].copy()
    out["vel"] = pd.to_numeric(pd.Series(values, index=resolved.index, dtype="object"), errors="coerce")
    out["vel"] = out["vel"] * factor * lifespan
    out = out.dropna(subset=["vel", "country_code"])
    return out.reset_index(drop=True)


def aggregate_vel(vel_records: pd.DataFrame, lag: int = LAG) -> pd.DataFrame:
    """
    One row per (year, country_code): mean of ln(vel) and the number of ratios
    behind it. The year is then shifted back by `lag`, once, after grouping.
    """
    df = vel_records.dropna(subset=["vel", "country_code"])
    if (df["vel"] <= 0).any():
        raise ValueError("[vel] Non-positive VEL reached aggregation.")
    agg = (
        df.assign(log_vel=np.log(df["vel"]))
          .groupby(["year", "country_code"], as_index=False)
          .agg(mean_log_vel=("log_vel", "mean"), n_ratios=("log_vel", "size"))
    )
    agg["year"] = agg["year"].astype(int) - int(lag)
    return agg
