# src/analysis.py
"""
Statistical summaries of the joined VEL / expenditure table.

- fit_regression: OLS of mean_log_vel on log_total_spending. The slope is the
  elasticity of VEL with respect to health spending.
- covariance_decomposition: share of the variance of total spending contributed
  by each (sector, sector) covariance term.
"""
from __future__ import annotations

import numpy as np
import pandas as pd
import statsmodels.api as sm

from joiner import SECTORS

Y_COL = "mean_log_vel"
X_COL = "log_total_spending"


def fit_regression(joined: pd.DataFrame, alpha: float = 0.05) -> pd.DataFrame:
    """
    Ordinary least squares of mean_log_vel on log_total_spending, complete rows only.

    Returns
    -------
    pd.DataFrame
        Index ['const', 'log_total_spending']; columns coef, std_err, t, p_value,
        ci_low, ci_high (two-sided 1-alpha t interval, n-2 df), n_obs, r_squared.
    """
    df = joined[[Y_COL, X_COL]].replace([np.inf, -np.inf], np.nan).dropna()
    if len(df) < 3:
        raise ValueError(f"[analysis] Need at least 3 complete rows for OLS, got {len(df)}.")

    X = sm.add_constant(df[X_COL].astype(float), has_constant="add")
    res = sm.OLS(df[Y_COL].astype(float), X).fit()
    ci = res.conf_int(alpha=alpha)

    table = pd.DataFrame({
        "coef": res.params,
        "std_err": res.bse,
        "t": res.tvalues,
        "p_value": res.pvalues,
        "ci_low": ci[0],
        "ci_high": ci[1],
    })
    table["n_obs"] = int(res.nobs)
    table["r_squared"] = float(res.rsquared)
    slope = table.loc[X_COL]
    print(f"[analysis] elasticity = {slope['coef']:.3f} "
          f"({100 * (1 - alpha):.0f}% CI {slope['ci_low']:.3f} to {slope['ci_high']:.3f}), n = {int(res.nobs)}")
    return table


def covariance_decomposition(expenditure: pd.DataFrame, cols=SECTORS) -> pd.DataFrame:
    """
    3x3 covariance of the sector columns over complete cases, divided by the sum
    of all nine entries (the variance of total spending). Entries sum to 1.

    This is not a correlation matrix: a single scalar normalizes every cell.
    """
    df = expenditure[list(cols)].dropna()
    if len(df) < 2:
        raise ValueError(f"[analysis] Need at least 2 complete expenditure rows, got {len(df)}.")
    cov = df.astype(float).cov()
    total = cov.to_numpy().sum()
    # zero up to rounding, measured against the sector variances
    scale = np.trace(cov.to_numpy())
    if not np.isfinite(total) or total <= 1e-12 * scale:
        raise ValueError("[analysis] Total spending has zero variance; decomposition undefined.")
    return cov / total
