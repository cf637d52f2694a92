"""
General-purpose helpers shared across the pipeline.

This module centralizes reusable utilities that are agnostic to pipeline stage:
- Liberal CSV header detection.
- Cost-ratio text coercion (sentinels, thousands separators).
- Word-boundary regex construction for alias matching.

All functions are pure and side-effect free.

IMPORTANT: This module does not import project-specific modules other than
`errors` to avoid circular dependencies. Callers must supply any configuration
defaults they need.
"""
from __future__ import annotations

import re
import numpy as np
import pandas as pd

from errors import ParseError

# Cost-effectiveness registry entries that carry no numeric ratio.
RATIO_SENTINELS = ("Cost-Saving", "Dominated", "", "\u00a0")

# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------

def _find_col(df: pd.DataFrame, must_include: list[str]) -> str | None:
    """
    Return the first column name in `df` whose lowercase name contains *all*
    substrings in `must_include`. Used for robust header detection.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame with candidate columns.
    must_include : list[str]
        Substrings that must all appear in the lowercase column name.

    Returns
    -------
    str | None
        Original column name or None if not found.
    """
    low = {str(c).lower(): c for c in df.columns}
    for lc, orig in low.items():
        if all(s in lc for s in must_include):
            return orig
    return None


def _missing_cols(df: pd.DataFrame, need: list[str]) -> list[str]:
    return [c for c in need if c not in df.columns]


# ---------------------------------------------------------------------------
# Ratio text coercion
# ---------------------------------------------------------------------------

def is_missing_ratio(x, sentinels=RATIO_SENTINELS) -> bool:
    """
    True when a ratio cell carries no number: None/NaN or one of the sentinel
    strings. Whitespace-only strings count as blank.
    """
    if x is None:
        return True
    if isinstance(x, float) and np.isnan(x):
        return True
    s = str(x)
    return s in sentinels or s.strip() == ""


def parse_ratio(x, sentinels=RATIO_SENTINELS) -> float | None:
    """
    Parse a published cost-effectiveness ratio.

    Returns None for sentinels and blanks. Raises ParseError when the text is
    not a number or the number is not strictly positive.

    Examples
    --------
    parse_ratio("1,250")      -> 1250.0
    parse_ratio("Dominated")  -> None
    parse_ratio("n/a")        -> ParseError
    """
    if is_missing_ratio(x, sentinels):
        return None
    s = str(x).strip().replace(",", "")
    try:
        v = float(s)
    except ValueError:
        raise ParseError(f"[vel] Unparseable cost ratio: {x!r}") from None
    if not np.isfinite(v) or v <= 0:
        raise ParseError(f"[vel] Non-positive or non-finite cost ratio: {x!r}")
    return v


# ---------------------------------------------------------------------------
# Alias matching
# ---------------------------------------------------------------------------

def word_boundary_pattern(alias: str) -> str:
    r"""
    Regex matching `alias` as a whole word: \b<escaped alias>\b.
    The alias is stored unescaped; escaping happens here, at match time.
    """
    return r"\b" + re.escape(alias) + r"\b"

