# src/resolver.py
"""
Country resolution for free-text population labels.

Pipeline (every step returns a new table):
  1. deduplicate_ratios  : collapse exact (year, label, ratio) duplicates, assign ratio_id.
  2. match_candidates    : join every ratio against every alias found as a whole word
                           in its label (one row per hit; unmatched ids get one null row).
  3. resolve_countries   : keep ratio_ids whose hits name exactly one distinct country code.

Ambiguous (≥2 codes) and unmatched (0 codes) labels are routine attrition, not
errors. They are counted and printed, and match_summary() exposes them per ratio_id.
"""
from __future__ import annotations

import pandas as pd
from tqdm import tqdm

from helpers import word_boundary_pattern, _missing_cols

RATIO_KEY = ["year", "population_label", "ratio_text"]


def deduplicate_ratios(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Drop exact duplicates of (year, population_label, ratio_text) and assign a
    run-local ratio_id (0..n-1). Applying it twice gives the same table.
    """
    missing = _missing_cols(raw, RATIO_KEY)
    if missing:
        raise KeyError(f"[resolver] cost-ratio table missing columns: {missing}")
    out = raw[RATIO_KEY].drop_duplicates().reset_index(drop=True)
    out.insert(0, "ratio_id", range(len(out)))
    n_dup = len(raw) - len(out)
    if n_dup:
        print(f"[resolver] Collapsed {n_dup} duplicate cost-ratio row(s); {len(out)} remain.")
    return out


def match_candidates(ratios: pd.DataFrame, aliases: pd.DataFrame, *,
                     case_sensitive: bool = True, show_progress: bool = False) -> pd.DataFrame:
    """
    All (ratio_id, country_code) hits where an alias occurs as a whole word in
    the population label (regex \\b<alias>\\b). A ratio_id with no hit yields
    one row with a null country_code.
    """
    labels = ratios["population_label"].fillna("").astype(str)
    ids = ratios["ratio_id"].to_numpy()

    hits = []
    pairs = aliases[["alias_text", "country_code"]].itertuples(index=False, name=None)
    for alias, code in tqdm(pairs, total=len(aliases), desc="Matching aliases",
                            unit="alias", disable=not show_progress):
        mask = labels.str.contains(word_boundary_pattern(alias), case=case_sensitive, regex=True).to_numpy()
        if mask.any():
            hits.append(pd.DataFrame({"ratio_id": ids[mask], "country_code": code}))

    matched = (pd.concat(hits, ignore_index=True) if hits
               else pd.DataFrame({"ratio_id": pd.Series(dtype="int64"),
                                  "country_code": pd.Series(dtype="object")}))
    unmatched_ids = sorted(set(ids) - set(matched["ratio_id"]))
    unmatched = pd.DataFrame({"ratio_id": unmatched_ids, "country_code": None})

    out = pd.concat([matched, unmatched], ignore_index=True)
    out["ratio_id"] = out["ratio_id"].astype("int64")
    return out.sort_values(["ratio_id", "country_code"], na_position="last").reset_index(drop=True)


def match_summary(candidates: pd.DataFrame) -> pd.DataFrame:
    """
    One row per ratio_id: n_codes (distinct), codes ('|'-joined) and status in
    {'resolved', 'ambiguous', 'unmatched'}.
    """
    g = candidates.groupby("ratio_id")["country_code"]
    summ = pd.DataFrame({
        "n_codes": g.nunique(),
        "codes": g.agg(lambda s: "|".join(sorted(s.dropna().unique()))),
    }).reset_index()
    summ["status"] = "resolved"
    summ.loc[summ["n_codes"] == 0, "status"] = "unmatched"
    summ.loc[summ["n_codes"] >= 2, "status"] = "ambiguous"
    return summ


def resolve_countries(ratios: pd.DataFrame, aliases: pd.DataFrame, *,
                      case_sensitive: bool = True, show_progress: bool = False,
                      candidates: pd.DataFrame | None = None) -> pd.DataFrame:
    """
    ResolvedRatio rows: the deduplicated ratios whose label names exactly one
    distinct country code, with that code attached.

    Two aliases resolving to the same code are not ambiguity; ambiguity is
    counted on distinct codes. Pass precomputed `candidates` to skip rematching.
    """
    if candidates is None:
        candidates = match_candidates(ratios, aliases, case_sensitive=case_sensitive,
                                      show_progress=show_progress)
    summ = match_summary(candidates)
    keep = summ.loc[summ["status"] == "resolved", ["ratio_id", "codes"]]
    keep = keep.rename(columns={"codes": "country_code"})

    counts = summ["status"].value_counts()
    print(f"[resolver] {counts.get('resolved', 0)} resolved, "
          f"{counts.get('ambiguous', 0)} ambiguous, "
          f"{counts.get('unmatched', 0)} unmatched of {len(summ)} cost ratio(s).")

    out = ratios.merge(keep, on="ratio_id", how="inner", validate="one_to_one")
    return out.reset_index(drop=True)
