# ------------------------------------------------------------------------------
# Value-of-an-empirical-life (VEL) pipeline.
# - Builds the country alias table (canonical list + manual overrides).
# - Deduplicates registry cost ratios and resolves free-text populations to
#   exactly one country; ambiguous/unmatched labels are dropped and reported.
# - Converts ratios to constant-2010-dollar, 70-year VELs and averages ln(VEL)
#   per (country, year), then lags the year by two.
# - Left-joins World Bank health-expenditure indicators and fits
#   mean ln(VEL) ~ ln(total spending); decomposes spending variance by sector.
# - Writes all tables to results_dir and figures to figures_dir.
# Fatal errors (configuration, fetch, currency range) propagate and stop the run.
# ------------------------------------------------------------------------------


from __future__ import annotations
from typing import Optional
import os
import datetime
import pandas as pd

from data_loaders import (
    _load_config,
    return_default_config,
    load_country_list,
    load_fuzzy_overrides,
    load_cost_ratios,
    fetch_cpi,
    fetch_expenditure,
    fetch_boundaries,
)
from reference import build_alias_table
from currency import build_price_index
from resolver import deduplicate_ratios, match_candidates, match_summary, resolve_countries
from vel import compute_vel, aggregate_vel
from joiner import join_indicators
from analysis import fit_regression, covariance_decomposition

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
CONFIG_PATH = os.path.join(ROOT_DIR, "config.yaml")


def run_pipeline(raw_ratios: pd.DataFrame, aliases: pd.DataFrame, price_index: dict,
                 expenditure: pd.DataFrame, current_year: int,
                 cfg: Optional[dict] = None) -> dict:
    """
    Run every analytical stage on pre-loaded tables; no file or network I/O.

    Returns a dict of DataFrames: ratios, match_diagnostics, resolved,
    vel_records, aggregated_vel, joined, regression, covariance.
    """
    cfg = cfg or return_default_config()
    VEL = cfg["vel"]
    RES = cfg["resolver"]
    show_progress = bool(cfg.get("diagnostics", {}).get("show_progress", False))

    ratios = deduplicate_ratios(raw_ratios)
    candidates = match_candidates(ratios, aliases, case_sensitive=bool(RES["case_sensitive"]),
                                  show_progress=show_progress)
    # ratio_id is run-local; it is not carried into the saved diagnostics
    diagnostics = (ratios.merge(match_summary(candidates), on="ratio_id", how="left")
                         .drop(columns="ratio_id"))
    resolved = resolve_countries(ratios, aliases, candidates=candidates)

    if bool(cfg.get("diagnostics", {}).get("print_unmatched_labels", False)):
        for label in diagnostics.loc[diagnostics["status"] == "unmatched", "population_label"].unique():
            print(f"[resolver] unmatched: {label}")

    vel_records = compute_vel(resolved, price_index, lifespan=float(VEL["lifespan"]),
                              ratio_year=int(VEL["ratio_year"]), base_year=int(VEL["base_year"]))
    aggregated = aggregate_vel(vel_records, lag=int(VEL["lag"]))
    print(f"[vel] {len(vel_records)} VEL record(s) -> {len(aggregated)} (country, year) row(s).")

    joined = join_indicators(aggregated, expenditure, price_index, current_year=int(current_year),
                             base_year=int(VEL["base_year"]))
    regression = fit_regression(joined, alpha=float(cfg["analysis"]["alpha"]))
    covariance = covariance_decomposition(expenditure)

    return {
        "ratios": ratios,
        "match_diagnostics": diagnostics,
        "resolved": resolved,
        "vel_records": vel_records,
        "aggregated_vel": aggregated,
        "joined": joined,
        "regression": regression,
        "covariance": covariance,
    }


def save_results(results: dict, results_dir: str, filenames: dict) -> list:
    """Write the report tables as CSV; returns the paths written."""
    os.makedirs(results_dir, exist_ok=True)
    written = []
    for key, fname in filenames.items():
        if key not in results:
            continue
        path = os.path.join(results_dir, fname)
        keep_index = key in ("regression", "covariance")
        results[key].to_csv(path, index=keep_index)
        written.append(path)
    return written


def make_figures(results: dict, figures_dir: str, boundaries=None) -> list:
    """Scatter, covariance heat map and (with boundaries) the VEL map."""
    # plotting stack is only needed here
    from figures_static import plot_vel_vs_spending, plot_covariance_heatmap
    from figures_static_helpers import plot_vel_map

    os.makedirs(figures_dir, exist_ok=True)
    paths = [
        plot_vel_vs_spending(results["joined"], results["regression"],
                             os.path.join(figures_dir, "vel_vs_spending.pdf")),
        plot_covariance_heatmap(results["covariance"],
                                os.path.join(figures_dir, "covariance_heatmap.pdf")),
    ]
    if boundaries is not None:
        paths.append(plot_vel_map(results["aggregated_vel"], boundaries,
                                  os.path.join(figures_dir, "vel_map.pdf")))
    return paths


def main(config_path: str = CONFIG_PATH) -> dict:
    CFG, PATHS = _load_config(ROOT_DIR, config_path)

    current_year = CFG["analysis"].get("current_year") or datetime.date.today().year
    print(f"[pipeline] Spending deflated from {current_year} dollars (run-time current year).")
    timeout = float(CFG.get("fetch", {}).get("timeout_seconds", 60))

    country_list = load_country_list(PATHS["country_list_csv"])
    overrides = load_fuzzy_overrides(PATHS["fuzzy_countries_csv"])
    aliases = build_alias_table(country_list, overrides,
                                exclude=tuple(CFG["reference"].get("exclude_countries", [])))
    raw_ratios = load_cost_ratios(PATHS["cost_ratios_csv"])
    print(f"[pipeline] {len(raw_ratios)} cost-ratio row(s) loaded from {PATHS['cost_ratios_csv']}")

    CPI = CFG["cpi"]
    price_index = build_price_index(fetch_cpi(CPI["series_id"], CPI["start_date"], CPI["url"], timeout=timeout))
    print(f"[currency] Annual price index for {min(price_index)}..{max(price_index)}.")

    IND = CFG["indicators"]
    expenditure = fetch_expenditure(IND["codes"], country_list, int(IND["start_year"]),
                                    int(IND.get("end_year") or current_year))

    results = run_pipeline(raw_ratios, aliases, price_index, expenditure, current_year, CFG)

    written = save_results(results, PATHS["results_dir"], CFG["filenames"])
    print(f"[output] {len(written)} table(s) saved in {PATHS['results_dir']}")

    FIG = CFG.get("figures", {})
    if bool(FIG.get("enabled", True)):
        boundaries = None
        if FIG.get("boundaries"):
            boundaries = fetch_boundaries(FIG["boundaries"], FIG.get("boundaries_iso_col", "ISO_A2_EH"))
        figs = make_figures(results, PATHS["figures_dir"], boundaries)
        print(f"[output] {len(figs)} figure(s) saved in {PATHS['figures_dir']}")
    return results


if __name__ == "__main__":
    main()
