# src/data_loaders.py
import io
import os
import yaml
import requests
import wbgapi as wb
import geopandas as gpd
import pandas as pd
import numpy as np

from errors import ConfigurationError, FetchError
from helpers import _find_col, _missing_cols


def return_default_config():
    """
    Returns the default configuration dictionary
    """
    return {
        "paths": {
            "results_dir": "./results",
            "figures_dir": "./figures",
            "country_list_csv": "./data/country_list.csv",
            "fuzzy_countries_csv": "./data/fuzzy_countries.csv",
            "cost_ratios_csv": "./data/ghcea_registry.csv",
        },
        "diagnostics": {
            "print_unmatched_labels": False,
            "show_progress": True,
        },
        "reference": {
            "exclude_countries": ["Taiwan"],
        },
        "resolver": {
            "case_sensitive": True,
        },
        "cpi": {
            "series_id": "CPIAUCSL",
            "start_date": "2000-01-01",
            "url": "https://fred.stlouisfed.org/graph/fredgraph.csv",
        },
        "indicators": {
            "codes": {
                "public": "SH.XPD.GHED.PC.CD",
                "private": "SH.XPD.PVTD.PC.CD",
                "non_profit": "SH.XPD.EHEX.PC.CD",
            },
            "start_year": 2000, "end_year": None,
        },
        "vel": {
            "lifespan": 70, "ratio_year": 2018, "base_year": 2010, "lag": 2,
        },
        "analysis": {
            "current_year": None,  # None -> wall-clock year at run time
            "alpha": 0.05,
        },
        "fetch": {"timeout_seconds": 60},
        "figures": {
            "enabled": True,
            "boundaries": "https://naciscdn.org/naturalearth/110m/cultural/ne_110m_admin_0_countries.zip",
            "boundaries_iso_col": "ISO_A2_EH",
        },
        "filenames": {
            "aggregated_vel": "aggregated_vel.csv",
            "joined": "joined.csv",
            "regression": "regression.csv",
            "covariance": "covariance.csv",
            "match_diagnostics": "match_diagnostics.csv",
        },
    }

def _resolve(ROOT_DIR, p):
    """
    Resolve path p relative to ROOT_DIR if not absolute.
    """
    return os.path.abspath(os.path.join(ROOT_DIR, p))

def _deep_merge(dst, src):
    """
    Recursively merge src into dst
    """
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_merge(dst[k], v)
        else:
            dst[k] = v

def _load_config(ROOT_DIR: str, path: str):
    """
    Load YAML config if present; otherwise use defaults for both config and paths.
    Returns (cfg, PATHS)
    """
    cfg = return_default_config()
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as fh:
            try:
                user = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"[config] Could not parse {path}: {e}") from e
        if not isinstance(user, dict):
            raise ConfigurationError(f"[config] Top level of {path} must be a mapping.")
        _deep_merge(cfg, user)
    else:
        print(f"[config] No config file at {path}; using built-in defaults.")

    PATHS = {k: _resolve(ROOT_DIR, v) for k, v in cfg["paths"].items()}
    return cfg, PATHS

# ------------------------------ static inputs --------------------------------

def _read_codes_csv(file_path: str) -> pd.DataFrame:
    # keep_default_na=False: Namibia's ISO2 code is "NA"
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    return pd.read_csv(file_path, dtype=str, keep_default_na=False, na_values=[""])

def load_country_list(file_path: str) -> pd.DataFrame:
    """
    Canonical country list with columns country_name, iso2, iso3.
    """
    df = _read_codes_csv(file_path)
    missing = _missing_cols(df, ["country_name", "iso2"])
    if missing:
        raise ConfigurationError(f"[country_list] {file_path} missing columns: {missing}")
    for c in [c for c in ("country_name", "iso2", "iso3") if c in df.columns]:
        df[c] = df[c].str.strip()
    if "iso3" not in df.columns:
        df["iso3"] = np.nan
    df = df[["country_name", "iso2", "iso3"]].copy()
    return df.dropna(subset=["country_name", "iso2"]).reset_index(drop=True)

def load_fuzzy_overrides(file_path: str) -> pd.DataFrame:
    """
    Manual alias table (fuzzy_country, country_code), loaded verbatim.
    Any empty cell makes the table malformed.
    """
    df = _read_codes_csv(file_path)
    missing = _missing_cols(df, ["fuzzy_country", "country_code"])
    if missing:
        raise ConfigurationError(f"[fuzzy_countries] {file_path} missing columns: {missing}")
    df = df[["fuzzy_country", "country_code"]].copy()
    bad = df["fuzzy_country"].isna() | df["country_code"].isna()
    if bad.any():
        rows = (df.index[bad] + 2).tolist()  # 1-based, after the header line
        raise ConfigurationError(f"[fuzzy_countries] Empty alias or code on line(s) {rows} of {file_path}")
    return df

def load_cost_ratios(file_path: str) -> pd.DataFrame:
    """
    Read a cost-effectiveness registry export and return RawCostRatio rows:
    year, population_label, ratio_text.

    Column detection is liberal: 'Publication Year', 'Target Population' and the
    first column whose name contains 'us$/qaly' (e.g. 'US$/QALY (2018 US$)').
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    df = pd.read_csv(file_path, dtype=str, keep_default_na=False)

    year_col = "Publication Year" if "Publication Year" in df.columns else _find_col(df, ["year"])
    pop_col = "Target Population" if "Target Population" in df.columns else _find_col(df, ["population"])
    ratio_col = _find_col(df, ["us$/qaly"])
    missing = [n for n, c in [("Publication Year", year_col),
                              ("Target Population", pop_col),
                              ("US$/QALY *", ratio_col)] if c is None]
    if missing:
        raise ConfigurationError(f"[cost_ratios] {file_path} missing columns: {missing}")

    out = pd.DataFrame({
        "year": pd.to_numeric(df[year_col], errors="coerce"),
        "population_label": df[pop_col],
        "ratio_text": df[ratio_col],
    })
    n_bad = int(out["year"].isna().sum())
    if n_bad:
        print(f"[cost_ratios] Dropping {n_bad} row(s) without a publication year.")
    out = out.dropna(subset=["year"])
    out["year"] = out["year"].astype(int)
    return out.reset_index(drop=True)

# ----------------------------- external sources ------------------------------

def fetch_cpi(series_id: str, start_date: str, url: str, timeout: float = 60) -> pd.DataFrame:
    """
    Download a monthly price-index series from the FRED CSV endpoint.
    Returns columns date (datetime64) and value (float).
    """
    try:
        resp = requests.get(url, params={"id": series_id, "cosd": start_date}, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"[fetch_cpi] Could not download {series_id}: {e}") from e

    raw = pd.read_csv(io.StringIO(resp.text)) if resp.text.strip() else pd.DataFrame()
    if raw.empty or raw.shape[1] < 2:
        raise FetchError(f"[fetch_cpi] Empty response for {series_id}.")
    # first column is the observation date ('observation_date' or 'DATE')
    val_col = series_id if series_id in raw.columns else raw.columns[1]
    cpi = pd.DataFrame({
        "date": pd.to_datetime(raw.iloc[:, 0], errors="coerce"),
        "value": pd.to_numeric(raw[val_col], errors="coerce"),  # FRED marks gaps with '.'
    }).dropna()
    cpi = cpi[cpi["date"] >= pd.Timestamp(start_date)]
    if cpi.empty:
        raise FetchError(f"[fetch_cpi] No observations for {series_id} since {start_date}.")
    return cpi.reset_index(drop=True)

def fetch_expenditure(codes: dict, country_list: pd.DataFrame,
                      start_year: int, end_year: int) -> pd.DataFrame:
    """
    Download per-capita health expenditure indicators from the World Bank API.

    `codes` maps output column -> indicator code, e.g.
    {"public": "SH.XPD.GHED.PC.CD", "private": ..., "non_profit": ...}.
    Economies are ISO3 in the API; they are mapped to ISO2 through the
    country list, and anything not in it (aggregates) is dropped.
    """
    try:
        raw = wb.data.DataFrame(list(codes.values()), economy="all",
                                time=range(int(start_year), int(end_year) + 1),
                                columns="series", numericTimeKeys=True, skipAggs=True)
    except Exception as e:
        raise FetchError(f"[fetch_expenditure] World Bank request failed: {e}") from e
    if raw is None or raw.empty:
        raise FetchError("[fetch_expenditure] World Bank returned no rows.")

    df = raw.reset_index().rename(columns={"economy": "iso3", "time": "year"})
    df = df.rename(columns={code: name for name, code in codes.items()})
    for name in codes:
        if name not in df.columns:
            df[name] = np.nan

    iso_map = country_list.dropna(subset=["iso3"]).set_index("iso3")["iso2"]
    df["country_code"] = df["iso3"].map(iso_map)
    n_unmapped = int(df["country_code"].isna().sum())
    if n_unmapped:
        print(f"[fetch_expenditure] Dropping {n_unmapped} row(s) for economies outside the country list.")
    df = df.dropna(subset=["country_code"])
    df["year"] = df["year"].astype(int)
    return df[["year", "country_code"] + list(codes)].reset_index(drop=True)

def fetch_boundaries(source: str, iso_col: str = "ISO_A2_EH") -> gpd.GeoDataFrame:
    """
    Read country polygons from any geopandas-readable source keyed by ISO2.
    """
    try:
        gdf = gpd.read_file(source)
    except Exception as e:
        raise FetchError(f"[fetch_boundaries] Could not read {source}: {e}") from e
    if gdf.empty:
        raise FetchError(f"[fetch_boundaries] {source} contains no features.")
    if iso_col not in gdf.columns:
        raise ConfigurationError(f"[fetch_boundaries] Column '{iso_col}' not in {source}.")
    return gdf[[iso_col, "geometry"]].rename(columns={iso_col: "country_code"})
