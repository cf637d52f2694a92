# src/reference.py
import pandas as pd

from errors import ConfigurationError


def build_alias_table(country_list: pd.DataFrame, overrides: pd.DataFrame,
                      exclude=("Taiwan",)) -> pd.DataFrame:
    """
    Build the CountryAlias table (alias_text, country_code).

    Base aliases are the canonical names minus `exclude`. Taiwan is left out so
    its studies fold into CN through the override table (World Bank
    reporting). Override rows are appended verbatim.

    Raises ConfigurationError if the override table is malformed.
    """
    need = {"fuzzy_country", "country_code"}
    if not need.issubset(overrides.columns):
        raise ConfigurationError(f"[reference] Override table needs columns {sorted(need)}")

    base = country_list.loc[~country_list["country_name"].isin(list(exclude)),
                            ["country_name", "iso2"]]
    base = base.rename(columns={"country_name": "alias_text", "iso2": "country_code"})
    manual = overrides.rename(columns={"fuzzy_country": "alias_text"})[["alias_text", "country_code"]]

    aliases = pd.concat([base, manual], ignore_index=True)
    for c in ("alias_text", "country_code"):
        aliases[c] = aliases[c].fillna("").astype(str).str.strip()

    empty = (aliases["alias_text"] == "") | (aliases["country_code"] == "")
    if empty.any():
        raise ConfigurationError(f"[reference] {int(empty.sum())} alias row(s) with empty text or code.")

    aliases = aliases.drop_duplicates().reset_index(drop=True)

    n_codes = aliases.groupby("alias_text")["country_code"].nunique()
    clashes = n_codes[n_codes > 1].index.tolist()
    if clashes:
        print(f"[reference] Aliases mapped to more than one code (will be ambiguous): {clashes}")
    print(f"[reference] {len(aliases)} aliases for {aliases['country_code'].nunique()} country codes.")
    return aliases
