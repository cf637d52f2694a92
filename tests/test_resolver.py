"""
Tests for resolver.py

Tests cover:
- Deduplication and ratio_id assignment (idempotence)
- Whole-word candidate matching
- Exactly-one-distinct-code resolution (ambiguity vs. repeated hits)
- Per-ratio diagnostics
"""

import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resolver import deduplicate_ratios, match_candidates, match_summary, resolve_countries


def _raw(rows):
    return pd.DataFrame(rows, columns=["year", "population_label", "ratio_text"])


def _aliases(pairs):
    return pd.DataFrame(pairs, columns=["alias_text", "country_code"])


ALIASES = _aliases([
    ("Kenya", "KE"),
    ("Kenyan", "KE"),
    ("Niger", "NE"),
    ("Nigeria", "NG"),
    ("Guinea", "GN"),
    ("Guinea-Bissau", "GW"),
    ("Indo", "IN"),
    ("Pacific", "FJ"),
])


class TestDeduplicateRatios:

    def test_exact_duplicates_collapse(self):
        raw = _raw([(2015, "Kenya malaria program", "50"),
                    (2015, "Kenya malaria program", "50")])
        out = deduplicate_ratios(raw)
        assert len(out) == 1
        assert out["ratio_id"].tolist() == [0]

    def test_near_duplicates_kept(self):
        raw = _raw([(2015, "Kenya", "50"), (2016, "Kenya", "50"), (2015, "Kenya", "51")])
        assert len(deduplicate_ratios(raw)) == 3

    def test_idempotent(self):
        raw = _raw([(2015, "Kenya", "50"), (2015, "Kenya", "50"), (2016, "Niger", "Dominated")])
        once = deduplicate_ratios(raw)
        twice = deduplicate_ratios(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_ratio_ids_are_sequential(self):
        raw = _raw([(2015, "a", "1"), (2015, "b", "2"), (2015, "a", "1"), (2015, "c", "3")])
        assert deduplicate_ratios(raw)["ratio_id"].tolist() == [0, 1, 2]

    def test_input_not_mutated(self):
        raw = _raw([(2015, "Kenya", "50"), (2015, "Kenya", "50")])
        before = raw.copy()
        deduplicate_ratios(raw)
        pd.testing.assert_frame_equal(raw, before)

    def test_missing_columns(self):
        with pytest.raises(KeyError):
            deduplicate_ratios(pd.DataFrame({"year": [2015]}))


class TestMatchCandidates:

    def _match(self, labels, **kw):
        ratios = deduplicate_ratios(_raw([(2015, lab, "1") for lab in labels]))
        return match_candidates(ratios, ALIASES, **kw)

    def test_one_row_per_hit(self):
        cand = self._match(["Kenya: Kenyan adults"])
        assert cand["country_code"].tolist() == ["KE", "KE"]

    def test_whole_word_only(self):
        cand = self._match(["Nigeria children"])
        assert cand["country_code"].tolist() == ["NG"]

    def test_unmatched_gets_null_row(self):
        cand = self._match(["sub-Saharan African children"])
        assert len(cand) == 1
        assert cand["country_code"].isna().all()

    def test_case_sensitive_by_default(self):
        assert self._match(["kenya"])["country_code"].isna().all()
        assert self._match(["kenya"], case_sensitive=False)["country_code"].tolist() == ["KE"]

    def test_every_ratio_represented(self):
        cand = self._match(["Kenya", "nowhere", "Niger"])
        assert sorted(cand["ratio_id"].unique()) == [0, 1, 2]


class TestResolveCountries:

    def _resolve(self, rows):
        return resolve_countries(deduplicate_ratios(_raw(rows)), ALIASES)

    def test_same_code_twice_is_not_ambiguous(self):
        out = self._resolve([(2015, "Kenya: Kenyan adults", "50")])
        assert out["country_code"].tolist() == ["KE"]

    def test_distinct_codes_are_excluded(self):
        out = self._resolve([(2015, "Indo-Pacific region", "50")])
        assert out.empty

    def test_substring_names_are_ambiguous(self):
        # Guinea matches inside Guinea-Bissau: two distinct codes
        out = self._resolve([(2015, "Guinea-Bissau children", "50")])
        assert out.empty

    def test_unmatched_excluded(self):
        out = self._resolve([(2015, "sub-Saharan African children", "50")])
        assert out.empty

    def test_mixed_batch(self, capsys):
        out = self._resolve([
            (2015, "Kenya malaria program", "50"),
            (2015, "Kenya malaria program", "50"),
            (2015, "Indo-Pacific region", "80"),
            (2016, "Niger", "Dominated"),
            (2017, "global", "10"),
        ])
        assert out["population_label"].tolist() == ["Kenya malaria program", "Niger"]
        assert out["country_code"].tolist() == ["KE", "NE"]
        assert list(out.columns) == ["ratio_id", "year", "population_label", "ratio_text", "country_code"]
        log = capsys.readouterr().out
        assert "2 resolved, 1 ambiguous, 1 unmatched of 4" in log

    def test_precomputed_candidates(self):
        ratios = deduplicate_ratios(_raw([(2015, "Kenya", "50")]))
        cand = match_candidates(ratios, ALIASES)
        out = resolve_countries(ratios, ALIASES, candidates=cand)
        assert out["country_code"].tolist() == ["KE"]


class TestMatchSummary:

    def test_statuses(self):
        cand = pd.DataFrame({
            "ratio_id": [0, 0, 1, 1, 2],
            "country_code": ["KE", "KE", "IN", "FJ", None],
        })
        summ = match_summary(cand).set_index("ratio_id")
        assert summ.loc[0, "status"] == "resolved"
        assert summ.loc[1, "status"] == "ambiguous"
        assert summ.loc[1, "codes"] == "FJ|IN"
        assert summ.loc[2, "status"] == "unmatched"
        assert summ.loc[2, "n_codes"] == 0
