"""Tests for merging and ranking per-region results."""

from __future__ import annotations

import pandas as pd
import pytest

from trias_indicators.analysis.ranking import (
    attach_taxonomy,
    merge_regions,
    rank_by_status,
    status_by_group,
)


@pytest.fixture
def restricted() -> pd.DataFrame:
    return pd.DataFrame({"taxonKey": [3, 1], "year": [2019, 2019], "ncells": [2.0, 5.0]})


@pytest.fixture
def full() -> pd.DataFrame:
    return pd.DataFrame(
        {"taxonKey": [1, 2, 3, 4], "year": [2019] * 4, "ncells": [9.0, 30.0, 4.0, 30.0]}
    )


class TestMergeRegions:
    def test_outer_join_with_suffixes(self, restricted: pd.DataFrame, full: pd.DataFrame) -> None:
        out = merge_regions(restricted, full)
        assert set(out.columns) == {
            "taxonKey",
            "year_protected_areas",
            "ncells_protected_areas",
            "in_protected_areas",
            "year_all",
            "ncells_all",
            "in_all",
        }
        assert len(out) == 4

    def test_ordering(self, restricted: pd.DataFrame, full: pd.DataFrame) -> None:
        out = merge_regions(restricted, full)
        # restricted desc, then full desc with missing last, ties by taxon key
        assert out["taxonKey"].tolist() == [1, 3, 2, 4]

    def test_presence_flags(self, restricted: pd.DataFrame, full: pd.DataFrame) -> None:
        out = merge_regions(restricted, full).set_index("taxonKey")
        assert not out.loc[2, "in_protected_areas"]
        assert out["in_all"].all()
        assert out["in_protected_areas"].dtype == bool

    def test_missing_values_last(self, full: pd.DataFrame) -> None:
        restricted = pd.DataFrame({"taxonKey": [5], "year": [2019], "ncells": [1.0]})
        out = merge_regions(restricted, full)
        assert out["taxonKey"].iloc[0] == 5
        assert pd.isna(out["ncells_all"].iloc[0])

    def test_deterministic(self, restricted: pd.DataFrame, full: pd.DataFrame) -> None:
        first = merge_regions(restricted, full)
        second = merge_regions(restricted.sample(frac=1, random_state=1), full.sample(frac=1, random_state=2))
        assert first.to_csv(sep="\t", index=False) == second.to_csv(sep="\t", index=False)

    def test_custom_names_and_metric(self) -> None:
        a = pd.DataFrame({"taxonKey": [1], "obs": [3]})
        b = pd.DataFrame({"taxonKey": [1], "obs": [8]})
        out = merge_regions(a, b, metric="obs", restricted_name="flanders", full_name="belgium")
        assert out.loc[0, "obs_flanders"] == 3
        assert out.loc[0, "obs_belgium"] == 8

    def test_empty_regions(self) -> None:
        empty = pd.DataFrame({"taxonKey": pd.Series(dtype="int64"), "ncells": pd.Series(dtype=float)})
        assert merge_regions(empty, empty).empty

    def test_missing_metric_rejected(self, full: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="obs"):
            merge_regions(full, full, metric="obs")


class TestAttachTaxonomy:
    def test_row_count_preserved(self, full: pd.DataFrame) -> None:
        taxonomy = pd.DataFrame({"taxonKey": [1, 2], "canonicalName": ["A", "B"]})
        out = attach_taxonomy(full, taxonomy)
        assert len(out) == len(full)
        assert out["canonicalName"].isna().sum() == 2

    def test_duplicate_taxonomy_rows_ignored(self, full: pd.DataFrame) -> None:
        taxonomy = pd.DataFrame({"taxonKey": [1, 1], "canonicalName": ["A", "A2"]})
        out = attach_taxonomy(full, taxonomy)
        assert len(out) == len(full)
        assert out.loc[out["taxonKey"] == 1, "canonicalName"].tolist() == ["A"]


def _status(rows: list[tuple[int, int, int, str]]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=["taxonKey", "year", "em_status", "method"])


class TestRankByStatus:
    @pytest.fixture
    def series(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "taxonKey": [1, 2, 3, 4, 1],
                "year": [2020, 2020, 2020, 2020, 2019],
                "ncells": [4, 9, 9, 1, 50],
            }
        )

    def test_status_then_metric_then_key(self, series: pd.DataFrame) -> None:
        status = _status([(k, 2020, s, "gam") for k, s in [(1, 3), (2, 2), (3, 2), (4, 3), (5, 2)]])
        out = rank_by_status(status, series)
        assert out["taxonKey"].tolist() == [1, 4, 2, 3, 5]
        assert out["rank"].tolist() == [1, 2, 3, 4, 5]
        # taxon 5 has no series row
        assert out.loc[out["taxonKey"] == 5, "ncells"].item() == 0

    def test_latest_year_by_default(self, series: pd.DataFrame) -> None:
        status = _status([(1, 2019, 3, "gam"), (1, 2020, 0, "gam"), (2, 2020, 1, "gam")])
        out = rank_by_status(status, series)
        assert out["year"].tolist() == [2020, 2020]
        assert out["taxonKey"].tolist() == [2, 1]

    def test_explicit_year_uses_that_years_metric(self, series: pd.DataFrame) -> None:
        status = _status([(1, 2019, 3, "gam"), (1, 2020, 0, "gam")])
        out = rank_by_status(status, series, year=2019)
        assert out["ncells"].tolist() == [50]

    def test_rank_restarts_per_method(self, series: pd.DataFrame) -> None:
        status = _status(
            [
                (1, 2020, 3, "decision_rules"),
                (2, 2020, 1, "decision_rules"),
                (1, 2020, 0, "gam"),
                (2, 2020, 2, "gam"),
            ]
        )
        out = rank_by_status(status, series)
        assert out[["method", "taxonKey", "rank"]].values.tolist() == [
            ["decision_rules", 1, 1],
            ["decision_rules", 2, 2],
            ["gam", 2, 1],
            ["gam", 1, 2],
        ]

    def test_empty_status(self, series: pd.DataFrame) -> None:
        assert rank_by_status(_status([]), series).empty

    def test_missing_metric_rejected(self, series: pd.DataFrame) -> None:
        with pytest.raises(ValueError, match="obs"):
            rank_by_status(_status([(1, 2020, 3, "gam")]), series, metric="obs")


class TestStatusByGroup:
    @pytest.fixture
    def status(self) -> pd.DataFrame:
        df = _status(
            [
                (1, 2020, 3, "gam"),
                (2, 2020, 3, "gam"),
                (3, 2020, 0, "gam"),
                (4, 2020, 2, "gam"),
                (1, 2019, 0, "gam"),
            ]
        )
        df["kingdom"] = ["Animalia", "Animalia", "Plantae", None, "Animalia"]
        df["class"] = ["Aves", "Aves", "Magnoliopsida", None, "Aves"]
        return df

    def test_counts_per_class_and_status(self, status: pd.DataFrame) -> None:
        out = status_by_group(status).set_index(["kingdom", "class", "em_status"])
        assert out.loc[("Animalia", "Aves", 3), "n_taxa"] == 2
        assert out.loc[("Plantae", "Magnoliopsida", 0), "n_taxa"] == 1
        assert out.loc[("unknown", "unknown", 2), "n_taxa"] == 1

    def test_every_status_listed(self, status: pd.DataFrame) -> None:
        out = status_by_group(status)
        aves = out.loc[out["class"] == "Aves"]
        assert aves["em_status"].tolist() == [3, 2, 1, 0]
        assert aves["n_taxa"].tolist() == [2, 0, 0, 0]
        labels = ["emerging", "potentially emerging", "unclear", "not emerging"]
        assert aves["status_label"].tolist() == labels

    def test_single_group_column(self, status: pd.DataFrame) -> None:
        out = status_by_group(status, group_cols=("kingdom",), year=2019)
        assert out["kingdom"].unique().tolist() == ["Animalia"]
        assert out.loc[out["em_status"] == 0, "n_taxa"].item() == 1

    def test_requires_taxonomy_columns(self) -> None:
        with pytest.raises(ValueError, match="kingdom"):
            status_by_group(_status([(1, 2020, 3, "gam")]))
