"""Tests for protected-area loaders and statistics."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from trias_indicators.analysis.protected_areas import (
    flag_concern,
    flag_protected,
    restrict_to_protected,
    summarize_by_area,
)
from trias_indicators.datasources.protected_areas import load_areas, load_membership


@pytest.fixture
def cube() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "taxonKey": [1, 1, 2, 3, 3],
            "year": [2018, 2020, 2020, 2020, 2019],
            "eea_cell_code": ["c1", "c2", "c1", "c3", "c1"],
            "obs": [4, 2, 1, 5, 0],
        }
    )


@pytest.fixture
def membership() -> pd.DataFrame:
    return pd.DataFrame({"site_code": ["BE1", "BE1", "BE2"], "eea_cell_code": ["c1", "c2", "c2"]})


@pytest.fixture
def areas() -> pd.DataFrame:
    return pd.DataFrame({"site_code": ["BE1", "BE2", "BE3"], "site_type": ["A", "B", "A"]})


class TestLoaders:
    def test_membership_deduplicated(self, tmp_path: Path) -> None:
        path = tmp_path / "cells.tsv"
        path.write_text("site_code\teea_cell_code\textra\nBE1\tc1\tx\nBE1\tc1\ty\nBE2\tc2\tz\n")
        df = load_membership(path)
        assert list(df.columns) == ["site_code", "eea_cell_code"]
        assert len(df) == 2

    def test_membership_missing_column(self, tmp_path: Path) -> None:
        path = tmp_path / "cells.tsv"
        path.write_text("site_code\nBE1\n")
        with pytest.raises(ValueError, match="eea_cell_code"):
            load_membership(path)

    def test_areas_keep_region_flags(self, tmp_path: Path) -> None:
        path = tmp_path / "areas.tsv"
        path.write_text("site_code\tsite_type\tflanders\nBE1\tA\tTrue\n")
        assert "flanders" in load_areas(path).columns

    def test_areas_duplicate_site(self, tmp_path: Path) -> None:
        path = tmp_path / "areas.tsv"
        path.write_text("site_code\tsite_type\nBE1\tA\nBE1\tB\n")
        with pytest.raises(ValueError, match="duplicated"):
            load_areas(path)


class TestFlags:
    def test_flag_and_restrict(self, cube: pd.DataFrame, membership: pd.DataFrame) -> None:
        flagged = flag_protected(cube, membership)
        assert flagged["in_protected_area"].tolist() == [True, True, True, False, True]
        assert len(restrict_to_protected(flagged)) == 4

    def test_flag_concern(self, cube: pd.DataFrame) -> None:
        assert flag_concern(cube, {3})["is_concern"].sum() == 2


class TestSummarizeByArea:
    def test_counts_per_site(
        self, cube: pd.DataFrame, membership: pd.DataFrame, areas: pd.DataFrame
    ) -> None:
        out = summarize_by_area(cube, membership, areas, concern={2}).set_index("site_code")

        # BE1 holds c1 and c2: taxon 1 (4 + 2) and taxon 2 (1); taxon 3 in c1 has obs 0
        assert out.loc["BE1", "n_taxa"] == 2
        assert out.loc["BE1", "n_observations"] == 7
        assert out.loc["BE1", "n_cells"] == 2
        assert out.loc["BE1", "n_concern_taxa"] == 1
        assert out.loc["BE2", "n_taxa"] == 1
        assert out.loc["BE3", "n_taxa"] == 0

    def test_sorted_by_taxa(self, cube: pd.DataFrame, membership: pd.DataFrame, areas: pd.DataFrame) -> None:
        out = summarize_by_area(cube, membership, areas)
        assert out["site_code"].tolist() == ["BE1", "BE2", "BE3"]

    def test_years_filter(self, cube: pd.DataFrame, membership: pd.DataFrame, areas: pd.DataFrame) -> None:
        out = summarize_by_area(cube, membership, areas, years=[2018]).set_index("site_code")
        assert out.loc["BE1", "n_observations"] == 4
        assert out.loc["BE2", "n_taxa"] == 0
