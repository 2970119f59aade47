"""Tests for cube loading and aggregation."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from trias_indicators.datasources.cube import (
    aggregate_by_year,
    class_baseline,
    complete_years,
    exclude_taxa,
    load_cube,
    load_taxon_keys,
    positive_only,
)


def _cube(rows: list[tuple[int, int, str, int]]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=["taxonKey", "year", "eea_cell_code", "obs"])


CUBE_TSV = (
    "taxonKey\tyear\teea_cell_code\tobs\tcobs\n"
    "1\t2000\t1kmE1N1\t2\t10\n"
    "1\t2000\t1kmE1N2\t0\t4\n"
    "1\t2001\t1kmE1N1\t5\t0\n"
    "2\t2001\t1kmE1N1\t1\t3\n"
)


class TestLoadCube:
    def test_reads_and_types_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "cube.tsv"
        path.write_text(CUBE_TSV)
        df = load_cube(path)
        assert len(df) == 4
        assert df["taxonKey"].dtype == "int64"
        assert df["obs"].dtype == "int64"
        assert "cobs" in df.columns

    def test_missing_column(self, tmp_path: Path) -> None:
        path = tmp_path / "cube.tsv"
        path.write_text("taxonKey\tyear\tobs\n1\t2000\t1\n")
        with pytest.raises(ValueError, match="eea_cell_code"):
            load_cube(path)

    def test_duplicate_key(self, tmp_path: Path) -> None:
        path = tmp_path / "cube.tsv"
        path.write_text(CUBE_TSV + "1\t2000\t1kmE1N1\t3\t1\n")
        with pytest.raises(ValueError, match="duplicated"):
            load_cube(path)


class TestExcludeTaxa:
    def test_drops_listed_keys(self) -> None:
        df = _cube([(1, 2000, "a", 1), (2, 2000, "a", 1), (3, 2000, "a", 1)])
        assert sorted(exclude_taxa(df, [2, 99])["taxonKey"]) == [1, 3]

    def test_empty_list_keeps_all(self) -> None:
        df = _cube([(1, 2000, "a", 1)])
        assert exclude_taxa(df, []) is df


class TestLoadTaxonKeys:
    def test_tsv_with_column(self, tmp_path: Path) -> None:
        path = tmp_path / "keys.tsv"
        path.write_text("taxonKey\tname\n10\tA\n20\tB\n")
        assert load_taxon_keys(path) == {10, 20}

    def test_bare_list(self, tmp_path: Path) -> None:
        path = tmp_path / "keys.txt"
        path.write_text("10\n20\n30\n")
        assert load_taxon_keys(path) == {10, 20, 30}


class TestAggregateByYear:
    def test_sums_and_occupancy(self, tmp_path: Path) -> None:
        path = tmp_path / "cube.tsv"
        path.write_text(CUBE_TSV)
        out = aggregate_by_year(load_cube(path))

        row = out.loc[(out["taxonKey"] == 1) & (out["year"] == 2000)].iloc[0]
        assert row["obs"] == 2
        assert row["ncells"] == 1
        assert row["cobs"] == 14
        assert row["c_ncells"] == 2
        assert len(out) == 3

    def test_without_baseline(self) -> None:
        out = aggregate_by_year(_cube([(1, 2000, "a", 3), (1, 2000, "b", 1)]))
        assert list(out.columns) == ["taxonKey", "year", "obs", "ncells"]
        assert out.loc[0, "ncells"] == 2

    def test_extra_grouping_column(self) -> None:
        cube = _cube([(1, 2000, "a", 3), (1, 2000, "b", 1)]).assign(in_protected_area=[True, False])
        out = aggregate_by_year(cube, by=("taxonKey", "year", "in_protected_area"))
        assert len(out) == 2


class TestCompleteYears:
    def test_zero_fills_gaps(self) -> None:
        df = pd.DataFrame({"taxonKey": [1, 1], "year": [2000, 2003], "obs": [2, 4]})
        out = complete_years(df, last_year=2004)
        assert out["year"].tolist() == [2000, 2001, 2002, 2003, 2004]
        assert out["obs"].tolist() == [2, 0, 0, 4, 0]

    def test_common_first_year(self) -> None:
        df = pd.DataFrame({"taxonKey": [1, 2], "year": [2001, 2002], "obs": [1, 1]})
        out = complete_years(df, last_year=2002, first_year=2000)
        assert out.groupby("taxonKey").size().tolist() == [3, 3]

    def test_empty(self) -> None:
        df = pd.DataFrame({"taxonKey": [1], "year": [2010], "obs": [1]})
        assert complete_years(df, last_year=2005).empty


class TestClassBaseline:
    def test_class_total_includes_the_taxon(self) -> None:
        cube = _cube([(1, 2000, "a", 2), (2, 2000, "a", 5), (3, 2000, "a", 7)])
        taxonomy = pd.DataFrame({"taxonKey": [1, 2, 3], "classKey": [10, 10, 20]})
        out = class_baseline(cube, taxonomy)
        assert out["cobs"].tolist() == [7, 7, 7]

    def test_split_by_cell_and_year(self) -> None:
        cube = _cube([(1, 2000, "a", 2), (2, 2000, "b", 5), (2, 2001, "a", 3)])
        taxonomy = pd.DataFrame({"taxonKey": [1, 2], "classKey": [10, 10]})
        assert class_baseline(cube, taxonomy)["cobs"].tolist() == [2, 5, 3]

    def test_taxon_without_class_is_its_own_class(self) -> None:
        cube = _cube([(1, 2000, "a", 2), (2, 2000, "a", 5)])
        taxonomy = pd.DataFrame({"taxonKey": [1], "classKey": [10]})
        assert class_baseline(cube, taxonomy)["cobs"].tolist() == [2, 5]


def test_positive_only() -> None:
    df = pd.DataFrame({"obs": [0, 1, 2]})
    assert positive_only(df, "obs")["obs"].tolist() == [1, 2]
