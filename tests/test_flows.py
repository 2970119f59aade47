"""
Tests for the Prefect flows, run end to end against a temporary store.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from trias_indicators.flows import appearing, checklist, emerging, preprocess, protected_areas
from trias_indicators.schemas import TaxonInfo
from trias_indicators.store import DataStore

FLOW_MODULES = (preprocess, emerging, appearing, protected_areas, checklist)


def write_raw(base: Path) -> None:
    """Write a small set of raw inputs.

    Taxon 1 grows every year 2010-2020 (cell c1, and c2 from 2015); taxon 2
    appears in 2020; taxon 3 is seen in 2012 and again in 2020; taxon 99 is
    deny-listed.  Cell c1 lies in protected area BE1.
    """
    raw = base / "raw"
    raw.mkdir(parents=True)

    rows = ["taxonKey\tyear\teea_cell_code\tobs"]
    for i, year in enumerate(range(2010, 2021)):
        rows.append(f"1\t{year}\tc1\t{i + 1}")
        if year >= 2015:
            rows.append(f"1\t{year}\tc2\t{i}")
    rows += ["2\t2020\tc1\t3", "3\t2012\tc2\t1", "3\t2020\tc2\t2", "99\t2020\tc1\t50"]
    (raw / "be_alientaxa_cube.tsv").write_text("\n".join(rows) + "\n")

    (raw / "be_alientaxa_info.tsv").write_text(
        "taxonKey\tscientificName\tcanonicalName\tkingdom\tclass\tclassKey\trank\n"
        "1\tAlopochen aegyptiaca (L.)\tAlopochen aegyptiaca\tAnimalia\tAves\t212\tspecies\n"
        "2\tOxyura jamaicensis (Gmelin)\tOxyura jamaicensis\tAnimalia\tAves\t212\tspecies\n"
        "3\tImpatiens glandulifera Royle\tImpatiens glandulifera\tPlantae\tMagnoliopsida\t220\tspecies\n"
    )
    (raw / "protected_areas_cells.tsv").write_text("site_code\teea_cell_code\nBE1\tc1\n")
    (raw / "protected_areas_metadata.tsv").write_text("site_code\tsite_type\nBE1\tA\nBE2\tB\n")
    (raw / "union_list.tsv").write_text("taxonKey\n2\n")
    (raw / "checklist.tsv").write_text(
        "taxonKey\tfirst_observed\tpathway\n1\t2012\tescape\n2\t2019\trelease\n3\t\t\n"
    )


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every flow module at one temporary store."""
    ds = DataStore(tmp_path)
    for module in FLOW_MODULES:
        monkeypatch.setattr(module, "store", ds)
    return tmp_path


@pytest.fixture
def prepared(data_dir: Path) -> Path:
    write_raw(data_dir)
    preprocess.preprocess_all(excluded_taxa=[99])
    return data_dir


class TestPreprocess:
    def test_writes_series(self, data_dir: Path) -> None:
        write_raw(data_dir)
        result = preprocess.preprocess_all(excluded_taxa=[99])

        assert result == {"taxa": 3, "series_rows": 14, "protected_rows": 12}
        series = pd.read_csv(data_dir / "interim" / "timeseries.tsv", sep="\t")
        assert 99 not in series["taxonKey"].tolist()
        assert {"obs", "ncells", "cobs", "c_ncells"} <= set(series.columns)
        assert (data_dir / "interim" / "timeseries.tsv.meta.json").exists()

    def test_missing_membership_flags_nothing(self, data_dir: Path) -> None:
        write_raw(data_dir)
        (data_dir / "raw" / "protected_areas_cells.tsv").unlink()

        result = preprocess.preprocess_all(excluded_taxa=[99])

        assert result["protected_rows"] == 0


class TestLoadTaxonomy:
    def test_fetches_only_missing_keys(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[list[int]] = []

        def fake_fetch(keys: list[int], *, base_url: str | None = None) -> list[TaxonInfo]:
            calls.append(list(keys))
            return [TaxonInfo(taxonKey=k, classKey=212) for k in keys]

        monkeypatch.setattr(preprocess.gbif, "fetch_taxonomy", fake_fetch)

        first = preprocess.load_taxonomy([1, 2])
        second = preprocess.load_taxonomy([1, 2, 3])

        assert calls == [[1, 2], [3]]
        assert first["taxonKey"].tolist() == [1, 2]
        assert sorted(second["taxonKey"]) == [1, 2, 3]
        assert (data_dir / "reference" / "taxonomy.json").exists()

    def test_raw_file_wins(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_raw(data_dir)
        monkeypatch.setattr(preprocess.gbif, "fetch_taxonomy", pytest.fail)

        df = preprocess.load_taxonomy([1, 2, 3])

        assert df["canonicalName"].tolist()[0] == "Alopochen aegyptiaca"


class TestEmerging:
    def test_status_tables(self, prepared: Path) -> None:
        result = emerging.emerging_all(as_of_year=2020, window_length=3)

        assert set(result) == {"all_obs", "all_ncells", "protected_areas_obs", "protected_areas_ncells"}
        status = pd.read_csv(prepared / "output" / "emerging_status_all_obs.tsv", sep="\t")
        assert set(status["method"]) == {"decision_rules", "gam"}
        assert set(status["year"]) == {2018, 2019, 2020}
        assert set(status["em_status"]) <= {0, 1, 2, 3}
        assert "canonicalName" in status.columns

        rules = status.loc[(status["method"] == "decision_rules") & (status["year"] == 2020)]
        by_taxon = rules.set_index("taxonKey")["em_status"]
        assert by_taxon[1] == 3
        assert by_taxon[2] == 1

    def test_ranking_and_group_tables(self, prepared: Path) -> None:
        emerging.emerging_all(as_of_year=2020, window_length=3)

        ranking = pd.read_csv(prepared / "output" / "emerging_ranking_all_obs.tsv", sep="\t")
        rules = ranking.loc[ranking["method"] == "decision_rules"]
        assert set(ranking["year"]) == {2020}
        assert rules["taxonKey"].tolist() == [1, 3, 2]
        assert rules["rank"].tolist() == [1, 2, 3]

        by_group = pd.read_csv(prepared / "output" / "emerging_by_group_all_obs.tsv", sep="\t")
        rules = by_group.loc[by_group["method"] == "decision_rules"].set_index(["class", "em_status"])
        assert rules.loc[("Aves", 3), "n_taxa"] == 1
        assert rules.loc[("Aves", 1), "n_taxa"] == 1
        assert rules.loc[("Magnoliopsida", 3), "n_taxa"] == 1
        assert rules.loc[("Magnoliopsida", 0), "n_taxa"] == 0

    def test_no_series(self, data_dir: Path) -> None:
        assert emerging.emerging_all(as_of_year=2020) == {}


class TestAppearing:
    def test_appearing_and_reappearing(self, prepared: Path) -> None:
        result = appearing.appearing_all(as_of_year=2020, latency=5)

        assert result["appearing_ncells"] == 1
        assert result["reappearing_ncells"] == 1

        appeared = pd.read_csv(prepared / "output" / "appearing_ncells.tsv", sep="\t")
        assert appeared["taxonKey"].tolist() == [2]
        assert appeared["in_protected_areas"].tolist() == [True]
        assert appeared["is_concern"].tolist() == [True]

        back = pd.read_csv(prepared / "output" / "reappearing_ncells.tsv", sep="\t")
        assert back["taxonKey"].tolist() == [3]
        assert back["latency_all"].tolist() == [8]
        assert back["in_protected_areas"].tolist() == [False]

    def test_no_series(self, data_dir: Path) -> None:
        assert appearing.appearing_all(as_of_year=2020) == {"error": "no data"}


class TestProtectedAreas:
    def test_summaries(self, prepared: Path) -> None:
        result = protected_areas.protected_areas_all(as_of_year=2020, window_length=3)

        assert result == {"sites": 2, "occupied_sites": 1}
        summary = pd.read_csv(prepared / "output" / "protected_areas_summary.tsv", sep="\t")
        be1 = summary.set_index("site_code").loc["BE1"]
        assert be1["n_taxa"] == 2
        assert be1["n_concern_taxa"] == 1
        assert (prepared / "output" / "protected_areas_summary_window.tsv").exists()

    def test_no_cube(self, data_dir: Path) -> None:
        assert protected_areas.protected_areas_all(as_of_year=2020) == {"error": "no data"}


class TestChecklist:
    def test_indicators(self, data_dir: Path) -> None:
        write_raw(data_dir)
        result = checklist.checklist_all(end_year=2020)

        assert result == {"taxa": 2, "pathways": 3}
        cumulative = pd.read_csv(data_dir / "output" / "cumulative_number.tsv", sep="\t")
        assert cumulative["year"].iloc[-1] == 2020

    def test_missing_checklist(self, data_dir: Path) -> None:
        assert checklist.checklist_all(end_year=2020) == {"error": "no data"}
