"""
Prefect flow listing appearing and reappearing taxa.

Both regions are evaluated: the whole region, and protected areas against
the whole-region history.  Results are merged per metric, ranked by the
protected-area value, and joined with taxonomy and the concern list.

Run locally:
    python -m trias_indicators.flows.appearing
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
from prefect import flow, task

from trias_indicators.analysis.appearing import detect_appearing, detect_reappearing
from trias_indicators.analysis.protected_areas import flag_concern
from trias_indicators.analysis.ranking import attach_taxonomy, merge_regions
from trias_indicators.config import get_settings
from trias_indicators.datasources.cube import load_taxon_keys
from trias_indicators.flows.preprocess import SERIES_PATH, SERIES_PROTECTED_PATH, TAXONOMY_PATH
from trias_indicators.reference.columns import NCELLS, OBS, TAXON, YEAR
from trias_indicators.schemas import EvaluationWindow, to_frame
from trias_indicators.store import DataStore

store = DataStore(get_settings().data_dir)

METRICS = (OBS, NCELLS)
RESTRICTED = "protected_areas"
FULL = "all"


def output_path(kind: str, metric: str) -> Path:
    return Path(f"output/{kind}_{metric}.tsv")


def records_frame(records: Sequence[Any], metric: str, extra: Sequence[str] = ()) -> pd.DataFrame:
    """Records as a frame whose value column is named after the metric."""
    df = to_frame(records, columns=[TAXON, YEAR, *extra, "value"])
    df = df.astype({TAXON: "int64", YEAR: "int64", **{c: "int64" for c in extra}, "value": "float64"})
    return df.rename(columns={"value": metric})


@task(name="load-concern-list")
def load_concern() -> set[int]:
    """Regulated taxon keys, empty when the list is not provided."""
    path = store.raw / get_settings().concern_file
    if not path.exists():
        print(f"Warning: no concern list at {path}")
        return set()
    return load_taxon_keys(path)


@task(name="find-appearing")
def find_appearing(
    restricted: pd.DataFrame, full: pd.DataFrame, years: list[int], metric: str
) -> pd.DataFrame:
    """Appearing taxa in both regions, merged and ranked."""
    return merge_regions(
        records_frame(detect_appearing(restricted, years, metric=metric), metric),
        records_frame(detect_appearing(full, years, metric=metric), metric),
        metric=metric,
        restricted_name=RESTRICTED,
        full_name=FULL,
    )


@task(name="find-reappearing")
def find_reappearing(
    restricted: pd.DataFrame, full: pd.DataFrame, years: list[int], latency: int, metric: str
) -> pd.DataFrame:
    """Reappearing taxa in both regions, merged and ranked.

    Protected areas are checked against the whole-region history.
    """
    extra = ("last_seen", "latency")
    return merge_regions(
        records_frame(
            detect_reappearing(restricted, years, latency, reference=full, metric=metric),
            metric,
            extra,
        ),
        records_frame(detect_reappearing(full, years, latency, metric=metric), metric, extra),
        metric=metric,
        restricted_name=RESTRICTED,
        full_name=FULL,
    )


@task(name="save-appearing")
def save_table(path: Path, df: pd.DataFrame, window: EvaluationWindow, latency: int) -> Path:
    """Save an appearing/reappearing table via store."""
    return store.write_table(
        path,
        df,
        source="appearing-taxa",
        first_year=window.first_year,
        last_year=window.last_year,
        latency=latency,
    )


@flow(name="appearing-taxa", log_prints=True)
def appearing_all(
    as_of_year: int | None = None,
    window_length: int | None = None,
    latency: int | None = None,
) -> dict[str, Any]:
    """
    Find taxa appearing or reappearing in the evaluation window.

    Args:
        as_of_year: Last evaluation year (default: ``Settings.as_of_year``).
        window_length: Number of evaluation years (default:
            ``Settings.appearing_window``).
        latency: Years of absence before a reappearance counts.
    """
    settings = get_settings()
    window = EvaluationWindow.ending_at(
        as_of_year if as_of_year is not None else settings.as_of_year,
        window_length if window_length is not None else settings.appearing_window,
    )
    latency = latency if latency is not None else settings.latency

    full = store.read_table(SERIES_PATH)
    restricted = store.read_table(SERIES_PROTECTED_PATH)
    if full is None or restricted is None:
        print("No series found. Run the preprocess flow first.")
        return {"error": "no data"}

    taxonomy = store.read_table(TAXONOMY_PATH)
    concern = load_concern()

    print(f"Evaluating {window.first_year}-{window.last_year} with latency {latency}")
    results: dict[str, Any] = {}
    for metric in METRICS:
        tables = {
            "appearing": find_appearing(restricted, full, window.years, metric),
            "reappearing": find_reappearing(restricted, full, window.years, latency, metric),
        }
        for kind, table in tables.items():
            if taxonomy is not None:
                table = attach_taxonomy(table, taxonomy)
            table = flag_concern(table, concern)
            path = save_table(output_path(kind, metric), table, window, latency)
            print(f"Saved {len(table)} {kind} taxa ({metric}) to {path}")
            results[f"{kind}_{metric}"] = len(table)

    return results


if __name__ == "__main__":
    result = appearing_all()
    print(f"Flow complete: {result}")
