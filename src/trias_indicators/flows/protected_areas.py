"""
Prefect flow summarizing alien taxa per protected area.

Uses the flagged cube from the preprocess flow plus the raw site tables.
One summary covers all years, a second one only the evaluation window.

Run locally:
    python -m trias_indicators.flows.protected_areas
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from prefect import flow, task

from trias_indicators.analysis.protected_areas import summarize_by_area
from trias_indicators.config import get_settings
from trias_indicators.datasources.cube import load_taxon_keys
from trias_indicators.datasources.protected_areas import load_areas, load_membership
from trias_indicators.flows.preprocess import CUBE_PATH
from trias_indicators.schemas import EvaluationWindow
from trias_indicators.store import DataStore

store = DataStore(get_settings().data_dir)

SUMMARY_PATH = Path("output/protected_areas_summary.tsv")
SUMMARY_WINDOW_PATH = Path("output/protected_areas_summary_window.tsv")


@task(name="load-protected-areas")
def load_sites() -> tuple[pd.DataFrame, pd.DataFrame] | None:
    """Membership and site metadata, or None when either file is missing."""
    settings = get_settings()
    membership_path = store.raw / settings.membership_file
    areas_path = store.raw / settings.areas_file
    for path in (membership_path, areas_path):
        if not path.exists():
            print(f"Warning: missing {path}")
            return None
    return load_membership(membership_path), load_areas(areas_path)


@task(name="summarize-protected-areas")
def summarize(
    cube: pd.DataFrame,
    membership: pd.DataFrame,
    areas: pd.DataFrame,
    concern: set[int],
    years: list[int] | None,
) -> pd.DataFrame:
    return summarize_by_area(cube, membership, areas, concern=concern, years=years)


@flow(name="protected-areas", log_prints=True)
def protected_areas_all(
    as_of_year: int | None = None,
    window_length: int | None = None,
) -> dict[str, Any]:
    """
    Count taxa, observations and occupied cells in every protected area.

    Args:
        as_of_year: Last year of the window summary.
        window_length: Years in the window summary.
    """
    settings = get_settings()
    window = EvaluationWindow.ending_at(
        as_of_year if as_of_year is not None else settings.as_of_year,
        window_length if window_length is not None else settings.window_length,
    )

    cube = store.read_table(CUBE_PATH)
    if cube is None:
        print("No cube found. Run the preprocess flow first.")
        return {"error": "no data"}

    sites = load_sites()
    if sites is None:
        return {"error": "no protected areas"}
    membership, areas = sites

    concern_path = store.raw / settings.concern_file
    concern = load_taxon_keys(concern_path) if concern_path.exists() else set()

    overall = summarize(cube, membership, areas, concern, None)
    recent = summarize(cube, membership, areas, concern, window.years)
    store.write_table(SUMMARY_PATH, overall, source="protected-areas")
    store.write_table(
        SUMMARY_WINDOW_PATH,
        recent,
        source="protected-areas",
        first_year=window.first_year,
        last_year=window.last_year,
    )
    occupied = int((overall["n_taxa"] > 0).sum())
    print(f"Summarized {len(overall)} sites, {occupied} with alien taxa")

    return {"sites": len(overall), "occupied_sites": occupied}


if __name__ == "__main__":
    result = protected_areas_all()
    print(f"Flow complete: {result}")
