"""
Prefect flow computing checklist indicators.

Reads the regional checklist from ``raw/`` and writes introductions per
year, the cumulative number of taxa and pathway counts to ``output/``.

Run locally:
    python -m trias_indicators.flows.checklist
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from prefect import flow, task

from trias_indicators.analysis.introductions import (
    cumulative_number,
    introductions_per_year,
    pathway_counts,
)
from trias_indicators.config import get_settings
from trias_indicators.store import DataStore

store = DataStore(get_settings().data_dir)

INTRODUCTIONS_PATH = Path("output/introductions_per_year.tsv")
CUMULATIVE_PATH = Path("output/cumulative_number.tsv")
PATHWAYS_PATH = Path("output/pathways.tsv")


@task(name="load-checklist")
def load_checklist() -> pd.DataFrame | None:
    path = store.raw / get_settings().checklist_file
    if not path.exists():
        print(f"Warning: no checklist at {path}")
        return None
    return pd.read_csv(path, sep="\t")


@task(name="save-checklist-indicator")
def save_indicator(path: Path, df: pd.DataFrame) -> Path:
    return store.write_table(path, df, source="checklist")


@flow(name="checklist", log_prints=True)
def checklist_all(end_year: int | None = None) -> dict[str, Any]:
    """
    Build the checklist indicators.

    Args:
        end_year: Last year of the series (default: ``Settings.as_of_year``).
    """
    settings = get_settings()
    end_year = end_year if end_year is not None else settings.as_of_year

    checklist = load_checklist()
    if checklist is None:
        return {"error": "no data"}

    per_year = introductions_per_year(checklist, settings.first_year, end_year)
    cumulative = cumulative_number(checklist, settings.first_year, end_year)
    pathways = pathway_counts(checklist)

    save_indicator(INTRODUCTIONS_PATH, per_year)
    save_indicator(CUMULATIVE_PATH, cumulative)
    save_indicator(PATHWAYS_PATH, pathways)

    total = int(cumulative["total"].iloc[-1]) if len(cumulative) else 0
    print(f"{total} taxa introduced {settings.first_year}-{end_year}, {len(pathways)} pathways")
    return {"taxa": total, "pathways": len(pathways)}


if __name__ == "__main__":
    result = checklist_all()
    print(f"Flow complete: {result}")
