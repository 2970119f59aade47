"""
Prefect flow assessing the emerging status of taxa.

For each region (whole region, protected areas) and metric (observations,
occupancy) the decision rules and the GAM classifier run over the
evaluation window.  Rows from both methods are written to one table per
region and metric, along with a ranking of taxa by their status in the last
evaluation year and, when taxonomy is known, status counts per kingdom and
class.

Run locally:
    python -m trias_indicators.flows.emerging
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
from prefect import flow, task

from trias_indicators.analysis.decision_rules import apply_decision_rules_window
from trias_indicators.analysis.ranking import attach_taxonomy, rank_by_status, status_by_group
from trias_indicators.analysis.trend import GamTrendModel, apply_gam
from trias_indicators.config import get_settings
from trias_indicators.flows.preprocess import SERIES_PATH, SERIES_PROTECTED_PATH, TAXONOMY_PATH
from trias_indicators.reference.columns import C_NCELLS, CLASS, COBS, KINGDOM, NCELLS, OBS, TAXON, YEAR
from trias_indicators.schemas import EvaluationWindow, to_frame
from trias_indicators.store import DataStore

store = DataStore(get_settings().data_dir)

# Metric -> class-level baseline used to correct it
METRICS = {OBS: COBS, NCELLS: C_NCELLS}
REGIONS = {"all": SERIES_PATH, "protected_areas": SERIES_PROTECTED_PATH}


def output_path(region: str, metric: str, table: str = "status") -> Path:
    """Output table path; ``table`` is one of status, ranking, by_group."""
    return Path(f"output/emerging_{table}_{region}_{metric}.tsv")


@task(name="load-series")
def load_series(path: Path) -> pd.DataFrame | None:
    """Load an aggregated series from store."""
    return store.read_table(path)


@task(name="classify-decision-rules")
def classify_decision_rules(series: pd.DataFrame, years: list[int], metric: str) -> pd.DataFrame:
    """Decision-rule status for each taxon and year."""
    return to_frame(apply_decision_rules_window(series, years, metric=metric))


@task(name="classify-gam")
def classify_gam(
    series: pd.DataFrame,
    years: list[int],
    metric: str,
    baseline: str | None,
    min_positive_years: int,
    confidence: float,
) -> pd.DataFrame:
    """GAM status for each taxon and year."""
    results, _fits = apply_gam(
        series,
        years,
        metric=metric,
        baseline=baseline if baseline in series.columns else None,
        model=GamTrendModel(confidence=confidence),
        min_positive_years=min_positive_years,
    )
    return to_frame(results)


@task(name="save-emerging-table")
def save_table(
    path: Path, df: pd.DataFrame, window: EvaluationWindow, source: str = "emerging-status"
) -> Path:
    """Save a status-derived table via store."""
    return store.write_table(
        path,
        df,
        source=source,
        first_year=window.first_year,
        last_year=window.last_year,
    )


@flow(name="emerging-status", log_prints=True)
def emerging_all(
    as_of_year: int | None = None,
    window_length: int | None = None,
) -> dict[str, Any]:
    """
    Classify every taxon for each year of the evaluation window.

    Args:
        as_of_year: Last evaluation year (default: ``Settings.as_of_year``).
        window_length: Number of evaluation years ending at ``as_of_year``.
    """
    settings = get_settings()
    window = EvaluationWindow.ending_at(
        as_of_year if as_of_year is not None else settings.as_of_year,
        window_length if window_length is not None else settings.window_length,
    )
    print(f"Evaluating {window.first_year}-{window.last_year}")
    taxonomy = store.read_table(TAXONOMY_PATH)

    results: dict[str, Any] = {}
    for region, series_path in REGIONS.items():
        series = load_series(series_path)
        if series is None or series.empty:
            print(f"Warning: no series for {region}. Run the preprocess flow first.")
            continue

        for metric, baseline in METRICS.items():
            frames = [
                classify_decision_rules(series, window.years, metric),
                classify_gam(
                    series,
                    window.years,
                    metric,
                    baseline,
                    settings.min_positive_years,
                    settings.confidence,
                ),
            ]
            frames = [f for f in frames if not f.empty]
            if not frames:
                print(f"No taxa to classify for {region}/{metric}")
                continue
            status = pd.concat(frames, ignore_index=True)
            status = status.sort_values([TAXON, YEAR, "method"], kind="mergesort")
            if taxonomy is not None:
                status = attach_taxonomy(status, taxonomy)

            path = save_table(output_path(region, metric), status, window)
            counts = status.groupby("method")["em_status"].value_counts().to_dict()
            print(f"Saved {len(status)} rows to {path}: {counts}")

            ranking = rank_by_status(status, series, metric=metric, year=window.last_year)
            path = save_table(
                output_path(region, metric, "ranking"), ranking, window, source="emerging-ranking"
            )
            print(f"Saved ranking of {len(ranking)} rows to {path}")

            if {KINGDOM, CLASS} <= set(status.columns):
                by_group = status_by_group(status, year=window.last_year)
                path = save_table(
                    output_path(region, metric, "by_group"), by_group, window, source="emerging-by-group"
                )
                print(f"Saved status counts per taxonomic group to {path}")
            results[f"{region}_{metric}"] = len(status)

    return results


if __name__ == "__main__":
    result = emerging_all()
    print(f"Flow complete: {result}")
