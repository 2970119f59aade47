"""Emerging status from direct year-over-year comparisons.

For an evaluation year the series of a taxon is cut at that year and the
rules below are tried in order; the first that holds sets the status:

    1. fewer than 2 positive years             -> 1 unclear
    2. value in the evaluation year is 0       -> 0 not emerging
    3. value above every previous value        -> 3 emerging
    4. value above the median of previous
       positive values                         -> 2 potentially emerging
    5. otherwise                               -> 1 unclear

Rules 3 and 4 use strict comparisons, so ties land on the lower status.
Taxa without any positive value up to the evaluation year get no row.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import numpy as np
import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import NCELLS, TAXON, YEAR
from trias_indicators.reference.status import EmergingStatus, Method
from trias_indicators.schemas import ClassificationResult


def evaluate_rules(
    years: np.ndarray, values: np.ndarray, eval_year: int
) -> tuple[EmergingStatus, dict[str, Any]] | None:
    """Classify one taxon's series for ``eval_year``.

    Args:
        years: Years of the series, any order, no duplicates.
        values: Metric values aligned with ``years``.
        eval_year: Year to classify.

    Returns:
        (status, statistics), or None when the taxon has no positive value
        up to ``eval_year``.
    """
    keep = years <= eval_year
    years, values = years[keep], values[keep]
    positive = values > 0
    n_positive = int(positive.sum())
    if n_positive == 0:
        return None

    at_eval = values[years == eval_year]
    value = float(at_eval[0]) if at_eval.size else 0.0
    previous = values[years < eval_year]
    previous_positive = previous[previous > 0]
    previous_max = float(previous.max()) if previous.size else None
    previous_median = float(np.median(previous_positive)) if previous_positive.size else None

    insufficient = n_positive < 2
    absent = value == 0
    new_maximum = previous_max is not None and value > previous_max
    above_median = previous_median is not None and value > previous_median

    if insufficient:
        status = EmergingStatus.UNCLEAR
    elif absent:
        status = EmergingStatus.NOT_EMERGING
    elif new_maximum:
        status = EmergingStatus.EMERGING
    elif above_median:
        status = EmergingStatus.POTENTIALLY_EMERGING
    else:
        status = EmergingStatus.UNCLEAR

    stats = {
        "n_positive_years": n_positive,
        "value": value,
        "previous_max": previous_max,
        "previous_median": previous_median,
        "dr_insufficient": insufficient,
        "dr_absent": absent,
        "dr_new_maximum": new_maximum,
        "dr_above_median": above_median,
    }
    return status, stats


def apply_decision_rules(
    df: pd.DataFrame,
    eval_year: int,
    *,
    metric: str = NCELLS,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> list[ClassificationResult]:
    """Classify every taxon in ``df`` for one evaluation year.

    Args:
        df: Aggregated series, one row per (taxon, year).
        eval_year: Year to classify.
        metric: Column holding the metric (``ncells`` or ``obs``).

    Raises:
        ValueError: If a column is missing or a (taxon, year) pair repeats.
    """
    require_columns(df, [taxon_col, year_col, metric], what="Time series")
    if df.duplicated([taxon_col, year_col]).any():
        raise ValueError("Time series must have one row per (taxon, year); aggregate first")

    results: list[ClassificationResult] = []
    for taxon, group in df.groupby(taxon_col, sort=True):
        group = group.sort_values(year_col)
        outcome = evaluate_rules(
            group[year_col].to_numpy(),
            group[metric].to_numpy(dtype=float),
            eval_year,
        )
        if outcome is None:
            continue
        status, stats = outcome
        results.append(
            ClassificationResult(
                taxonKey=int(taxon),
                year=eval_year,
                em_status=status,
                method=Method.DECISION_RULES,
                stats=stats,
            )
        )
    return results


def apply_decision_rules_window(
    df: pd.DataFrame,
    eval_years: Iterable[int],
    *,
    metric: str = NCELLS,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> list[ClassificationResult]:
    """Run ``apply_decision_rules`` once per year and concatenate the rows.

    A taxon evaluated over three years yields three results.
    """
    results: list[ClassificationResult] = []
    for year in eval_years:
        results.extend(
            apply_decision_rules(df, year, metric=metric, taxon_col=taxon_col, year_col=year_col)
        )
    return results
