"""Detect taxa appearing or reappearing in an evaluation window.

The window is a contiguous set of years anchored at its first year.

- Appearing: the taxon's earliest positive year is the anchor year.
- Reappearing: the taxon is present in the window and was last seen (in the
  reference series) more than ``latency`` years before its first year of
  presence in the window.

The two are checked independently; a taxon can be in both lists.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from trias_indicators.datasources.cube.aggregate import positive_only
from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import NCELLS, TAXON, YEAR
from trias_indicators.schemas import AppearanceRecord, EvaluationWindow, ReappearanceRecord


def _prepare(df: pd.DataFrame, metric: str, taxon_col: str, year_col: str) -> pd.DataFrame:
    require_columns(df, [taxon_col, year_col, metric], what="Time series")
    if df.duplicated([taxon_col, year_col]).any():
        raise ValueError("Time series must have one row per (taxon, year); aggregate first")
    return positive_only(df, metric).sort_values([taxon_col, year_col], kind="mergesort")


def detect_appearing(
    df: pd.DataFrame,
    eval_years: Iterable[int],
    *,
    metric: str = NCELLS,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> list[AppearanceRecord]:
    """Taxa whose first positive year is the first evaluation year.

    Raises:
        ValueError: If the evaluation years are empty or not contiguous.
    """
    window = EvaluationWindow.from_years(eval_years)
    positive = _prepare(df, metric, taxon_col, year_col)

    firsts = positive.drop_duplicates(taxon_col, keep="first")
    hits = firsts.loc[firsts[year_col] == window.first_year]
    return [
        AppearanceRecord(taxonKey=int(row[taxon_col]), year=int(row[year_col]), value=float(row[metric]))
        for _, row in hits.iterrows()
    ]


def detect_reappearing(
    df: pd.DataFrame,
    eval_years: Iterable[int],
    latency: int,
    *,
    reference: pd.DataFrame | None = None,
    metric: str = NCELLS,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> list[ReappearanceRecord]:
    """Taxa back in the window after more than ``latency`` years of absence.

    Args:
        df: Series of the region being evaluated.
        eval_years: Contiguous evaluation years.
        latency: Minimum number of years of absence, exclusive.
        reference: Series holding the history to look back in, e.g. the
            full region when ``df`` is a protected-area subset. Defaults to
            ``df``.

    Raises:
        ValueError: If ``latency`` < 1 or the evaluation years are empty or
            not contiguous.
    """
    if latency < 1:
        msg = f"Latency must be a positive number of years, got {latency}"
        raise ValueError(msg)
    window = EvaluationWindow.from_years(eval_years)
    positive = _prepare(df, metric, taxon_col, year_col)
    history = positive if reference is None else _prepare(reference, metric, taxon_col, year_col)

    in_window = positive.loc[positive[year_col].between(window.first_year, window.last_year)]
    present = in_window.drop_duplicates(taxon_col, keep="first")

    before = history.loc[history[year_col] < window.first_year]
    last_seen = before.groupby(taxon_col)[year_col].max().rename("last_seen")

    merged = present.join(last_seen, on=taxon_col, how="inner")
    merged = merged.assign(latency=merged[year_col] - merged["last_seen"])
    hits = merged.loc[merged["latency"] > latency]
    return [
        ReappearanceRecord(
            taxonKey=int(row[taxon_col]),
            year=int(row[year_col]),
            last_seen=int(row["last_seen"]),
            latency=int(row["latency"]),
            value=float(row[metric]),
        )
        for _, row in hits.iterrows()
    ]
