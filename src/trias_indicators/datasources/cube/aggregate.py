"""Aggregate the cube to per-taxon yearly time series (no I/O).

After aggregation there is one row per (taxon, year):

    obs       total observations
    cobs      class-level baseline observations (the taxon included)
    ncells    occupancy: cells with obs > 0
    c_ncells  baseline occupancy: cells with cobs > 0

Years without records stay missing; ``complete_years`` is the explicit
zero-fill step.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import (
    C_NCELLS,
    CELL,
    CLASS_KEY,
    COBS,
    NCELLS,
    OBS,
    TAXON,
    YEAR,
)


def aggregate_by_year(df: pd.DataFrame, by: Sequence[str] = (TAXON, YEAR)) -> pd.DataFrame:
    """Sum counts and count occupied cells per (taxon, year).

    Args:
        df: Cube rows, one per (taxon, year, cell).
        by: Grouping columns. Add e.g. ``in_protected_area`` to split regions.

    Returns:
        Aggregated frame sorted by the grouping columns.
    """
    keys = list(by)
    require_columns(df, [*keys, OBS], what="Cube")

    # One row per cell, so counting positive rows counts distinct cells
    work = df.assign(_occ=(df[OBS] > 0).astype("int64"))
    agg: dict[str, str] = {OBS: "sum", "_occ": "sum"}
    if COBS in df.columns:
        work["_c_occ"] = (df[COBS] > 0).astype("int64")
        agg[COBS] = "sum"
        agg["_c_occ"] = "sum"

    out = (
        work.groupby(keys, as_index=False)
        .agg(agg)
        .rename(columns={"_occ": NCELLS, "_c_occ": C_NCELLS})
    )
    return out.sort_values(keys, kind="mergesort").reset_index(drop=True)


def complete_years(
    df: pd.DataFrame,
    last_year: int,
    first_year: int | None = None,
    value_cols: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Zero-fill each taxon's series over a year range.

    Each taxon gets every year from ``first_year`` (or its own first year when
    None) through ``last_year``.  Rows outside that range are dropped.

    Args:
        df: Aggregated series, one row per (taxon, year).
        last_year: Last year to include.
        first_year: Common first year, or None for per-taxon start.
        value_cols: Columns to fill with 0 (default: every other column).
    """
    require_columns(df, [TAXON, YEAR], what="Time series")
    cols = list(value_cols) if value_cols is not None else [
        c for c in df.columns if c not in (TAXON, YEAR)
    ]

    frames = []
    for taxon, group in df.groupby(TAXON, sort=True):
        start = first_year if first_year is not None else int(group[YEAR].min())
        if start > last_year:
            continue
        years = pd.RangeIndex(start, last_year + 1, name=YEAR)
        filled = group.set_index(YEAR)[cols].reindex(years, fill_value=0)
        filled.insert(0, TAXON, taxon)
        frames.append(filled.reset_index())

    if not frames:
        return pd.DataFrame(columns=[TAXON, YEAR, *cols])
    out = pd.concat(frames, ignore_index=True)
    return out[[TAXON, YEAR, *cols]]


def class_baseline(
    df: pd.DataFrame,
    taxonomy: pd.DataFrame,
    group_col: str = CLASS_KEY,
    metric: str = OBS,
) -> pd.DataFrame:
    """Add the ``cobs`` baseline to a cube that lacks it.

    The baseline of a row is the total count of its group (class by
    default) in the same cell and year, the taxon itself included.  A taxon
    without a group is its own group.  The taxon's own share is removed
    later, when a trend is fitted (see ``analysis.trend.correct_baseline``).
    """
    require_columns(df, [TAXON, YEAR, CELL, metric], what="Cube")
    require_columns(taxonomy, [TAXON, group_col], what="Taxonomy")

    groups = taxonomy[[TAXON, group_col]].drop_duplicates(TAXON)
    merged = df.merge(groups, on=TAXON, how="left")
    totals = merged.groupby([group_col, YEAR, CELL], dropna=True)[metric].transform("sum")
    baseline = totals.fillna(merged[metric]).astype("int64")
    return df.assign(**{COBS: baseline.to_numpy()})


def positive_only(df: pd.DataFrame, metric: str) -> pd.DataFrame:
    """Rows with a strictly positive ``metric``."""
    return df.loc[df[metric] > 0].reset_index(drop=True)
