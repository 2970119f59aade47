"""Checklist-based indicators: introductions per year and pathways.

The checklist has one row per (taxon, pathway) with the year the taxon was
first observed in the region.  A taxon with several pathways is counted once
per year but once per pathway in pathway tables.
"""

from __future__ import annotations

import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import TAXON

FIRST_OBSERVED = "first_observed"
PATHWAY = "pathway"
UNKNOWN = "unknown"


def introductions_per_year(
    checklist: pd.DataFrame,
    start_year: int = 1950,
    end_year: int | None = None,
    group_by: str | None = None,
    year_col: str = FIRST_OBSERVED,
) -> pd.DataFrame:
    """Number of taxa first observed in each year.

    Years without introductions get 0 so the series is contiguous.  Taxa
    without a year, or introduced before ``start_year``, are left out.

    Returns:
        Columns ``year``, [``group_by``], ``n``.
    """
    require_columns(checklist, [TAXON, year_col] + ([group_by] if group_by else []), "Checklist")
    dated = checklist.dropna(subset=[year_col])
    dated = dated.assign(year=dated[year_col].astype("int64"))
    dated = dated.loc[dated["year"] >= start_year]
    if end_year is not None:
        dated = dated.loc[dated["year"] <= end_year]
    last = end_year if end_year is not None else (int(dated["year"].max()) if len(dated) else start_year)
    years = pd.RangeIndex(start_year, last + 1, name="year")

    taxa = dated.drop_duplicates([TAXON] + ([group_by] if group_by else []))
    if group_by is None:
        counts = taxa.groupby("year").size().reindex(years, fill_value=0)
        return counts.rename("n").reset_index()

    counts = taxa.groupby([group_by, "year"]).size()
    groups = sorted(taxa[group_by].dropna().unique())
    index = pd.MultiIndex.from_product([groups, years], names=[group_by, "year"])
    out = counts.reindex(index, fill_value=0).rename("n").reset_index()
    return out[["year", group_by, "n"]].sort_values(["year", group_by], kind="mergesort").reset_index(drop=True)


def cumulative_number(
    checklist: pd.DataFrame,
    start_year: int = 1950,
    end_year: int | None = None,
    group_by: str | None = None,
    year_col: str = FIRST_OBSERVED,
) -> pd.DataFrame:
    """Running total of introduced taxa, adds a ``total`` column."""
    per_year = introductions_per_year(checklist, start_year, end_year, group_by, year_col)
    if group_by is None:
        return per_year.assign(total=per_year["n"].cumsum())
    return per_year.assign(total=per_year.groupby(group_by)["n"].cumsum())


def pathway_counts(
    checklist: pd.DataFrame,
    pathway_col: str = PATHWAY,
    group_by: str | None = None,
) -> pd.DataFrame:
    """Number of distinct taxa per pathway, largest first.

    Missing or blank pathways are labelled ``unknown``.
    """
    require_columns(checklist, [TAXON, pathway_col] + ([group_by] if group_by else []), "Checklist")
    pathways = checklist[pathway_col].astype("string").str.strip().replace("", pd.NA).fillna(UNKNOWN)
    work = checklist.assign(**{pathway_col: pathways})

    keys = ([group_by] if group_by else []) + [pathway_col]
    counts = work.groupby(keys)[TAXON].nunique().rename("n").reset_index()
    return counts.sort_values(
        ([group_by] if group_by else []) + ["n", pathway_col],
        ascending=([True] if group_by else []) + [False, True],
        kind="mergesort",
    ).reset_index(drop=True)
