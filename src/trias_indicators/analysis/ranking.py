"""Merge per-region results and rank taxa for display.

Pure functions: the same inputs always give the same rows in the same order.
"""

from __future__ import annotations

import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import CLASS, KINGDOM, NCELLS, TAXON, YEAR
from trias_indicators.reference.status import EmergingStatus


def merge_regions(
    restricted: pd.DataFrame,
    full: pd.DataFrame,
    *,
    metric: str = NCELLS,
    restricted_name: str = "protected_areas",
    full_name: str = "all",
    taxon_col: str = TAXON,
) -> pd.DataFrame:
    """Outer-join two regions' results on taxon and rank them.

    Every non-key column gets a ``_<region>`` suffix and an ``in_<region>``
    flag marks presence.  Rows are sorted by the restricted metric, then the
    full-region metric (both descending, missing last), then taxon key.

    Args:
        restricted: Results for the sub-region (e.g. protected areas).
        full: Results for the whole region.
        metric: Column to rank by; must be in both frames.
    """
    require_columns(restricted, [taxon_col, metric], what=f"{restricted_name} results")
    require_columns(full, [taxon_col, metric], what=f"{full_name} results")

    def suffixed(df: pd.DataFrame, name: str) -> pd.DataFrame:
        out = df.rename(columns={c: f"{c}_{name}" for c in df.columns if c != taxon_col})
        return out.assign(**{f"in_{name}": True})

    merged = suffixed(restricted, restricted_name).merge(
        suffixed(full, full_name), on=taxon_col, how="outer"
    )
    for name in (restricted_name, full_name):
        merged[f"in_{name}"] = merged[f"in_{name}"].fillna(False).astype(bool)

    by = [f"{metric}_{restricted_name}", f"{metric}_{full_name}", taxon_col]
    return merged.sort_values(
        by, ascending=[False, False, True], na_position="last", kind="mergesort"
    ).reset_index(drop=True)


def attach_taxonomy(
    df: pd.DataFrame, taxonomy: pd.DataFrame, taxon_col: str = TAXON
) -> pd.DataFrame:
    """Left-join taxon metadata; taxa missing from ``taxonomy`` keep null fields."""
    require_columns(taxonomy, [taxon_col], what="Taxonomy")
    info = taxonomy.drop_duplicates(taxon_col)
    return df.merge(info, on=taxon_col, how="left", validate="many_to_one")


def rank_by_status(
    status: pd.DataFrame,
    series: pd.DataFrame,
    *,
    metric: str = NCELLS,
    year: int | None = None,
    taxon_col: str = TAXON,
    year_col: str = YEAR,
) -> pd.DataFrame:
    """Rank taxa by their emerging status in one year, per method.

    Taxa are ordered by status (emerging first), then by ``metric`` in that
    year (descending; taxa absent from ``series`` count as 0), then by taxon
    key.  ``rank`` restarts at 1 for each method.

    Args:
        status: Status table, one row per (taxon, year, method).
        series: Aggregated series holding ``metric``.
        year: Year to rank on (default: the latest year in ``status``).
    """
    require_columns(status, [taxon_col, year_col, "em_status", "method"], what="Status table")
    require_columns(series, [taxon_col, year_col, metric], what="Time series")
    if status.empty:
        return status.assign(rank=pd.Series(dtype="int64"), **{metric: pd.Series(dtype="float64")})

    year = int(status[year_col].max()) if year is None else year
    latest = status.loc[status[year_col] == year].drop(columns=[metric], errors="ignore")
    values = series.loc[series[year_col] == year, [taxon_col, metric]].drop_duplicates(taxon_col)

    ranked = latest.merge(values, on=taxon_col, how="left")
    ranked[metric] = ranked[metric].fillna(0)
    ranked = ranked.sort_values(
        ["method", "em_status", metric, taxon_col],
        ascending=[True, False, False, True],
        kind="mergesort",
    ).reset_index(drop=True)
    ranked.insert(0, "rank", ranked.groupby("method").cumcount() + 1)
    return ranked


def status_by_group(
    status: pd.DataFrame,
    *,
    group_cols: tuple[str, ...] = (KINGDOM, CLASS),
    year: int | None = None,
    year_col: str = YEAR,
) -> pd.DataFrame:
    """Count taxa per taxonomic group and emerging status in one year.

    Expects taxonomy already attached (see ``attach_taxonomy``).  Taxa with
    an unknown group are counted under ``"unknown"``.  Every status code
    appears for every group, with zero counts where needed.

    Returns:
        One row per (method, group..., em_status) with ``status_label`` and
        ``n_taxa``.
    """
    keys = list(group_cols)
    require_columns(status, [year_col, "em_status", "method", *keys], what="Status table")
    columns = ["method", *keys, "em_status", "status_label", "n_taxa"]
    if status.empty:
        return pd.DataFrame(columns=columns)

    year = int(status[year_col].max()) if year is None else year
    latest = status.loc[status[year_col] == year, ["method", *keys, "em_status"]]
    latest = latest.astype({k: "object" for k in keys}).fillna({k: "unknown" for k in keys})

    counts = latest.groupby(["method", *keys, "em_status"]).size()
    codes = [int(s) for s in EmergingStatus]
    groups = latest[["method", *keys]].drop_duplicates()
    full = pd.MultiIndex.from_tuples(
        [(*g, code) for g in groups.itertuples(index=False) for code in codes],
        names=["method", *keys, "em_status"],
    )
    out = counts.reindex(full, fill_value=0).rename("n_taxa").reset_index()
    out["status_label"] = out["em_status"].map(lambda code: EmergingStatus(code).label)
    out = out.sort_values(
        ["method", *keys, "em_status"],
        ascending=[True] * (len(keys) + 1) + [False],
        kind="mergesort",
    )
    return out[columns].reset_index(drop=True)
