"""Occurrences in protected areas and per-area invasion statistics."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import CELL, IN_PROTECTED_AREA, OBS, SITE_CODE, TAXON, YEAR


def flag_protected(cube: pd.DataFrame, membership: pd.DataFrame) -> pd.DataFrame:
    """Add ``in_protected_area``: True for cells inside any protected area."""
    require_columns(cube, [CELL], what="Cube")
    require_columns(membership, [CELL], what="Membership")
    cells = set(membership[CELL].dropna())
    return cube.assign(**{IN_PROTECTED_AREA: cube[CELL].isin(cells)})


def restrict_to_protected(cube: pd.DataFrame) -> pd.DataFrame:
    """Rows of a flagged cube that lie in protected areas."""
    require_columns(cube, [IN_PROTECTED_AREA], what="Cube")
    return cube.loc[cube[IN_PROTECTED_AREA]].reset_index(drop=True)


def flag_concern(df: pd.DataFrame, keys: Iterable[int], taxon_col: str = TAXON) -> pd.DataFrame:
    """Add ``is_concern``: True for taxa on the regulated list."""
    return df.assign(is_concern=df[taxon_col].isin(set(keys)))


def summarize_by_area(
    cube: pd.DataFrame,
    membership: pd.DataFrame,
    areas: pd.DataFrame,
    *,
    concern: Iterable[int] = (),
    years: Iterable[int] | None = None,
) -> pd.DataFrame:
    """Per protected area: number of taxa, observations and occupied cells.

    Every site in ``areas`` gets a row; sites without records get zeros.

    Args:
        cube: Occurrence cube (taxon, year, cell, obs).
        membership: (site_code, eea_cell_code) pairs.
        areas: Site metadata; its columns are carried through.
        concern: Regulated taxon keys, counted separately.
        years: Restrict to these years (all years when None).
    """
    require_columns(cube, [TAXON, YEAR, CELL, OBS], what="Cube")
    present = cube.loc[cube[OBS] > 0]
    if years is not None:
        present = present.loc[present[YEAR].isin(set(years))]
    present = flag_concern(present, concern).astype({CELL: "string"})
    cells = membership[[SITE_CODE, CELL]].astype({SITE_CODE: "string", CELL: "string"})

    in_sites = present.merge(cells, on=CELL, how="inner")
    stats = in_sites.groupby(SITE_CODE).agg(
        n_taxa=(TAXON, "nunique"),
        n_observations=(OBS, "sum"),
        n_cells=(CELL, "nunique"),
    )
    concern_taxa = (
        in_sites.loc[in_sites["is_concern"]].groupby(SITE_CODE)[TAXON].nunique().rename("n_concern_taxa")
    )
    stats = stats.join(concern_taxa, how="left")

    out = areas.astype({SITE_CODE: "string"}).merge(stats, left_on=SITE_CODE, right_index=True, how="left")
    counts = ["n_taxa", "n_observations", "n_cells", "n_concern_taxa"]
    out[counts] = out[counts].fillna(0).astype("int64")
    return out.sort_values(
        ["n_taxa", SITE_CODE], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)
