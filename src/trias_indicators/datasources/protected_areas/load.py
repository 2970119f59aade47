"""Load protected-area tables."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 (used at runtime)

import pandas as pd

from trias_indicators.datasources.cube.load import require_columns
from trias_indicators.reference.columns import CELL, SITE_CODE

MEMBERSHIP_COLUMNS = [SITE_CODE, CELL]
AREA_COLUMNS = [SITE_CODE, "site_type"]


def load_membership(path: Path) -> pd.DataFrame:
    """Load the (site_code, eea_cell_code) membership table, deduplicated."""
    df = pd.read_csv(path, sep="\t", dtype={SITE_CODE: "string", CELL: "string"})
    require_columns(df, MEMBERSHIP_COLUMNS, what=f"Membership {path.name}")
    return df[MEMBERSHIP_COLUMNS].drop_duplicates().reset_index(drop=True)


def load_areas(path: Path) -> pd.DataFrame:
    """Load protected-area metadata.

    Besides ``site_code`` and ``site_type`` the table may carry boolean
    region flags (e.g. ``flanders``, ``wallonia``, ``brussels``); they are
    kept as-is.
    """
    df = pd.read_csv(path, sep="\t", dtype={SITE_CODE: "string"})
    require_columns(df, AREA_COLUMNS, what=f"Areas {path.name}")
    if df[SITE_CODE].duplicated().any():
        msg = f"Areas {path.name} has duplicated site codes"
        raise ValueError(msg)
    return df
