"""Read the occurrence cube and taxon key lists from tab-separated files."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path  # noqa: TC003 (used at runtime)

import pandas as pd

from trias_indicators.reference.columns import CELL, COBS, OBS, TAXON, YEAR

logger = logging.getLogger(__name__)

CUBE_COLUMNS = [TAXON, YEAR, CELL, OBS]

_DTYPES = {TAXON: "int64", YEAR: "int64", CELL: "string", OBS: "int64", COBS: "int64"}


def require_columns(df: pd.DataFrame, columns: Iterable[str], what: str = "table") -> None:
    """Raise ``ValueError`` listing any of ``columns`` missing from ``df``."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        msg = f"{what} is missing required columns: {', '.join(missing)}"
        raise ValueError(msg)


def load_cube(path: Path) -> pd.DataFrame:
    """Load an occurrence cube.

    The file holds one row per (taxon, year, cell) with the observation count
    ``obs`` and, optionally, the class-level baseline ``cobs``.

    Raises:
        ValueError: If a required column is missing or a (taxon, year, cell)
            key is repeated.
    """
    df = pd.read_csv(path, sep="\t")
    require_columns(df, CUBE_COLUMNS, what=f"Cube {path.name}")
    df = df.astype({c: t for c, t in _DTYPES.items() if c in df.columns})

    dupes = df.duplicated([TAXON, YEAR, CELL])
    if dupes.any():
        msg = f"Cube {path.name} has {int(dupes.sum())} duplicated (taxon, year, cell) rows"
        raise ValueError(msg)
    return df


def exclude_taxa(df: pd.DataFrame, keys: Iterable[int]) -> pd.DataFrame:
    """Drop rows for deny-listed taxon keys (known upstream data errors)."""
    keys = set(keys)
    if not keys:
        return df
    mask = df[TAXON].isin(keys)
    if mask.any():
        logger.info("Excluding %d rows for %d taxa", int(mask.sum()), df.loc[mask, TAXON].nunique())
    return df.loc[~mask].reset_index(drop=True)


def load_taxon_keys(path: Path, column: str = TAXON) -> set[int]:
    """Read a list of taxon keys.

    Accepts a TSV with a ``taxonKey`` column or a bare list, one key per line.
    """
    df = pd.read_csv(path, sep="\t", dtype=str)
    if column in df.columns:
        values = df[column]
    else:
        # Bare list: the header line is itself a key
        values = pd.concat([pd.Series(df.columns[:1]), df.iloc[:, 0]], ignore_index=True)
    return {int(v) for v in values.dropna() if str(v).strip()}
