"""
Prefect flow turning raw inputs into yearly time series.

Reads ``raw/`` inputs, looks up missing taxonomy on GBIF (cached in
``reference/``), and writes aggregated series to ``interim/``.

Run locally:
    python -m trias_indicators.flows.preprocess
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pandas as pd
from prefect import flow, task

from trias_indicators.analysis.protected_areas import flag_protected, restrict_to_protected
from trias_indicators.config import get_settings
from trias_indicators.datasources import gbif
from trias_indicators.datasources.cube import (
    aggregate_by_year,
    class_baseline,
    exclude_taxa,
    load_cube,
)
from trias_indicators.datasources.protected_areas import load_membership
from trias_indicators.reference.columns import COBS, IN_PROTECTED_AREA, TAXON
from trias_indicators.schemas import TaxonInfo
from trias_indicators.store import DataStore

# Data store with tiered directories
store = DataStore(get_settings().data_dir)

# Relative paths within the store
TAXONOMY_CACHE_PATH = Path("reference/taxonomy.json")
TAXONOMY_PATH = Path("interim/taxonomy.tsv")
CUBE_PATH = Path("interim/cube.tsv")
SERIES_PATH = Path("interim/timeseries.tsv")
SERIES_PROTECTED_PATH = Path("interim/timeseries_protected_areas.tsv")


@task(name="load-cube")
def load_raw_cube(excluded_taxa: list[int]) -> pd.DataFrame:
    """Load the raw cube and drop deny-listed taxa."""
    path = store.raw / get_settings().cube_file
    return exclude_taxa(load_cube(path), excluded_taxa)


@task(name="fetch-taxonomy", retries=2, retry_delay_seconds=5)
def fetch_taxonomy(keys: list[int]) -> list[dict[str, Any]]:
    """Look up taxa on the GBIF species API (base URL from settings)."""
    return [t.model_dump(by_alias=True) for t in gbif.fetch_taxonomy(keys)]


@task(name="load-taxonomy")
def load_taxonomy(keys: list[int]) -> pd.DataFrame:
    """Taxon metadata for ``keys``.

    A raw taxonomy file wins when present.  Otherwise cached GBIF lookups are
    reused while fresh and only missing keys are fetched.
    """
    settings = get_settings()
    raw_path = store.raw / settings.taxonomy_file
    if raw_path.exists():
        print(f"Using taxonomy from {raw_path}")
        return pd.read_csv(raw_path, sep="\t").astype({TAXON: "int64"})

    cached: list[dict[str, Any]] = []
    if store.is_fresh(TAXONOMY_CACHE_PATH):
        cached = store.read(TAXONOMY_CACHE_PATH) or []
    known = {row[TAXON] for row in cached}
    missing = [k for k in keys if k not in known]

    if missing:
        print(f"Fetching taxonomy for {len(missing)} taxa from GBIF...")
        cached = cached + fetch_taxonomy(missing)
        store.write(
            TAXONOMY_CACHE_PATH,
            cached,
            source="api.gbif.org",
            valid_until=datetime.now(UTC) + timedelta(days=settings.taxonomy_ttl_days),
        )
    else:
        print("Taxonomy cache is fresh, skipping fetch.")

    frame = gbif.taxonomy_to_frame(TaxonInfo.model_validate(row) for row in cached)
    return frame.loc[frame[TAXON].isin(keys)].reset_index(drop=True)


@task(name="flag-protected-areas")
def flag_protected_areas(cube: pd.DataFrame) -> pd.DataFrame:
    """Mark cube rows inside protected areas (all False without a membership file)."""
    path = store.raw / get_settings().membership_file
    if not path.exists():
        print(f"Warning: no membership table at {path}; no cell is in a protected area.")
        return cube.assign(**{IN_PROTECTED_AREA: False})
    return flag_protected(cube, load_membership(path))


@task(name="save-interim")
def save_interim(path: Path, df: pd.DataFrame) -> Path:
    """Save an interim table via store."""
    return store.write_table(path, df, source="preprocess")


@flow(name="preprocess", log_prints=True)
def preprocess_all(excluded_taxa: list[int] | None = None) -> dict[str, Any]:
    """
    Build the yearly series for the whole region and for protected areas.

    Args:
        excluded_taxa: Taxon keys to drop (default: ``Settings.excluded_taxa``).
    """
    settings = get_settings()
    excluded = settings.excluded_taxa if excluded_taxa is None else excluded_taxa

    print("Loading occurrence cube...")
    cube = load_raw_cube(excluded)
    keys = sorted(int(k) for k in cube[TAXON].unique())
    print(f"Loaded {len(cube)} rows for {len(keys)} taxa")

    taxonomy = load_taxonomy(keys)
    save_interim(TAXONOMY_PATH, taxonomy)

    if COBS not in cube.columns:
        print("Cube has no baseline column, computing class baseline...")
        cube = class_baseline(cube, taxonomy)

    cube = flag_protected_areas(cube)
    save_interim(CUBE_PATH, cube)

    series = aggregate_by_year(cube)
    protected = aggregate_by_year(restrict_to_protected(cube))
    save_interim(SERIES_PATH, series)
    save_interim(SERIES_PROTECTED_PATH, protected)
    print(f"Saved {len(series)} yearly rows ({len(protected)} in protected areas)")

    return {
        "taxa": len(keys),
        "series_rows": len(series),
        "protected_rows": len(protected),
    }


if __name__ == "__main__":
    result = preprocess_all()
    print(f"Flow complete: {result}")
