"""Taxon metadata from the GBIF species API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from http import HTTPStatus
from typing import Any

import pandas as pd

from trias_indicators.datasources.gbif.client import SPECIES_PATH
from trias_indicators.reference.columns import TAXON
from trias_indicators.schemas import TaxonInfo
from trias_indicators.services.http import session

logger = logging.getLogger(__name__)

TAXONOMY_COLUMNS = [TAXON, "scientificName", "canonicalName", "kingdom", "class", "classKey", "rank"]


def _parse_taxon(key: int, result: dict[str, Any]) -> TaxonInfo:
    """Parse a /species/{key} response into a TaxonInfo."""
    return TaxonInfo(
        taxonKey=key,
        scientificName=result.get("scientificName"),
        canonicalName=result.get("canonicalName"),
        kingdom=result.get("kingdom"),
        class_=result.get("class"),
        classKey=result.get("classKey"),
        rank=(result.get("rank") or "").lower() or None,
    )


def fetch_taxon(key: int, *, base_url: str | None = None) -> TaxonInfo:
    """
    Fetch metadata for one taxon key.

    Without ``base_url`` the request goes to the species endpoint of the
    session's configured API base.

    An unknown key (HTTP 404) gives a TaxonInfo with only ``taxonKey`` set,
    so joins downstream keep the row with null fields.

    Raises:
        requests.HTTPError: For any other failed request (after retries).
    """
    resp = session.get(f"{base_url or SPECIES_PATH}/{key}")
    if resp.status_code == HTTPStatus.NOT_FOUND:
        logger.warning("Taxon %s not found in GBIF backbone", key)
        return TaxonInfo(taxonKey=key)
    resp.raise_for_status()
    return _parse_taxon(key, resp.json())


def fetch_taxonomy(keys: Iterable[int], *, base_url: str | None = None) -> list[TaxonInfo]:
    """Fetch metadata for each distinct key, in ascending key order."""
    return [fetch_taxon(k, base_url=base_url) for k in sorted(set(int(k) for k in keys))]


def taxonomy_to_frame(taxa: Iterable[TaxonInfo]) -> pd.DataFrame:
    """Tabulate taxon metadata with a nullable integer ``classKey``."""
    rows = [t.model_dump(by_alias=True) for t in taxa]
    df = pd.DataFrame(rows, columns=TAXONOMY_COLUMNS)
    return df.astype({TAXON: "int64", "classKey": "Int64"})
