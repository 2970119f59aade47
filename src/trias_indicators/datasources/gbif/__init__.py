"""GBIF taxonomy data source.

Looks up taxon metadata (names, kingdom, class) by backbone key.

Public API:
  - client: SPECIES_PATH
  - species: fetch_taxon, fetch_taxonomy, taxonomy_to_frame
"""

from trias_indicators.datasources.gbif.client import SPECIES_PATH
from trias_indicators.datasources.gbif.species import (
    TAXONOMY_COLUMNS,
    fetch_taxon,
    fetch_taxonomy,
    taxonomy_to_frame,
)

__all__ = [
    "SPECIES_PATH",
    "TAXONOMY_COLUMNS",
    "fetch_taxon",
    "fetch_taxonomy",
    "taxonomy_to_frame",
]
