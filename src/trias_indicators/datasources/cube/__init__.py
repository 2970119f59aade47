"""Occurrence cube: counts per taxon, year and EEA grid cell.

Public API:
  - load: load_cube, exclude_taxa, load_taxon_keys
  - aggregate: aggregate_by_year, complete_years, class_baseline,
               positive_only
"""

from trias_indicators.datasources.cube.aggregate import (
    aggregate_by_year,
    class_baseline,
    complete_years,
    positive_only,
)
from trias_indicators.datasources.cube.load import (
    CUBE_COLUMNS,
    exclude_taxa,
    load_cube,
    load_taxon_keys,
)

__all__ = [
    "CUBE_COLUMNS",
    "aggregate_by_year",
    "class_baseline",
    "complete_years",
    "exclude_taxa",
    "load_cube",
    "load_taxon_keys",
    "positive_only",
]
