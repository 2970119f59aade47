"""Protected areas: site-to-grid-cell membership and site metadata.

The intersection of grid cells with protected-area polygons is done
upstream; these loaders read its tabular result.

Public API:
  - load: load_membership, load_areas
"""

from trias_indicators.datasources.protected_areas.load import (
    AREA_COLUMNS,
    MEMBERSHIP_COLUMNS,
    load_areas,
    load_membership,
)

__all__ = ["AREA_COLUMNS", "MEMBERSHIP_COLUMNS", "load_areas", "load_membership"]
