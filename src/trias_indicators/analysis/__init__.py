"""Classifiers and indicators over aggregated occurrence data.

Each module is pure: DataFrames in, records or DataFrames out.

Dependency rule: analysis/ imports datasource helpers (column checks,
aggregation) only.  It never reads files, calls APIs or uses Prefect.

Modules:
  - decision_rules: year-over-year rule cascade -> emerging status
  - trend: GAM trend + derivative bands -> emerging status
  - appearing: appearing / reappearing taxa in an evaluation window
  - ranking: merge per-region results, rank, attach taxonomy, rank by
    emerging status, status counts per taxonomic group
  - protected_areas: protected-area flags and per-area statistics
  - introductions: checklist introductions per year and pathways

Adding an analysis module
-------------------------
1. Create ``analysis/{name}.py`` with pure functions taking explicit column
   parameters (``metric=``, ``baseline=``) rather than renaming columns.
2. Validate inputs with ``require_columns`` and raise ``ValueError``.
3. Wire into a flow in ``flows/`` and write outputs through the store.
4. Re-export here and add tests in ``tests/test_{name}.py``.
"""

from trias_indicators.analysis.appearing import detect_appearing, detect_reappearing
from trias_indicators.analysis.decision_rules import (
    apply_decision_rules,
    apply_decision_rules_window,
)
from trias_indicators.analysis.introductions import (
    cumulative_number,
    introductions_per_year,
    pathway_counts,
)
from trias_indicators.analysis.protected_areas import (
    flag_concern,
    flag_protected,
    restrict_to_protected,
    summarize_by_area,
)
from trias_indicators.analysis.ranking import (
    attach_taxonomy,
    merge_regions,
    rank_by_status,
    status_by_group,
)
from trias_indicators.analysis.trend import GamTrendModel, TrendFit, TrendModel, apply_gam

__all__ = [
    "GamTrendModel",
    "TrendFit",
    "TrendModel",
    "apply_decision_rules",
    "apply_decision_rules_window",
    "apply_gam",
    "attach_taxonomy",
    "cumulative_number",
    "detect_appearing",
    "detect_reappearing",
    "flag_concern",
    "flag_protected",
    "introductions_per_year",
    "merge_regions",
    "pathway_counts",
    "rank_by_status",
    "restrict_to_protected",
    "status_by_group",
    "summarize_by_area",
]
