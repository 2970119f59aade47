"""
Prefect flows for the indicator pipeline.

Flows:
- preprocess: Load the cube, drop excluded taxa, attach taxonomy and the
  class baseline, flag protected areas, aggregate to yearly series
- emerging: Decision rules + GAM emerging status per region and metric
- appearing: Appearing / reappearing taxa, merged across regions and ranked
- protected_areas: Per-area invasion statistics
- checklist: Introductions per year, cumulative number, pathways

Usage (local):
    python -m trias_indicators.flows.preprocess
    python -m trias_indicators.flows.emerging

Usage (Prefect):
    prefect server start  # Optional, for dashboard
    trias-indicators all --as-of 2024
"""
