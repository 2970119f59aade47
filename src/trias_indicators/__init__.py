"""TrIAS indicators - biodiversity indicators from species occurrence cubes.

Architecture::

    datasources/   Inputs (occurrence cube, GBIF taxonomy, protected areas)
    store.py       Tiered file store (raw -> reference -> interim -> output)
    analysis/      Classifiers and indicators (decision rules, GAM trends,
                   appearing/reappearing taxa, ranking, protected areas,
                   checklist introductions)
    flows/         Prefect orchestration (preprocess, emerging, appearing,
                   protected areas, checklist)
    services/      Shared utilities (GBIF HTTP session with retry)

Data flow: datasources -> store (interim) -> analysis -> store (output)

Extension points - see each package's docstring:
  - New input:      datasources/__init__.py
  - New indicator:  analysis/__init__.py
"""

__version__ = "0.1.0"

from trias_indicators.config import Settings, get_settings
from trias_indicators.reference.status import EmergingStatus, Method
from trias_indicators.schemas import ClassificationResult, EvaluationWindow

__all__ = [
    "ClassificationResult",
    "EmergingStatus",
    "EvaluationWindow",
    "Method",
    "Settings",
    "__version__",
    "get_settings",
]
