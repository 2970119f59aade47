"""Pipeline inputs.

Each subdirectory is one input with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants (remote sources only)
    └── {feature}.py      # Load/fetch functions (one per file or endpoint)

Inputs:
  - cube: occurrence cube (taxon x year x grid cell) and its aggregation
  - gbif: taxon metadata from the GBIF species API
  - protected_areas: protected-area to grid-cell membership and site metadata

Adding a new input
------------------
1. Create ``datasources/{name}/`` with files above.
   Local files are read with pandas; remote sources go through
   ``trias_indicators.services.http.session``.

2. Validate required columns on load and raise ``ValueError`` early.

3. Re-export public API in ``__init__.py`` with ``__all__``.

4. Wire into a flow (see ``flows/preprocess.py``) and add tests in
   ``tests/test_{name}.py``.
"""
