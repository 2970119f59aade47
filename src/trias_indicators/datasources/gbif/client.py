"""GBIF API paths, relative to ``Settings.gbif_api``.

API docs: https://techdocs.gbif.org/en/openapi/v1/species
"""

SPECIES_PATH = "species"
