"""Column names shared by the cube, the aggregated series and the outputs."""

TAXON = "taxonKey"
YEAR = "year"
CELL = "eea_cell_code"

# Counts in the cube
OBS = "obs"
COBS = "cobs"

# Occupancy after aggregation
NCELLS = "ncells"
C_NCELLS = "c_ncells"

IN_PROTECTED_AREA = "in_protected_area"
SITE_CODE = "site_code"
CLASS_KEY = "classKey"
KINGDOM = "kingdom"
CLASS = "class"
