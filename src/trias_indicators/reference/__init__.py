"""Static constants: status codes, default thresholds, column names.

Adding a new module:
1. Create ``reference/{name}.py`` with constants/enums
2. Re-export from this ``__init__.py``
"""

from trias_indicators.reference.columns import CELL as CELL
from trias_indicators.reference.columns import TAXON as TAXON
from trias_indicators.reference.columns import YEAR as YEAR
from trias_indicators.reference.status import EmergingStatus as EmergingStatus
from trias_indicators.reference.status import Method as Method
