"""Domain business rules and constants."""

import re
from typing import Final

# Five groups of five uppercase alphanumerics, e.g. AAAAA-BBBBB-CCCCC-DDDDD-EEEEE
KEY_PATTERN: Final = re.compile(r"^[A-Z0-9]{5}(?:-[A-Z0-9]{5}){4}$")

DEFAULT_THRESHOLDS: Final = (20, 10)
DEFAULT_MESSAGE_TEMPLATE: Final = "Warning: only {free} free keys left"
FREE_PLACEHOLDER: Final = "{free}"
