"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

LATE_CUTOFF = time(8, 0, 0)
ROOM_CAPACITY_MIN = 1
ROOM_CAPACITY_MAX = 10
MIN_PASSWORD_LENGTH = 6
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100
