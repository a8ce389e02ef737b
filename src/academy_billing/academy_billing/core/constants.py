"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * 60

DEFAULT_LEGACY_CLASS_HOURS = 1.0
DEFAULT_CURRENCY = "USD"
