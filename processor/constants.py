"""Tunable defaults for event timing, caching and aggregation."""

# Start time assumed when an event has no parsable time of day ("prime time")
DEFAULT_START_HOUR = 18
DEFAULT_START_MINUTE = 0

# Minutes per blind level when the event does not say
DEFAULT_LEVEL_LENGTH_MINUTES = 20

# Late registration end when the text matches no known cue
LATE_REGISTRATION_FALLBACK_HOURS = 2

# Typical tournament length after late registration closes (or after start)
ONGOING_WINDOW_HOURS = 12

# Catalog snapshots older than this are treated as absent
CACHE_EXPIRY_HOURS = 6

# Quiet window for collapsing bursts of catalog changes
SERIES_DEBOUNCE_SECONDS = 0.3

# Group label for events that do not belong to a series
OTHER_EVENTS = "Other Events"
