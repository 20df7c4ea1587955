"""
Application-wide constants.
Centralizes formats and limits shared by the engine, store and API.
"""

# Wire formats
DATE_FORMAT = "%Y-%m-%d"
END_OF_DAY = "24:00"

# Time constants
MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * 60

# Validation limits
MIN_SERVICE_DURATION_MINUTES = 5
MAX_SERVICE_DURATION_MINUTES = 600
MAX_NOTES_LENGTH = 1000
MAX_REASON_LENGTH = 255

# Listing
APPOINTMENTS_LIST_LIMIT = 200

# Supabase / Postgres
PG_EXCLUSION_VIOLATION = "23P01"
