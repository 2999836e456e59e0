"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_RANGE_DAYS = 30
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

ORG_NAME_MIN_LENGTH = 3
ORG_NAME_MAX_LENGTH = 100

USER_NAME_MIN_LENGTH = 5
USER_NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 30

ISO_DATE_FORMAT = "%Y-%m-%d"
