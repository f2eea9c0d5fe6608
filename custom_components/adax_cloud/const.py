"""Constants for ADAX Cloud integration.

This module contains all the constants used throughout the integration,
including API endpoints, timing parameters, and configuration keys.
"""

DOMAIN = "adax_cloud"

BASE_URL = "https://api-1.adax.no/client-api"
AUTH_TOKEN_PATH = "/auth/token"
CONTENT_PATH = "/rest/v1/content"
CONTROL_PATH = "/rest/v1/control"

# Rate limit backoff, in seconds
READ_RETRY_DELAY = 3.0
WRITE_RETRY_DELAY = 5.0

CACHE_TTL = 60
TICK_INTERVAL = 3
JITTER_SLOTS = 3

CONF_MAX_POLLING_INTERVAL = "max_polling_interval"
DEFAULT_MAX_POLLING_INTERVAL = 60
MIN_POLLING_INTERVAL = 10

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_UNKNOWN = "unknown_error"

# Temperatures are exchanged with the backend in hundredths of a degree
TEMP_SCALE = 100
TEMP_MIN = 5.0
TEMP_MAX = 35.0
TEMP_STEP = 0.5

MANUFACTURER = "ADAX"
