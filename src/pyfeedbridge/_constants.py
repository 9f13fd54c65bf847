"""Internal constants shared across the library."""

BROKER_HOST = "io.adafruit.com"
BROKER_TLS_PORT = 8883
API_BASE_URL = "https://io.adafruit.com/api/v2"
API_KEY_HEADER = "X-AIO-Key"

# Local bridge surface
WS_PATH = "/ws/aio"
API_PREFIX = "/api/aio"
DEFAULT_PORT = 3000
DEFAULT_HISTORY_LIMIT = 100

# Viewer timing (seconds)
DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_RECONNECT_DELAY = 2.0
DEFAULT_REQUEST_TIMEOUT = 10.0

EARTH_RADIUS_KM = 6371.0
