# Environment variables
ENV_BASE_URL = "LARAVEL_CONNECTOR_URL"
ENV_ACCESS_TOKEN = "LARAVEL_CONNECTOR_TOKEN"

# Headers
HEADER_ACCEPT = "Accept"
HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_SET_COOKIE = "set-cookie"
HEADER_XSRF_TOKEN = "X-XSRF-TOKEN"

JSON_MEDIA_TYPE = "application/json"

# Cookies
XSRF_COOKIE_NAME = "XSRF-TOKEN"

# Defaults
DEFAULT_CSRF_COOKIE_PATH = "/sanctum/csrf-cookie"
DEFAULT_REFRESH_ENDPOINT = "/api/refresh"
DEFAULT_TOKEN_KEY = "auth_token"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_RETRY_DELAY_MS = 1000

# Methods
STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Status codes
AUTH_REJECTION_STATUS_CODES = frozenset({401, 419})
