class BaseUrlMissingError(Exception):
    def __init__(
        self,
        message="Base URL is required. Pass base_url explicitly or set the LARAVEL_CONNECTOR_URL environment variable.",
    ):
        self.message = message
        super().__init__(self.message)


class TransportError(Exception):
    """Raised when a request never reached an HTTP response.

    Covers connection failures, DNS errors, protocol errors and timeouts
    enforced by the underlying HTTP library itself.
    """

    def __init__(self, message: str = "Network error"):
        self.message = message
        super().__init__(self.message)


class RequestCancelledError(Exception):
    """Raised when a request is aborted through its cancellation signal."""

    def __init__(self, message: str = "Request cancelled"):
        self.message = message
        super().__init__(self.message)


class RequestTimeoutError(RequestCancelledError):
    """Raised when the client-side deadline aborts a request.

    A timeout takes the same path as an explicit cancel, so it is never retried.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout:g}ms")


class ResponseParseError(Exception):
    def __init__(self, message: str = "Invalid JSON response"):
        self.message = message
        super().__init__(self.message)
