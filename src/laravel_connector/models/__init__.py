from .auth import AuthTokens
from .envelope import ErrorEnvelope, ResponseEnvelope
from .errors import (
    BaseUrlMissingError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseParseError,
    TransportError,
)

__all__ = [
    "AuthTokens",
    "BaseUrlMissingError",
    "ErrorEnvelope",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ResponseEnvelope",
    "ResponseParseError",
    "TransportError",
]
