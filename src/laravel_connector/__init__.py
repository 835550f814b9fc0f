from ._config import ClientConfig, SanctumConfig, resolve_config
from ._connector import ApiClient, create_api, create_sanctum_api
from ._services import (
    CredentialDecorator,
    HttpxTransport,
    Interceptor,
    InterceptorChain,
    RequestPipeline,
    ResponseNormalizer,
    RetryPolicy,
    TokenCoordinator,
    Transport,
    TransportRequest,
    TransportResponse,
)
from ._utils import (
    CancellationSignal,
    FileTokenStorage,
    MemoryTokenStorage,
    RequestOptions,
    RequestSpec,
    TokenStorage,
)
from .models import (
    AuthTokens,
    BaseUrlMissingError,
    ErrorEnvelope,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseEnvelope,
    ResponseParseError,
    TransportError,
)

__all__ = [
    "ApiClient",
    "AuthTokens",
    "BaseUrlMissingError",
    "CancellationSignal",
    "ClientConfig",
    "CredentialDecorator",
    "ErrorEnvelope",
    "FileTokenStorage",
    "HttpxTransport",
    "Interceptor",
    "InterceptorChain",
    "MemoryTokenStorage",
    "RequestCancelledError",
    "RequestOptions",
    "RequestPipeline",
    "RequestSpec",
    "RequestTimeoutError",
    "ResponseEnvelope",
    "ResponseNormalizer",
    "ResponseParseError",
    "RetryPolicy",
    "SanctumConfig",
    "TokenCoordinator",
    "TokenStorage",
    "Transport",
    "TransportError",
    "TransportRequest",
    "TransportResponse",
    "create_api",
    "create_sanctum_api",
    "resolve_config",
]
