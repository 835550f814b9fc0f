from ._credentials import CredentialDecorator
from ._interceptors import Interceptor, InterceptorChain
from ._normalizer import ResponseNormalizer
from ._pipeline import RequestPipeline
from ._retry_policy import RetryPolicy, is_retryable_status
from ._token_coordinator import TokenCoordinator
from ._transport import (
    CookieJar,
    HttpxTransport,
    Transport,
    TransportRequest,
    TransportResponse,
    run_with_deadline,
    send_with_deadline,
)

__all__ = [
    "CookieJar",
    "CredentialDecorator",
    "HttpxTransport",
    "Interceptor",
    "InterceptorChain",
    "RequestPipeline",
    "ResponseNormalizer",
    "RetryPolicy",
    "TokenCoordinator",
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "is_retryable_status",
    "run_with_deadline",
    "send_with_deadline",
]
