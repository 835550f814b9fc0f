from ._cancellation import CancellationSignal
from ._headers import json_headers, merge_headers
from ._logs import setup_logging
from ._request_spec import RequestOptions, RequestSpec
from ._storage import FileTokenStorage, MemoryTokenStorage, TokenStorage
from ._url import build_url

__all__ = [
    "CancellationSignal",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "RequestOptions",
    "RequestSpec",
    "TokenStorage",
    "build_url",
    "json_headers",
    "merge_headers",
    "setup_logging",
]
