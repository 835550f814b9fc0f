import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import (
    Any,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    TypeVar,
    Union,
    runtime_checkable,
)

from httpx import URL, AsyncClient, Cookies, Headers, RequestError, Timeout

from .._utils._cancellation import CancellationSignal
from .._utils._request_spec import CredentialsMode
from ..models.errors import (
    RequestCancelledError,
    RequestTimeoutError,
    TransportError,
)

T = TypeVar("T")


@dataclass
class TransportRequest:
    method: str
    url: Union[URL, str]
    headers: dict[str, str] = field(default_factory=dict)
    content: Union[str, bytes, None] = None
    credentials: CredentialsMode = "include"


@dataclass
class TransportResponse:
    status_code: int
    headers: Headers
    content: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@runtime_checkable
class CookieJar(Protocol):
    def get(self, name: str, default: Any = None) -> Any: ...


@runtime_checkable
class Transport(Protocol):
    """Sends one HTTP request and returns its status, headers and body.

    Implementations raise ``TransportError`` when no HTTP response is received.
    """

    async def send(self, request: TransportRequest) -> TransportResponse: ...


class HttpxTransport:
    """Transport backed by a single ``httpx.AsyncClient``.

    Cookies set by the server are kept in the client's jar. Requests made with
    ``credentials="same-origin"`` only carry them when the target shares the
    scheme, host and port of ``origin``.
    """

    def __init__(
        self,
        origin: Optional[str] = None,
        client: Optional[AsyncClient] = None,
        **client_kwargs: Any,
    ) -> None:
        self._logger = getLogger("laravel_connector")
        self._origin = URL(origin) if origin else None
        self._owns_client = client is None
        # deadlines are enforced by run_with_deadline, not by httpx
        client_kwargs.setdefault("timeout", Timeout(None))
        self._client = client or AsyncClient(**client_kwargs)

    @property
    def cookies(self) -> Cookies:
        return self._client.cookies

    def _same_origin(self, url: URL) -> bool:
        if self._origin is None:
            return True
        return (url.scheme, url.host, url.port) == (
            self._origin.scheme,
            self._origin.host,
            self._origin.port,
        )

    async def send(self, request: TransportRequest) -> TransportResponse:
        url = URL(str(request.url))
        http_request = self._client.build_request(
            request.method,
            url,
            headers=request.headers,
            content=request.content,
        )
        if request.credentials == "same-origin" and not self._same_origin(url):
            http_request.headers.pop("cookie", None)

        try:
            response = await self._client.send(http_request)
            content = await response.aread()
        except RequestError as e:
            self._logger.debug(f"Transport failure: {request.method} {url}: {e!r}")
            raise TransportError(str(e) or type(e).__name__) from e

        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=content,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def run_with_deadline(
    start: Callable[[], Awaitable[T]],
    timeout: float,
    signal: Optional[CancellationSignal] = None,
) -> T:
    """Race the awaitable produced by ``start`` against a signal and a timeout.

    ``timeout`` is in milliseconds. Raises ``RequestCancelledError`` when the
    signal fires first (or was already set) and ``RequestTimeoutError`` when the
    deadline passes; the pending work is cancelled in both cases. ``start`` is
    not called at all for an already cancelled signal.
    """
    if signal is not None and signal.cancelled:
        raise RequestCancelledError(signal.reason or "Request cancelled")

    work = asyncio.ensure_future(start())
    waiters: set[asyncio.Future[Any]] = {work}
    cancel_wait = None
    if signal is not None:
        cancel_wait = asyncio.ensure_future(signal.wait())
        waiters.add(cancel_wait)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout / 1000, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        if cancel_wait is not None:
            cancel_wait.cancel()
        if not work.done():
            work.cancel()

    # a set signal wins over work that completed in the same tick
    if signal is not None and signal.cancelled:
        await asyncio.gather(work, return_exceptions=True)
        raise RequestCancelledError(signal.reason or "Request cancelled")
    if work in done:
        return work.result()

    await asyncio.gather(work, return_exceptions=True)
    raise RequestTimeoutError(timeout)


async def send_with_deadline(
    transport: Transport,
    request: TransportRequest,
    timeout: float,
    signal: Optional[CancellationSignal] = None,
) -> TransportResponse:
    return await run_with_deadline(lambda: transport.send(request), timeout, signal)
