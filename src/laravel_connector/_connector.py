import json
from logging import getLogger
from typing import Any, Mapping, Optional, Union

from ._config import ClientConfig, SanctumConfig
from ._services._credentials import CredentialDecorator
from ._services._interceptors import InterceptorChain
from ._services._pipeline import RequestPipeline
from ._services._retry_policy import Sleep
from ._services._token_coordinator import TokenCoordinator
from ._services._transport import CookieJar, HttpxTransport, Transport
from ._utils._cancellation import CancellationSignal
from ._utils._request_spec import RequestOptions
from .models.auth import AuthTokens
from .models.envelope import ResponseEnvelope


def _serialize_body(body: Any) -> Union[str, bytes, None]:
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


class ApiClient:
    """Asynchronous client for JSON APIs.

    Every call returns a ``ResponseEnvelope``; HTTP errors, network failures,
    timeouts and cancellations are reported through ``success`` and ``status``
    instead of being raised.

    Example:
        ```python
        async with create_sanctum_api(SanctumConfig(base_url="https://api.test")) as api:
            login = await api.post("/login", {"email": email, "password": password})
            if login.success:
                user = await api.get("/api/user")
        ```
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        *,
        cookie_jar: Optional[CookieJar] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._logger = getLogger("laravel_connector")
        self._config = config

        self._owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport(origin=config.base_url)
        if cookie_jar is None:
            cookie_jar = getattr(transport, "cookies", None)
        self._transport = transport

        self.interceptors = InterceptorChain()
        self._pipeline = RequestPipeline(
            config, transport, self.interceptors, sleep=sleep
        )
        self._coordinator = TokenCoordinator(config, transport, cookie_jar)
        self._credentials = CredentialDecorator(self._pipeline, self._coordinator)

        self._logger.debug(f"Client created for {config.base_url}")

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def tokens(self) -> TokenCoordinator:
        return self._coordinator

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        skip_retry: bool = False,
        skip_auth: bool = False,
        signal: Optional[CancellationSignal] = None,
    ) -> ResponseEnvelope[Any]:
        options = RequestOptions(
            method=method.upper(),
            params=dict(params) if params else None,
            headers=dict(headers) if headers else None,
            body=_serialize_body(body),
            timeout=timeout,
            skip_retry=skip_retry,
            skip_auth=skip_auth,
            signal=signal,
        )
        return await self._credentials.execute(path, options)

    async def get(self, path: str, **options: Any) -> ResponseEnvelope[Any]:
        return await self.request(path, method="GET", **options)

    async def post(
        self, path: str, body: Any = None, **options: Any
    ) -> ResponseEnvelope[Any]:
        return await self.request(path, method="POST", body=body, **options)

    async def put(
        self, path: str, body: Any = None, **options: Any
    ) -> ResponseEnvelope[Any]:
        return await self.request(path, method="PUT", body=body, **options)

    async def patch(
        self, path: str, body: Any = None, **options: Any
    ) -> ResponseEnvelope[Any]:
        return await self.request(path, method="PATCH", body=body, **options)

    async def delete(self, path: str, **options: Any) -> ResponseEnvelope[Any]:
        return await self.request(path, method="DELETE", **options)

    async def initialize(self) -> Optional[str]:
        """Fetch the CSRF cookie ahead of the first state-changing request."""
        return await self._coordinator.acquire_csrf()

    def clear_csrf_token(self) -> None:
        self._coordinator.invalidate_csrf()

    def set_csrf_token(self, token: Optional[str]) -> None:
        self._coordinator.set_csrf(token)

    def has_csrf_token(self) -> bool:
        return self._coordinator.has_csrf()

    def set_auth_tokens(self, tokens: AuthTokens, save: bool = True) -> None:
        self._coordinator.set_tokens(tokens, save=save)

    def set_token(self, token: str, expires_in: Optional[float] = None) -> None:
        self._coordinator.set_token(token, expires_in)

    def get_token(self) -> Optional[str]:
        return self._coordinator.token

    def is_authenticated(self) -> bool:
        return self._coordinator.is_authenticated()

    def clear_auth(self) -> None:
        self._coordinator.clear_auth()

    def set_default_headers(self, headers: Mapping[str, str]) -> None:
        self._pipeline.set_default_headers(headers)

    @property
    def default_headers(self) -> dict[str, str]:
        return dict(self._pipeline.default_headers)

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_api(config: ClientConfig, **kwargs: Any) -> ApiClient:
    return ApiClient(config, **kwargs)


def create_sanctum_api(config: ClientConfig, **kwargs: Any) -> ApiClient:
    """Build a client for a Sanctum SPA backend.

    A plain ``ClientConfig`` is upgraded to a ``SanctumConfig`` so the CSRF cookie
    is used unless the caller explicitly turned it off.
    """
    if not isinstance(config, SanctumConfig):
        values = {name: getattr(config, name) for name in config.model_fields_set}
        values.setdefault("use_csrf_token", True)
        config = SanctumConfig(**values)
    return ApiClient(config, **kwargs)
