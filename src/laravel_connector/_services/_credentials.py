from dataclasses import replace
from logging import getLogger
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from .._utils._headers import merge_headers
from .._utils._request_spec import RequestOptions
from .._utils.constants import HEADER_XSRF_TOKEN, STATE_CHANGING_METHODS
from ..models.envelope import ResponseEnvelope
from ..models.errors import RequestCancelledError
from ._pipeline import RequestPipeline
from ._token_coordinator import TokenCoordinator
from ._transport import run_with_deadline

TOKEN_REFRESH_FAILED = "Token expired and refresh failed"

T = TypeVar("T")


class CredentialDecorator:
    """Adds CSRF and bearer-token handling around a ``RequestPipeline``.

    Before delegating it fetches the CSRF cookie for state-changing methods,
    refreshes an expired bearer token and injects both as headers. A 401 answer
    triggers a single refresh and one re-issue of the call with ``skip_auth`` set,
    so a second 401 is returned to the caller unchanged.

    Waiting for a credential counts against the call's ``timeout`` and honours
    its ``signal``, the same way the request itself does. Giving up only ends
    this call's wait; the shared acquisition keeps running for other callers.
    """

    def __init__(self, pipeline: RequestPipeline, coordinator: TokenCoordinator) -> None:
        self._logger = getLogger("laravel_connector")
        self.pipeline = pipeline
        self.coordinator = coordinator
        self._config = pipeline.config
        pipeline.on_auth_rejected = self._on_auth_rejected

    def _on_auth_rejected(self, status: int) -> None:
        self._logger.debug(f"Received {status}, dropping cached CSRF token")
        self.coordinator.invalidate_csrf()

    async def _wait_for(
        self, start: Callable[[], Awaitable[T]], options: RequestOptions
    ) -> T:
        timeout = options.timeout if options.timeout is not None else self._config.timeout
        return await run_with_deadline(start, timeout, options.signal)

    async def credential_headers(
        self, method: str, options: Optional[RequestOptions] = None
    ) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._config.use_csrf_token and method in STATE_CHANGING_METHODS:
            csrf_token = await self._wait_for(
                self.coordinator.acquire_csrf, options or RequestOptions(method=method)
            )
            if csrf_token:
                headers[HEADER_XSRF_TOKEN] = csrf_token
        return headers

    async def execute(
        self,
        path: str,
        options: Optional[RequestOptions] = None,
        credential_headers: Optional[Mapping[str, str]] = None,
    ) -> ResponseEnvelope[Any]:
        options = options or RequestOptions()
        method = (options.method or "GET").upper()
        auto_refresh = self._config.auto_refresh and not options.skip_auth

        try:
            headers = await self.credential_headers(method, options)

            if auto_refresh and self.coordinator.is_expired():
                self._logger.debug("Token expired, refreshing before request")
                if not await self._wait_for(self.coordinator.refresh_auth, options):
                    return ResponseEnvelope.fail(TOKEN_REFRESH_FAILED, 401)

            envelope = await self.pipeline.execute(
                path,
                options,
                merge_headers(headers, self.coordinator.auth_headers(), credential_headers),
            )

            if envelope.status == 401 and auto_refresh:
                self._logger.debug(f"Received 401 for {method} {path}, refreshing token")
                if await self._wait_for(self.coordinator.refresh_auth, options):
                    return await self.execute(path, replace(options, skip_auth=True))
        except RequestCancelledError as e:
            self._logger.debug(f"Credential wait aborted: {method} {path}: {e.message}")
            return ResponseEnvelope.fail(e.message, None)

        return envelope
