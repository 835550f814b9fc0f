import asyncio
from dataclasses import replace
from logging import getLogger
from typing import Any, Callable, Mapping, Optional

from .._config import ClientConfig
from .._utils._cancellation import CancellationSignal
from .._utils._headers import json_headers, merge_headers
from .._utils._request_spec import RequestOptions, RequestSpec
from .._utils._url import build_url
from .._utils.constants import AUTH_REJECTION_STATUS_CODES
from ..models.envelope import ErrorEnvelope, ResponseEnvelope
from ..models.errors import RequestCancelledError, ResponseParseError, TransportError
from ._interceptors import InterceptorChain
from ._normalizer import ResponseNormalizer
from ._retry_policy import AttemptOutcome, RetryPolicy, Sleep, is_retryable_status
from ._transport import Transport, TransportRequest, send_with_deadline

AuthRejectedHook = Callable[[int], None]


class RequestPipeline:
    """Executes requests against one transport and always returns an envelope.

    The pipeline knows nothing about credentials; a ``CredentialDecorator`` adds
    them through ``credential_headers`` and ``on_auth_rejected``.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport,
        interceptors: Optional[InterceptorChain] = None,
        *,
        on_auth_rejected: Optional[AuthRejectedHook] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._logger = getLogger("laravel_connector")
        self._config = config
        self._transport = transport
        self.interceptors = interceptors if interceptors is not None else InterceptorChain()
        self.on_auth_rejected = on_auth_rejected
        self.default_headers: dict[str, str] = dict(config.headers)
        self.retry_policy = RetryPolicy(config.retries, config.retry_delay)
        self.normalizer = ResponseNormalizer(unwrap=config.unwrap)
        self._sleep = sleep or asyncio.sleep

    @property
    def config(self) -> ClientConfig:
        return self._config

    def set_default_headers(self, headers: Mapping[str, str]) -> None:
        self.default_headers = merge_headers(self.default_headers, headers)

    def build_spec(
        self,
        path: str,
        options: RequestOptions,
        credential_headers: Optional[Mapping[str, str]] = None,
    ) -> RequestSpec:
        return RequestSpec(
            path=path,
            method=(options.method or "GET").upper(),
            headers=merge_headers(
                json_headers(),
                self.default_headers,
                options.headers,
                credential_headers,
            ),
            params=options.params,
            body=options.body,
            timeout=options.timeout if options.timeout is not None else self._config.timeout,
            skip_retry=options.skip_retry,
            signal=options.signal,
            credentials=self._config.credentials_mode,  # type: ignore[arg-type]
        )

    async def execute(
        self,
        path: str,
        options: Optional[RequestOptions] = None,
        credential_headers: Optional[Mapping[str, str]] = None,
    ) -> ResponseEnvelope[Any]:
        options = options or RequestOptions()
        spec = self.build_spec(path, options, credential_headers)
        retrying = self.retry_policy.retrying(
            skip_retry=spec.skip_retry, sleep=self._backoff(spec.signal)
        )

        try:
            outcome: AttemptOutcome = await retrying(self._attempt, spec)
        except RequestCancelledError as e:
            self._logger.debug(f"Request aborted: {spec.method} {path}: {e.message}")
            return ResponseEnvelope.fail(e.message, None)

        return outcome.envelope

    def _backoff(self, signal: Optional[CancellationSignal]) -> Sleep:
        async def sleep(seconds: float) -> None:
            if signal is None:
                await self._sleep(seconds)
                return

            pause = asyncio.ensure_future(self._sleep(seconds))
            cancel_wait = asyncio.ensure_future(signal.wait())
            try:
                await asyncio.wait(
                    {pause, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                pause.cancel()
                cancel_wait.cancel()
            if signal.cancelled:
                raise RequestCancelledError(signal.reason or "Request cancelled")

        return sleep

    async def _attempt(self, spec: RequestSpec) -> AttemptOutcome:
        prepared = await self.interceptors.run_request(
            replace(spec, headers=dict(spec.headers))
        )
        url = build_url(self._config.base_url, prepared.path, prepared.params)

        self._logger.debug(f"Request: {prepared.method} {url}")
        self._logger.debug(f"HEADERS: {prepared.headers}")

        request = TransportRequest(
            method=prepared.method,
            url=url,
            headers=prepared.headers,
            content=prepared.body,
            credentials=prepared.credentials,
        )

        try:
            response = await send_with_deadline(
                self._transport,
                request,
                prepared.timeout if prepared.timeout is not None else self._config.timeout,
                prepared.signal,
            )
            body = self.normalizer.parse_body(response)
        except ResponseParseError as e:
            error = await self.interceptors.run_error(
                self.normalizer.error_from_exception(e)
            )
            return AttemptOutcome(self.normalizer.failure(error), retryable=False)
        except TransportError as e:
            self._logger.debug(f"Network failure: {prepared.method} {url}: {e}")
            error = await self.interceptors.run_error(
                self.normalizer.error_from_exception(e)
            )
            return AttemptOutcome(self.normalizer.failure(error), retryable=True)

        if response.is_success:
            envelope = self.normalizer.success(response.status_code, body)
            envelope = await self.interceptors.run_response(envelope)
            return AttemptOutcome(envelope, retryable=False)

        return await self._handle_error_response(response.status_code, body)

    async def _handle_error_response(self, status: int, body: Any) -> AttemptOutcome:
        error: ErrorEnvelope = await self.interceptors.run_error(
            self.normalizer.error_from_response(status, body)
        )

        if status in AUTH_REJECTION_STATUS_CODES and self.on_auth_rejected is not None:
            self.on_auth_rejected(status)

        return AttemptOutcome(
            self.normalizer.failure(error), retryable=is_retryable_status(status)
        )
