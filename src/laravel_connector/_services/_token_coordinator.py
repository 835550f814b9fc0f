import asyncio
import inspect
import json
import re
from logging import getLogger
from typing import Any, Optional
from urllib.parse import unquote

from .._config import ClientConfig
from .._utils._headers import json_headers
from .._utils._url import build_url
from .._utils.constants import (
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    HEADER_SET_COOKIE,
    JSON_MEDIA_TYPE,
    XSRF_COOKIE_NAME,
)
from ..models.auth import AuthTokens, expiry_from_now
from ._transport import CookieJar, Transport, TransportRequest, send_with_deadline

_XSRF_SET_COOKIE = re.compile(rf"{XSRF_COOKIE_NAME}=([^;]+)")


class TokenCoordinator:
    """Owns the CSRF token and the bearer token of one client.

    Concurrent callers that need a token which is not cached yet share one
    acquisition: the first caller starts a task, later callers await the same
    task. The task reference is dropped once it settles, whatever the outcome,
    so the next caller after a failure starts a fresh attempt. Both network
    calls are bounded by the configured ``timeout``; a call that runs out of time
    settles as a failure.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport,
        cookie_jar: Optional[CookieJar] = None,
    ) -> None:
        self._logger = getLogger("laravel_connector")
        self._config = config
        self._transport = transport
        self._cookie_jar = cookie_jar
        self._storage = config.token_storage

        self._csrf_token: Optional[str] = None
        self._csrf_task: Optional[asyncio.Task[Optional[str]]] = None

        self._tokens: Optional[AuthTokens] = None
        self._refresh_task: Optional[asyncio.Task[bool]] = None

        stored = self._storage.load()
        if stored is not None:
            self.set_tokens(stored, save=False)
        elif config.token:
            self.set_tokens(AuthTokens(token=config.token), save=False)

    # CSRF

    async def acquire_csrf(self) -> Optional[str]:
        if not self._config.use_csrf_token:
            return None
        if self._csrf_token:
            return self._csrf_token

        task = self._csrf_task
        if task is None:
            task = asyncio.ensure_future(self._fetch_csrf())
            self._csrf_task = task
            task.add_done_callback(self._release_csrf_task)

        # shielded so that one cancelled waiter does not abort the shared fetch
        return await asyncio.shield(task)

    def _release_csrf_task(self, task: "asyncio.Task[Optional[str]]") -> None:
        if self._csrf_task is task:
            self._csrf_task = None
            if not task.cancelled() and task.exception() is None and task.result():
                self._csrf_token = task.result()

    async def _fetch_csrf(self) -> Optional[str]:
        url = build_url(self._config.base_url, self._config.csrf_cookie_path)
        self._logger.debug(f"Requesting CSRF cookie: GET {url}")

        try:
            response = await send_with_deadline(
                self._transport,
                TransportRequest(
                    method="GET",
                    url=url,
                    headers={HEADER_ACCEPT: JSON_MEDIA_TYPE},
                    credentials="include",
                ),
                self._config.timeout,
            )
        except Exception as e:
            self._logger.error(f"CSRF Token request error: {e}")
            return None

        if not response.is_success:
            self._logger.warning(
                f"CSRF cookie request returned status {response.status_code}"
            )
            return None

        token = self._token_from_cookie_jar()
        if token is None:
            token = self._token_from_headers(response.headers.get_list(HEADER_SET_COOKIE))

        if token is None:
            self._logger.warning(f"No {XSRF_COOKIE_NAME} cookie in CSRF response")
        return token

    def _token_from_cookie_jar(self) -> Optional[str]:
        if self._cookie_jar is None:
            return None
        try:
            value = self._cookie_jar.get(XSRF_COOKIE_NAME)
        except Exception as e:
            # httpx raises CookieConflict when several domains hold the cookie
            self._logger.debug(f"Cookie jar lookup failed: {e}")
            return None
        return unquote(value) if value else None

    @staticmethod
    def _token_from_headers(set_cookie_values: list[str]) -> Optional[str]:
        for value in set_cookie_values:
            match = _XSRF_SET_COOKIE.search(value)
            if match and match.group(1):
                return unquote(match.group(1))
        return None

    def invalidate_csrf(self) -> None:
        self._csrf_token = None
        self._csrf_task = None

    def set_csrf(self, token: Optional[str]) -> None:
        self._csrf_token = token or None
        self._csrf_task = None

    def has_csrf(self) -> bool:
        return self._csrf_token is not None

    @property
    def csrf_token(self) -> Optional[str]:
        return self._csrf_token

    # Bearer token

    @property
    def tokens(self) -> Optional[AuthTokens]:
        return self._tokens

    @property
    def token(self) -> Optional[str]:
        return self._tokens.token if self._tokens else None

    def set_tokens(self, tokens: AuthTokens, save: bool = True) -> None:
        self._tokens = tokens
        if save:
            self._storage.save(tokens)

    def set_token(self, token: str, expires_in: Optional[float] = None) -> None:
        self.set_tokens(AuthTokens(token=token, expires_at=expiry_from_now(expires_in)))

    def clear_auth(self) -> None:
        self._tokens = None
        self._storage.clear()

    def is_expired(self) -> bool:
        return self._tokens is not None and self._tokens.is_expired()

    def is_authenticated(self) -> bool:
        return bool(self.token) and not self.is_expired()

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {HEADER_AUTHORIZATION: f"Bearer {self.token}"}

    async def refresh_auth(self) -> bool:
        task = self._refresh_task
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            self._refresh_task = task
            task.add_done_callback(self._release_refresh_task)

        return await asyncio.shield(task)

    def _release_refresh_task(self, task: "asyncio.Task[bool]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh(self) -> bool:
        refresh_token = self._tokens.refresh_token if self._tokens else None
        if not refresh_token:
            self._logger.debug("No refresh token held, clearing authentication")
            self.clear_auth()
            return False

        url = build_url(self._config.base_url, self._config.refresh_endpoint)
        self._logger.debug(f"Refreshing token: POST {url}")

        try:
            response = await send_with_deadline(
                self._transport,
                TransportRequest(
                    method="POST",
                    url=url,
                    headers={
                        **json_headers(),
                        HEADER_AUTHORIZATION: f"Bearer {refresh_token}",
                    },
                    credentials=self._config.credentials_mode,  # type: ignore[arg-type]
                ),
                self._config.timeout,
            )
            if not response.is_success:
                raise ValueError(
                    f"Token refresh failed with status {response.status_code}"
                )

            payload = json.loads(response.content)
            new_token = payload.get("token") or payload.get("access_token")
            if not new_token:
                raise ValueError("Token refresh response did not contain a token")

            tokens = AuthTokens(
                token=new_token,
                refresh_token=payload.get("refresh_token") or refresh_token,
                expires_at=expiry_from_now(payload.get("expires_in")),
            )
        except Exception as e:
            self._logger.error(f"Token refresh error: {e}")
            self.clear_auth()
            await self._notify(self._config.on_token_expired)
            return False

        self.set_tokens(tokens)
        self._logger.debug("Token refreshed")
        await self._notify(self._config.on_token_refreshed, tokens.token)
        return True

    async def _notify(self, callback: Any, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.exception(f"Token callback failed: {e}")
