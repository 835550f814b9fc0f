import asyncio
import time

import pytest
from httpx import Cookies

from laravel_connector import (
    AuthTokens,
    ClientConfig,
    MemoryTokenStorage,
    SanctumConfig,
    TokenCoordinator,
    TransportError,
)
from tests.utils.fake_transport import FakeTransport, gated, hanging, make_response

CSRF_PATH = "/sanctum/csrf-cookie"
REFRESH_PATH = "/api/refresh"


def csrf_response(token: str = "csrf%2Btoken") -> object:
    return make_response(
        204, headers={"set-cookie": f"XSRF-TOKEN={token}; path=/; samesite=lax"}
    )


def expired_tokens(refresh_token: str | None = "refresh-1") -> AuthTokens:
    return AuthTokens(
        token="stale",
        refresh_token=refresh_token,
        expires_at=int(time.time() * 1000) - 1000,
    )


class TestCsrf:
    @pytest.mark.anyio
    async def test_acquire_reads_set_cookie_header(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add("GET", CSRF_PATH, csrf_response())
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        token = await coordinator.acquire_csrf()

        assert token == "csrf+token"
        assert coordinator.has_csrf()
        request = fake_transport.calls("GET", CSRF_PATH)[0]
        assert request.headers == {"Accept": "application/json"}
        assert request.credentials == "include"

    @pytest.mark.anyio
    async def test_acquire_prefers_cookie_jar(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        jar = Cookies()
        jar.set("XSRF-TOKEN", "from%3Djar", domain="api.test")
        fake_transport.add("GET", CSRF_PATH, csrf_response("from-header"))
        coordinator = TokenCoordinator(sanctum_config, fake_transport, cookie_jar=jar)

        assert await coordinator.acquire_csrf() == "from=jar"

    @pytest.mark.anyio
    async def test_cached_token_skips_network(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add("GET", CSRF_PATH, csrf_response())
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        await coordinator.acquire_csrf()
        await coordinator.acquire_csrf()

        assert len(fake_transport.calls("GET", CSRF_PATH)) == 1

    @pytest.mark.anyio
    async def test_disabled_does_no_io(
        self, config: ClientConfig, fake_transport: FakeTransport
    ):
        coordinator = TokenCoordinator(config, fake_transport)

        assert await coordinator.acquire_csrf() is None
        assert fake_transport.requests == []

    @pytest.mark.anyio
    async def test_concurrent_callers_share_one_fetch(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        gate = asyncio.Event()
        fake_transport.add("GET", CSRF_PATH, gated(csrf_response("shared"), gate))
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        waiters = [asyncio.ensure_future(coordinator.acquire_csrf()) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        tokens = await asyncio.gather(*waiters)

        assert tokens == ["shared"] * 5
        assert len(fake_transport.calls("GET", CSRF_PATH)) == 1

    @pytest.mark.anyio
    async def test_concurrent_failure_is_broadcast_and_retried_later(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add(
            "GET", CSRF_PATH, TransportError("connection refused"), csrf_response("ok")
        )
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        first_wave = await asyncio.gather(
            *(coordinator.acquire_csrf() for _ in range(3))
        )
        second = await coordinator.acquire_csrf()

        assert first_wave == [None, None, None]
        assert second == "ok"
        assert len(fake_transport.calls("GET", CSRF_PATH)) == 2

    @pytest.mark.anyio
    async def test_missing_cookie_is_not_cached(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add("GET", CSRF_PATH, make_response(204), csrf_response("late"))
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        assert await coordinator.acquire_csrf() is None
        assert not coordinator.has_csrf()
        assert await coordinator.acquire_csrf() == "late"

    @pytest.mark.anyio
    async def test_unauthorized_bootstrap_yields_none(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add(
            "GET",
            CSRF_PATH,
            make_response(401, headers={"set-cookie": "XSRF-TOKEN=ignored; path=/"}),
        )
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        assert await coordinator.acquire_csrf() is None
        assert not coordinator.has_csrf()

    @pytest.mark.anyio
    async def test_invalidate_forces_new_fetch(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        fake_transport.add("GET", CSRF_PATH, csrf_response("one"), csrf_response("two"))
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        assert await coordinator.acquire_csrf() == "one"
        coordinator.invalidate_csrf()
        assert not coordinator.has_csrf()
        assert await coordinator.acquire_csrf() == "two"

    @pytest.mark.anyio
    async def test_set_csrf_overrides(
        self, sanctum_config: SanctumConfig, fake_transport: FakeTransport
    ):
        coordinator = TokenCoordinator(sanctum_config, fake_transport)

        coordinator.set_csrf("manual")

        assert coordinator.has_csrf()
        assert await coordinator.acquire_csrf() == "manual"
        assert fake_transport.requests == []


class TestAuth:
    def test_is_expired(self, config: ClientConfig, fake_transport: FakeTransport):
        coordinator = TokenCoordinator(config, fake_transport)
        assert coordinator.is_expired() is False

        coordinator.set_tokens(AuthTokens(token="t"))
        assert coordinator.is_expired() is False

        coordinator.set_tokens(expired_tokens())
        assert coordinator.is_expired() is True

    def test_initial_token_from_config(
        self, base_url: str, fake_transport: FakeTransport
    ):
        coordinator = TokenCoordinator(
            ClientConfig(base_url=base_url, token="abc"), fake_transport
        )

        assert coordinator.token == "abc"
        assert coordinator.auth_headers() == {"Authorization": "Bearer abc"}
        assert coordinator.is_authenticated()

    def test_stored_tokens_are_loaded(
        self, base_url: str, fake_transport: FakeTransport
    ):
        storage = MemoryTokenStorage()
        storage.save(AuthTokens(token="persisted"))

        coordinator = TokenCoordinator(
            ClientConfig(base_url=base_url, token="ignored", token_storage=storage),
            fake_transport,
        )

        assert coordinator.token == "persisted"

    def test_clear_auth_removes_stored_tokens(
        self, base_url: str, fake_transport: FakeTransport
    ):
        storage = MemoryTokenStorage()
        coordinator = TokenCoordinator(
            ClientConfig(base_url=base_url, token_storage=storage), fake_transport
        )
        coordinator.set_token("abc", expires_in=60)
        assert storage.load() is not None

        coordinator.clear_auth()

        assert storage.load() is None
        assert coordinator.auth_headers() == {}

    @pytest.mark.anyio
    async def test_refresh_without_refresh_token_fails_fast(
        self, config: ClientConfig, fake_transport: FakeTransport
    ):
        coordinator = TokenCoordinator(config, fake_transport)
        coordinator.set_tokens(expired_tokens(refresh_token=None))

        assert await coordinator.refresh_auth() is False
        assert coordinator.token is None
        assert fake_transport.requests == []

    @pytest.mark.anyio
    async def test_refresh_success(self, base_url: str, fake_transport: FakeTransport):
        refreshed: list[str] = []

        async def on_token_refreshed(token: str) -> None:
            refreshed.append(token)

        fake_transport.add(
            "POST",
            REFRESH_PATH,
            make_response(200, json_body={"access_token": "fresh", "expires_in": 3600}),
        )
        coordinator = TokenCoordinator(
            ClientConfig(base_url=base_url, on_token_refreshed=on_token_refreshed),
            fake_transport,
        )
        coordinator.set_tokens(expired_tokens())

        assert await coordinator.refresh_auth() is True

        assert coordinator.token == "fresh"
        assert coordinator.tokens.refresh_token == "refresh-1"
        assert not coordinator.is_expired()
        assert refreshed == ["fresh"]
        request = fake_transport.calls("POST", REFRESH_PATH)[0]
        assert request.headers["Authorization"] == "Bearer refresh-1"

    @pytest.mark.anyio
    async def test_refresh_failure_clears_and_notifies(
        self, base_url: str, fake_transport: FakeTransport
    ):
        expired: list[bool] = []
        fake_transport.add("POST", REFRESH_PATH, make_response(401, json_body={}))
        coordinator = TokenCoordinator(
            ClientConfig(base_url=base_url, on_token_expired=lambda: expired.append(True)),
            fake_transport,
        )
        coordinator.set_tokens(expired_tokens())

        assert await coordinator.refresh_auth() is False
        assert coordinator.token is None
        assert expired == [True]

    @pytest.mark.anyio
    async def test_concurrent_refresh_is_single_flight(
        self, config: ClientConfig, fake_transport: FakeTransport
    ):
        gate = asyncio.Event()
        fake_transport.add(
            "POST",
            REFRESH_PATH,
            gated(make_response(200, json_body={"token": "fresh"}), gate),
        )
        coordinator = TokenCoordinator(config, fake_transport)
        coordinator.set_tokens(expired_tokens())

        waiters = [asyncio.ensure_future(coordinator.refresh_auth()) for _ in range(4)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters)

        assert results == [True] * 4
        assert len(fake_transport.calls("POST", REFRESH_PATH)) == 1
        assert coordinator.token == "fresh"

    @pytest.mark.anyio
    async def test_cancelled_waiter_does_not_abort_shared_refresh(
        self, config: ClientConfig, fake_transport: FakeTransport
    ):
        gate = asyncio.Event()
        fake_transport.add(
            "POST",
            REFRESH_PATH,
            gated(make_response(200, json_body={"token": "fresh"}), gate),
        )
        coordinator = TokenCoordinator(config, fake_transport)
        coordinator.set_tokens(expired_tokens())

        impatient = asyncio.ensure_future(coordinator.refresh_auth())
        patient = asyncio.ensure_future(coordinator.refresh_auth())
        await asyncio.sleep(0)
        impatient.cancel()
        gate.set()

        assert await patient is True
        assert impatient.cancelled()


class TestTimeouts:
    @pytest.mark.anyio
    async def test_stuck_csrf_fetch_yields_none_and_is_retried(
        self, base_url: str, fake_transport: FakeTransport
    ):
        fake_transport.add("GET", CSRF_PATH, hanging(), csrf_response("later"))
        coordinator = TokenCoordinator(
            SanctumConfig(base_url=base_url, timeout=30), fake_transport
        )

        assert await asyncio.wait_for(coordinator.acquire_csrf(), 2) is None
        assert not coordinator.has_csrf()
        assert await coordinator.acquire_csrf() == "later"

    @pytest.mark.anyio
    async def test_stuck_refresh_fails_and_notifies(
        self, base_url: str, fake_transport: FakeTransport
    ):
        expired: list[bool] = []
        fake_transport.add("POST", REFRESH_PATH, hanging())
        coordinator = TokenCoordinator(
            ClientConfig(
                base_url=base_url,
                timeout=30,
                on_token_expired=lambda: expired.append(True),
            ),
            fake_transport,
        )
        coordinator.set_tokens(expired_tokens())

        assert await asyncio.wait_for(coordinator.refresh_auth(), 2) is False
        assert coordinator.token is None
        assert expired == [True]
