import sys
from pathlib import Path
from typing import Awaitable, Callable

import pytest
from click.testing import CliRunner

from laravel_connector import ApiClient, ClientConfig, SanctumConfig
from tests.utils.fake_transport import FakeTransport

# Ensure local source package (src/laravel_connector) is importable before tests collect
_PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
_SRC_PATH: Path = _PROJECT_ROOT / "src"
if _SRC_PATH.exists():
    sys.path.insert(0, str(_SRC_PATH))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    monkeypatch.delenv("LARAVEL_CONNECTOR_URL", raising=False)
    monkeypatch.delenv("LARAVEL_CONNECTOR_TOKEN", raising=False)


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def base_url() -> str:
    return "https://api.test"


@pytest.fixture
def config(base_url: str) -> ClientConfig:
    return ClientConfig(base_url=base_url)


@pytest.fixture
def sanctum_config(base_url: str) -> SanctumConfig:
    return SanctumConfig(base_url=base_url)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Awaitable[None]]:
    """Records backoff pauses instead of waiting."""

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return sleep


@pytest.fixture
def client_factory(
    fake_transport: FakeTransport, fake_sleep: Callable[[float], Awaitable[None]]
) -> Callable[..., ApiClient]:
    def factory(config: ClientConfig) -> ApiClient:
        return ApiClient(config, fake_transport, sleep=fake_sleep)

    return factory
