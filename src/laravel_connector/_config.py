from os import environ as env
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._utils._storage import MemoryTokenStorage, TokenStorage
from ._utils.constants import (
    DEFAULT_CSRF_COOKIE_PATH,
    DEFAULT_REFRESH_ENDPOINT,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    ENV_ACCESS_TOKEN,
    ENV_BASE_URL,
)
from .models.errors import BaseUrlMissingError

TokenExpiredCallback = Callable[[], Union[None, Awaitable[None]]]
TokenRefreshedCallback = Callable[[str], Union[None, Awaitable[None]]]


class ClientConfig(BaseModel):
    """Settings shared by every request a client makes.

    ``timeout`` and ``retry_delay`` are expressed in milliseconds.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    base_url: str
    headers: dict[str, str] = Field(default_factory=dict)
    with_credentials: bool = True

    use_csrf_token: bool = False
    csrf_cookie_path: str = DEFAULT_CSRF_COOKIE_PATH

    token: Optional[str] = None
    auto_refresh: bool = False
    refresh_endpoint: str = DEFAULT_REFRESH_ENDPOINT
    on_token_expired: Optional[TokenExpiredCallback] = None
    on_token_refreshed: Optional[TokenRefreshedCallback] = None
    token_storage: TokenStorage = Field(default_factory=MemoryTokenStorage)

    unwrap: bool = True
    timeout: float = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    retries: int = Field(default=0, ge=0)
    retry_delay: float = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("base_url cannot be empty")
        return value.rstrip("/")

    @property
    def credentials_mode(self) -> str:
        return "include" if self.with_credentials else "same-origin"


class SanctumConfig(ClientConfig):
    """Configuration for cookie-based Laravel Sanctum sessions."""

    use_csrf_token: bool = True


def resolve_config(
    base_url: Optional[str] = None,
    token: Optional[str] = None,
    *,
    sanctum: bool = False,
    **overrides: Any,
) -> ClientConfig:
    base_url_value = base_url or env.get(ENV_BASE_URL)
    if not base_url_value:
        raise BaseUrlMissingError()

    token_value = token or env.get(ENV_ACCESS_TOKEN)

    config_class = SanctumConfig if sanctum else ClientConfig
    return config_class(base_url=base_url_value, token=token_value, **overrides)
