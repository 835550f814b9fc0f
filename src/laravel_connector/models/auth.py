import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def expiry_from_now(expires_in: Optional[float]) -> Optional[int]:
    """Convert a relative lifetime in seconds into an epoch-milliseconds instant."""
    if not expires_in:
        return None
    return int(time.time() * 1000 + expires_in * 1000)


class AuthTokens(BaseModel):
    model_config = ConfigDict(
        validate_by_name=True,
        validate_by_alias=True,
    )

    token: str
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    expires_at: Optional[int] = Field(default=None, alias="expiresAt")

    def is_expired(self, now_ms: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        if now_ms is None:
            now_ms = time.time() * 1000
        return now_ms >= self.expires_at
