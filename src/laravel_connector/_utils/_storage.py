import json
import os
from logging import getLogger
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from ..models.auth import AuthTokens
from .constants import DEFAULT_TOKEN_KEY

logger = getLogger("laravel_connector")


@runtime_checkable
class TokenStorage(Protocol):
    """Where bearer tokens are persisted between client instances."""

    def load(self) -> Optional[AuthTokens]: ...

    def save(self, tokens: AuthTokens) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    def __init__(self) -> None:
        self._tokens: Optional[AuthTokens] = None

    def load(self) -> Optional[AuthTokens]:
        return self._tokens

    def save(self, tokens: AuthTokens) -> None:
        self._tokens = tokens

    def clear(self) -> None:
        self._tokens = None


class FileTokenStorage:
    """Stores tokens under ``token_key`` in a JSON document on disk.

    Other keys in the document are preserved, so several clients can share one
    file as long as they use distinct keys. Read and write failures are logged
    and otherwise ignored.
    """

    def __init__(
        self, path: Union[str, os.PathLike], token_key: str = DEFAULT_TOKEN_KEY
    ) -> None:
        self.path = Path(path).expanduser()
        self.token_key = token_key

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r") as f:
            contents = json.load(f)
        return contents if isinstance(contents, dict) else {}

    def _write(self, contents: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(contents, f, indent=2)

    def load(self) -> Optional[AuthTokens]:
        try:
            stored = self._read().get(self.token_key)
            if not stored:
                return None
            return AuthTokens.model_validate(stored)
        except Exception as e:
            logger.error(f"Error loading token from {self.path}: {e}")
            return None

    def save(self, tokens: AuthTokens) -> None:
        try:
            contents = self._read()
            contents[self.token_key] = tokens.model_dump(
                by_alias=True, exclude_none=True
            )
            self._write(contents)
        except Exception as e:
            logger.error(f"Error saving token to {self.path}: {e}")

    def clear(self) -> None:
        try:
            contents = self._read()
            if self.token_key in contents:
                del contents[self.token_key]
                self._write(contents)
        except Exception as e:
            logger.error(f"Error removing token from {self.path}: {e}")
