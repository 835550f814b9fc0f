from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    """Uniform result of every request made through the client.

    ``status`` is ``None`` when no HTTP response was received (network failure,
    timeout or cancellation).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: Optional[T] = None
    errors: Any = None
    success: bool
    status: Optional[int] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ResponseEnvelope[T]":
        if self.success:
            if self.status is None:
                raise ValueError("a successful envelope requires an HTTP status")
            if self.errors is not None:
                raise ValueError("a successful envelope cannot carry errors")
        elif self.data is not None:
            raise ValueError("a failed envelope cannot carry data")
        return self

    @classmethod
    def ok(cls, data: Any, status: int) -> "ResponseEnvelope[Any]":
        return cls(data=data, errors=None, success=True, status=status)

    @classmethod
    def fail(cls, errors: Any, status: Optional[int] = None) -> "ResponseEnvelope[Any]":
        return cls(data=None, errors=errors, success=False, status=status)


class ErrorEnvelope(BaseModel):
    """Describes a failed attempt before error interceptors see it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: str
    status: Optional[int] = None
    errors: Any = None
    data: Any = None
