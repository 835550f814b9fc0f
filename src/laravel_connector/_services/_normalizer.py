import json
from typing import Any, Optional

from ..models.envelope import ErrorEnvelope, ResponseEnvelope
from ..models.errors import ResponseParseError
from ._transport import TransportResponse

UNKNOWN_ERROR = "Unknown error"


def is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def unwrap_data(body: Any) -> Any:
    """Strip a lone ``data`` wrapper: ``{"data": x}`` becomes ``x``.

    ``{"data": null}`` is kept as is so a successful envelope never carries
    ``None`` as its data.
    """
    if isinstance(body, dict) and len(body) == 1 and body.get("data") is not None:
        return body["data"]
    return body


class ResponseNormalizer:
    """Turns transport results into the envelopes callers receive."""

    def __init__(self, unwrap: bool = True) -> None:
        self.unwrap = unwrap

    def parse_body(self, response: TransportResponse) -> Any:
        if not response.content:
            return ""

        if not is_json_content_type(response.content_type):
            return response.text

        try:
            return json.loads(response.content)
        except ValueError as e:
            raise ResponseParseError(f"Invalid JSON response: {e}") from e

    def success(self, status: int, body: Any) -> ResponseEnvelope[Any]:
        data = unwrap_data(body) if self.unwrap else body
        return ResponseEnvelope.ok(data, status)

    def error_from_response(self, status: int, body: Any) -> ErrorEnvelope:
        message = None
        errors = None
        if isinstance(body, dict):
            message = body.get("message")
            errors = body.get("errors")

        return ErrorEnvelope(
            message=str(message) if message else f"Request failed with status {status}",
            status=status,
            errors=errors,
            data=body,
        )

    def error_from_exception(self, exc: BaseException) -> ErrorEnvelope:
        return ErrorEnvelope(message=str(exc) or "Request error", status=None)

    def failure(self, error: ErrorEnvelope) -> ResponseEnvelope[Any]:
        """Pick the most specific description available for ``errors``.

        Structured ``errors`` win, then the body's ``message`` field, then the
        raw body, then the message of a transport failure.
        """
        if error.errors:
            errors: Any = error.errors
        elif isinstance(error.data, dict) and error.data.get("message"):
            errors = error.data["message"]
        elif error.data:
            errors = error.data
        elif error.status is None and error.message:
            errors = error.message
        else:
            errors = UNKNOWN_ERROR

        return ResponseEnvelope.fail(errors, error.status)
