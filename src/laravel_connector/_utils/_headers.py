from typing import Mapping, Optional

from httpx import Headers

from .constants import HEADER_ACCEPT, HEADER_CONTENT_TYPE, JSON_MEDIA_TYPE


def json_headers() -> dict[str, str]:
    return {
        HEADER_CONTENT_TYPE: JSON_MEDIA_TYPE,
        HEADER_ACCEPT: JSON_MEDIA_TYPE,
    }


def merge_headers(*layers: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Merge header mappings left to right; later layers win.

    Keys are compared case-insensitively, so ``accept`` in a later layer replaces
    ``Accept`` from an earlier one. The casing of the winning layer is kept.
    """
    merged = Headers()
    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            merged[name] = value

    return {
        name.decode(merged.encoding): value.decode(merged.encoding)
        for name, value in merged.raw
    }
