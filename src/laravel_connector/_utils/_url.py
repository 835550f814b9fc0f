from typing import Any, Mapping, Optional

from httpx import URL, QueryParams


def _clean_params(params: Mapping[str, Any]) -> QueryParams:
    items: list[tuple[str, Any]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((key, item) for item in value if item is not None)
        else:
            items.append((key, value))
    return QueryParams(items)


def build_url(
    base_url: str, path: str, params: Optional[Mapping[str, Any]] = None
) -> URL:
    """Join ``path`` onto ``base_url`` and append the query parameters.

    ``None`` values are dropped and list values repeat the key
    (``ids=[1, 2]`` becomes ``ids=1&ids=2``).

    Examples:
        >>> str(build_url("https://api.test", "/users", {"page": 1, "q": None}))
        'https://api.test/users?page=1'
    """
    if path and not path.startswith("/"):
        path = f"/{path}"

    url = URL(f"{base_url}{path}")
    if params:
        url = url.copy_merge_params(_clean_params(params))
    return url
