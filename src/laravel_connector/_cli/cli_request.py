import asyncio
import json
import logging
from typing import Any, Optional

import click
from dotenv import load_dotenv

from .._config import resolve_config
from .._connector import ApiClient
from .._utils._logs import setup_logging
from ..models.envelope import ResponseEnvelope
from ..models.errors import BaseUrlMissingError

logger = logging.getLogger(__name__)

load_dotenv()


def _split(value: str, separator: str, kind: str) -> tuple[str, str]:
    if separator not in value:
        raise click.BadParameter(
            f"Expected {kind} in the form NAME{separator}VALUE, got '{value}'"
        )
    name, item = value.split(separator, 1)
    return name.strip(), item


def parse_params(values: tuple[str, ...]) -> dict[str, Any]:
    """Repeated keys become lists, so ``-p id=1 -p id=2`` sends ``id`` twice."""
    params: dict[str, Any] = {}
    for value in values:
        name, item = _split(value, "=", "parameter")
        if name not in params:
            params[name] = item
        elif isinstance(params[name], list):
            params[name].append(item)
        else:
            params[name] = [params[name], item]
    return params


def parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, item = _split(value, ":", "header")
        headers[name] = item.strip()
    return headers


async def _run(
    client: ApiClient,
    method: str,
    path: str,
    body: Any,
    params: dict[str, Any],
    headers: dict[str, str],
) -> ResponseEnvelope[Any]:
    async with client:
        return await client.request(
            path,
            method=method,
            body=body,
            params=params or None,
            headers=headers or None,
        )


@click.command()
@click.argument(
    "method",
    type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False),
)
@click.argument("path")
@click.option("--base-url", help="API base URL (defaults to LARAVEL_CONNECTOR_URL)")
@click.option("--token", help="Bearer token (defaults to LARAVEL_CONNECTOR_TOKEN)")
@click.option("--data", "-d", help="JSON request body")
@click.option("--param", "-p", multiple=True, help="Query parameter as key=value")
@click.option("--header", "-H", multiple=True, help="Request header as Name:value")
@click.option("--timeout", type=float, help="Timeout in milliseconds")
@click.option("--retries", type=int, default=0, show_default=True, help="Retry count")
@click.option("--no-unwrap", is_flag=True, help="Keep a lone 'data' wrapper")
@click.option("--csrf", is_flag=True, help="Fetch the Sanctum CSRF cookie first")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def request(
    method: str,
    path: str,
    base_url: Optional[str],
    token: Optional[str],
    data: Optional[str],
    param: tuple[str, ...],
    header: tuple[str, ...],
    timeout: Optional[float],
    retries: int,
    no_unwrap: bool,
    csrf: bool,
    verbose: bool,
):
    """Send a request and print the response envelope as JSON."""
    setup_logging(should_debug=verbose)

    body = None
    if data is not None:
        try:
            body = json.loads(data)
        except ValueError as e:
            raise click.BadParameter(f"--data is not valid JSON: {e}") from e

    overrides: dict[str, Any] = {"retries": retries, "unwrap": not no_unwrap}
    if timeout is not None:
        overrides["timeout"] = timeout

    try:
        config = resolve_config(base_url, token, sanctum=csrf, **overrides)
    except BaseUrlMissingError as e:
        raise click.UsageError(e.message) from e

    params = parse_params(param)
    headers = parse_headers(header)

    logger.debug(f"Sending {method.upper()} {config.base_url}{path}")
    envelope = asyncio.run(
        _run(ApiClient(config), method.upper(), path, body, params, headers)
    )

    click.echo(json.dumps(envelope.model_dump(), indent=2, default=str))
    if not envelope.success:
        raise click.exceptions.Exit(1)
