import click

from .cli_request import request


@click.group()
@click.version_option(package_name="laravel-connector")
def cli() -> None:
    """Command line access to JSON APIs through laravel-connector."""


cli.add_command(request)

__all__ = ["cli"]
