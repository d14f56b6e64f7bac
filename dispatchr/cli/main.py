"""
Dispatchr CLI - inspect providers and routing decisions.

Command Structure: dispatchr <noun> <verb> [options]

Examples:
    dispatchr providers list --catalog providers.yaml
    dispatchr providers health --catalog providers.yaml
    dispatchr rank --catalog providers.yaml --strategy balanced --units 1200
    dispatchr select --catalog providers.yaml --require vision
    dispatchr config show
"""

import logging
from pathlib import Path
from typing import Optional

import click

from dispatchr import __version__
from dispatchr.core.settings import Settings


@click.group()
@click.version_option(version=__version__, prog_name="Dispatchr")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: .dispatchr/config.yaml or ~/.dispatchr/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """
    Dispatchr - provider selection and fallback.
    """
    settings = Settings.load(config_path=Path(config_path) if config_path else None, reset_singleton=True)
    level = logging.DEBUG if verbose else getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    ctx.obj = settings


# Import command groups
from dispatchr.cli.commands import config, providers, routing  # noqa: E402

cli.add_command(providers.providers)
cli.add_command(routing.rank)
cli.add_command(routing.select)
cli.add_command(config.config)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
