"""Config commands - show and validate configuration."""

import json

import click
from rich.console import Console

from dispatchr.core.settings import Settings

console = Console()


@click.group()
def config():
    """Show and validate configuration."""
    pass


@config.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show(settings: Settings, as_json: bool):
    """
    Show the effective configuration and where each override came from.

    Example:
        dispatchr config show
    """
    if as_json:
        click.echo(json.dumps(settings.to_dict(), indent=2, default=str))
        return
    click.echo(settings.show())


@config.command()
@click.pass_obj
def validate(settings: Settings):
    """
    Validate configuration values.

    Example:
        dispatchr config validate
    """
    errors = settings.validate()
    if errors:
        for error in errors:
            console.print(f"[red]✗[/red] {error}")
        raise click.Abort()
    console.print("[green]✓[/green] Configuration is valid")
