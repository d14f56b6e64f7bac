"""Provider catalog CLI commands.

Provides commands for viewing catalog providers:
- dispatchr providers list - Show providers and their capabilities
- dispatchr providers health - Probe providers and show aggregate health
"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dispatchr.cli.async_runner import run_async_command
from dispatchr.core.errors import DispatchrError
from dispatchr.core.settings import Settings
from dispatchr.providers.registry import ProviderRegistry, load_provider_catalog
from dispatchr.routing.orchestrator import build_dispatcher

console = Console()

catalog_option = click.option(
    "--catalog",
    type=click.Path(dir_okay=False),
    default=None,
    help="Provider catalog (YAML/JSON). Defaults to the provider_catalog setting.",
)


def load_registry(catalog: Optional[str], settings: Settings) -> ProviderRegistry:
    """Load the registry from --catalog or the configured catalog, aborting on errors."""
    path = catalog or settings.provider_catalog
    if not path:
        console.print("[red]No provider catalog given.[/red] Use --catalog or set DISPATCHR_PROVIDER_CATALOG.")
        raise click.Abort()
    try:
        return ProviderRegistry(load_provider_catalog(path))
    except DispatchrError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise click.Abort()


def format_features(features) -> str:
    names = sorted(f.value for f in features)
    return ", ".join(names) if names else "-"


@click.group()
def providers():
    """Provider catalog inspection."""
    pass


@providers.command(name="list")
@catalog_option
@click.pass_obj
def list_providers(settings: Settings, catalog: Optional[str]):
    """Show providers and their capabilities."""
    registry = load_registry(catalog, settings)

    if not len(registry):
        console.print("[dim]Catalog has no providers[/dim]")
        return

    table = Table(title=f"Providers ({len(registry)})")
    table.add_column("Provider", style="cyan")
    table.add_column("Available", justify="center")
    table.add_column("Cost/Unit", justify="right")
    table.add_column("Cost/Request", justify="right")
    table.add_column("Max Units", justify="right")
    table.add_column("Avg Response", justify="right")
    table.add_column("Features")

    available = {p.name for p in registry.available()}
    for provider in registry:
        caps = provider.capabilities
        table.add_row(
            provider.name,
            "[green]●[/green]" if provider.name in available else "[red]●[/red]",
            f"${caps.cost_per_unit:.6f}",
            f"${caps.cost_per_request:.4f}",
            f"{caps.max_units_per_request:,}",
            f"{caps.average_response_time:.2f}s",
            format_features(caps.features),
        )

    console.print(table)


@providers.command()
@catalog_option
@click.pass_obj
def health(settings: Settings, catalog: Optional[str]):
    """Probe available providers and show aggregate health."""
    registry = load_registry(catalog, settings)
    timeout = settings.routing.default_timeout
    try:
        dispatcher = build_dispatcher(registry, settings=settings)
        service = run_async_command(dispatcher.get_service_health(), timeout=timeout)
    except DispatchrError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise click.Abort()
    except asyncio.TimeoutError:
        console.print(f"[red]Error:[/red] Health probes did not finish within {timeout:g}s")
        raise click.Abort()

    color = "green" if service.healthy_count == service.total_count and service.total_count else (
        "yellow" if service.is_healthy else "red"
    )
    console.print(
        Panel(
            f"[bold]Provider Health Summary[/bold]\n\n"
            f"Healthy: [{color}]{service.healthy_count}/{service.total_count}[/{color}]\n"
            f"Success Rate: {service.success_rate:.1f}%",
            title="Service Health",
        )
    )

    if not service.providers:
        console.print("\n[dim]No available providers to probe[/dim]")
        return

    table = Table(title="Provider Health")
    table.add_column("Provider", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Detail")

    for name, status in sorted(service.providers.items()):
        icon = "[green]●[/green]" if status.is_healthy else "[red]●[/red]"
        table.add_row(name, icon, status.status)

    console.print(table)
