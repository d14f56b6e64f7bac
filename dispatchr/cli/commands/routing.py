"""Routing CLI commands.

- dispatchr rank - Show the full ranking for a request, with scores
- dispatchr select - Show the provider a request would go to, with a cost estimate
"""

import json
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from dispatchr.cli.commands.providers import catalog_option, format_features, load_registry
from dispatchr.core.errors import DispatchrError, RoutingError
from dispatchr.core.settings import Settings
from dispatchr.providers.base import Feature
from dispatchr.routing.models import RequestDescriptor, Strategy
from dispatchr.routing.scoring import strategy_score
from dispatchr.routing.selector import ProviderSelector

console = Console()

STRATEGY_CHOICES = [s.value for s in Strategy]
FEATURE_CHOICES = [f.value for f in Feature]


def request_options(func):
    """Shared options describing the request to route."""
    options = [
        catalog_option,
        click.option("--strategy", type=click.Choice(STRATEGY_CHOICES), default=None,
                     help="Selection strategy (default: routing.strategy setting)"),
        click.option("--units", type=click.IntRange(min=0), default=None, help="Estimated request size in units"),
        click.option("--text", default=None, help="Estimate units from this text (~4 characters per unit)"),
        click.option("--require", "required", multiple=True, type=click.Choice(FEATURE_CHOICES),
                     help="Required feature (repeatable)"),
        click.option("--prefer", default=None, help="Preferred provider name"),
        click.option("--routing-key", default=None, help="Key for load-balanced selection"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_request(
    units: Optional[int],
    text: Optional[str],
    required: Tuple[str, ...],
    prefer: Optional[str],
    routing_key: Optional[str],
) -> RequestDescriptor:
    kwargs = {
        "required_features": required,
        "preferred_provider": prefer,
        "routing_key": routing_key,
    }
    if units is not None:
        kwargs["estimated_units"] = units
    if text is not None:
        return RequestDescriptor.from_text(text, **kwargs)
    return RequestDescriptor(**kwargs)


def build_selector(settings: Settings, catalog: Optional[str], strategy: Optional[str]) -> ProviderSelector:
    registry = load_registry(catalog, settings)
    try:
        return ProviderSelector(
            registry,
            strategy=strategy or settings.routing.strategy,
            preferred_provider=settings.routing.preferred_provider,
        )
    except DispatchrError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise click.Abort()


@click.command()
@request_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def rank(settings: Settings, catalog, strategy, units, text, required, prefer, routing_key, as_json: bool):
    """Show the full provider ranking for a request."""
    selector = build_selector(settings, catalog, strategy)
    request = build_request(units, text, required, prefer, routing_key)

    try:
        ranked = selector.rank(request)
    except RoutingError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise click.Abort()

    rows = [
        {
            "rank": i,
            "provider": p.name,
            "score": strategy_score(p, request, selector.strategy),
            "cost_per_unit": p.capabilities.cost_per_unit,
            "average_response_time": p.capabilities.average_response_time,
            "max_units_per_request": p.capabilities.max_units_per_request,
            "features": sorted(f.value for f in p.capabilities.features),
        }
        for i, p in enumerate(ranked, 1)
    ]

    if as_json:
        click.echo(json.dumps({"strategy": selector.strategy.value, "ranking": rows}, indent=2))
        return

    table = Table(title=f"Ranking ({selector.strategy.value}, {request.estimated_units} units)")
    table.add_column("#", justify="right")
    table.add_column("Provider", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Cost/Unit", justify="right")
    table.add_column("Avg Response", justify="right")
    table.add_column("Features")

    for row, provider in zip(rows, ranked):
        score = row["score"]
        table.add_row(
            str(row["rank"]),
            row["provider"],
            "-" if score is None else f"{score:.4f}",
            f"${row['cost_per_unit']:.6f}",
            f"{row['average_response_time']:.2f}s",
            format_features(provider.capabilities.features),
        )

    console.print(table)


@click.command()
@request_options
@click.pass_obj
def select(settings: Settings, catalog, strategy, units, text, required, prefer, routing_key):
    """Show which provider a request would be sent to."""
    selector = build_selector(settings, catalog, strategy)
    request = build_request(units, text, required, prefer, routing_key)

    try:
        ranked = selector.rank(request)
    except RoutingError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise click.Abort()

    chosen = ranked[0]
    estimate = chosen.estimate_cost(request.estimated_units, request.options)
    cheapest = selector.estimate_cost(request)

    console.print(f"[bold]Selected:[/bold] [cyan]{chosen.name}[/cyan] ({selector.strategy.value})")
    console.print(f"Estimated cost: ${estimate:.6f} (cheapest compatible: ${cheapest:.6f})")
    if len(ranked) > 1:
        console.print(f"Fallbacks: {', '.join(p.name for p in ranked[1:])}")
    else:
        console.print("[dim]No fallback providers[/dim]")
