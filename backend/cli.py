"""
Kiosk operator CLI.

Inspect what the kiosk sees (menu, seats) and check its collaborators
without walking a party through the screens.
"""

import asyncio
import sys
import time

import typer
from rich.console import Console
from rich.table import Table

from kiosk_flow import __version__
from kiosk_flow.clients import MenuCatalogClient, PaymentGatewayClient, SeatRegistryClient
from kiosk_flow.clients.base import BackendClient
from kiosk_flow.services.pod_allocator import PodAllocator
from kiosk_flow.services.pricing import build_totals, tiered_price_cents
from shared.config.constants import PaymentType
from shared.config.logging import setup_logging
from shared.config.settings import get_settings
from shared.utils.exceptions import ExternalServiceError

app = typer.Typer(
    name="kiosk",
    help="Kiosk ordering flow operator CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Seat Commands
# =============================================================================

@app.command()
def seats(
    party_size: int = typer.Option(1, "--party-size", "-p", help="Party size to evaluate selectability for"),
    payment_type: PaymentType = typer.Option(PaymentType.SINGLE, "--payment-type", help="SINGLE or SEPARATE"),
    location: str = typer.Option(None, help="Location id (defaults to LOCATION_ID)"),
):
    """Show the seat snapshot with dual pairing and selectability."""
    settings = get_settings()
    location_id = location or settings.location_id
    if not location_id:
        console.print("[red]No location id. Pass --location or set LOCATION_ID[/red]")
        raise typer.Exit(1)

    async def _fetch():
        client = SeatRegistryClient.from_settings(settings)
        try:
            return await client.fetch_seats(location_id)
        finally:
            await client.close()

    try:
        snapshot = asyncio.run(_fetch())
    except ExternalServiceError as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)

    allocator = PodAllocator(snapshot, party_size, payment_type)
    selectable = {s.id for s in allocator.selectable_seats(set())}
    auto = allocator.auto_assign(set())

    table = Table(title=f"Seats at {location_id}")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Seat")
    table.add_column("Status")
    table.add_column("Pod")
    table.add_column("Partner")
    table.add_column("Selectable", style="green")

    for seat in allocator.seat_map.ordered():
        if allocator.seat_map.is_hidden_partner(seat.id):
            pod = "dual (partner)"
        elif allocator.seat_map.is_dual(seat.id):
            pod = "dual"
        else:
            pod = "single"
        table.add_row(
            str(seat.number),
            seat.id,
            seat.status.value,
            pod,
            allocator.seat_map.partner_of(seat.id) or "-",
            "✓" if seat.id in selectable else "",
        )

    console.print(table)
    console.print(
        f"Dual pods allowed: {'yes' if allocator.can_select_dual_pod else 'no'}  "
        f"Auto-assign would pick: {auto.id if auto else '[red]none available[/red]'}"
    )


# =============================================================================
# Menu / Pricing Commands
# =============================================================================

@app.command()
def menu(
    locale: str = typer.Option(None, help="Menu locale (defaults to KIOSK_LOCALE)"),
):
    """List the menu steps and sections the kiosk would show."""
    settings = get_settings()

    async def _fetch():
        client = MenuCatalogClient.from_settings(settings)
        try:
            return await client.fetch_menu(locale or settings.kiosk_locale)
        finally:
            await client.close()

    try:
        steps = asyncio.run(_fetch())
    except ExternalServiceError as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)

    table = Table(title="Menu Steps")
    table.add_column("Step", style="cyan")
    table.add_column("Section")
    table.add_column("Mode")
    table.add_column("Required")
    table.add_column("Items", justify="right")

    for step in steps:
        for section in step.sections:
            table.add_row(
                step.title or step.id,
                section.name or section.id,
                section.selection_mode.value,
                "yes" if section.required else "",
                str(len(section.all_items())),
            )

    console.print(table)


@app.command()
def price(
    base: int = typer.Argument(..., help="Base price in cents"),
    quantity: int = typer.Argument(..., help="Requested quantity"),
    additional: int = typer.Option(0, "--additional", "-a", help="Additional unit price in cents (0 = base)"),
    included: int = typer.Option(0, "--included", "-i", help="Units included for free"),
    tax_rate: float = typer.Option(None, "--tax-rate", help="Tax rate (defaults to LOCATION_TAX_RATE)"),
):
    """Tiered price of an item, with tax."""
    rate = tax_rate if tax_rate is not None else get_settings().location_tax_rate

    table = Table(title="Tiered Price")
    table.add_column("Qty", style="cyan", justify="right")
    table.add_column("Price", style="green", justify="right")

    for q in range(0, quantity + 1):
        table.add_row(str(q), f"{tiered_price_cents(base, additional, included, q) / 100:.2f}")
    console.print(table)

    totals = build_totals(tiered_price_cents(base, additional, included, quantity), rate)
    console.print(
        f"Subtotal {totals.subtotal_cents / 100:.2f}  "
        f"Tax {totals.tax_cents / 100:.2f}  "
        f"[bold]Total {totals.total_cents / 100:.2f}[/bold]"
    )


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health():
    """Check configuration and the kiosk's collaborators."""
    settings = get_settings()

    async def _health():
        services = [
            ("Backend API", BackendClient(settings.api_base_url, timeout=5.0)),
            ("Payment gateway", PaymentGatewayClient(settings.payments_base_url, timeout=5.0)),
        ]

        table = Table(title="Service Health")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Response Time", style="yellow")

        for name, client in services:
            start = time.time()
            healthy = await client.is_available()
            elapsed = (time.time() - start) * 1000
            await client.close()
            table.add_row(name, "✓ Healthy" if healthy else "✗ Unreachable", f"{elapsed:.0f}ms")

        console.print(table)

    asyncio.run(_health())

    problems = settings.validate_production_settings()
    if problems:
        for problem in problems:
            console.print(f"[yellow]! {problem}[/yellow]")
    else:
        console.print("[green]✓ Configuration OK[/green]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Kiosk Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("Kiosk flow", __version__)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


@app.callback()
def main():
    setup_logging()


if __name__ == "__main__":
    app()
