"""Typer CLI for the storefront relay."""

import asyncio
import json
from pathlib import Path

import httpx
import typer
from rich.console import Console

app = typer.Typer(name="storefront", help="Storefront: Stripe Checkout relay")
console = Console()


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind host (default from settings)"),
    port: int = typer.Option(None, help="Bind port (default from settings)"),
):
    """Start the relay API server."""
    import uvicorn
    from storefront.app import create_app
    from storefront.common.config import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting storefront relay on {host}:{port}[/bold green]")
    console.print(f"  Environment: {settings.environment}")
    console.print(f"  Frontend domain: {settings.frontend_domain}")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def health(
    url: str = typer.Option("http://localhost:3000", help="Server URL"),
):
    """Check relay server health."""
    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] up for {data['uptime']}s")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def verify(
    session_id: str = typer.Argument(..., help="Checkout session id (cs_...)"),
    url: str = typer.Option("http://localhost:3000", help="Server URL"),
):
    """Look up a checkout session's payment status through the relay."""
    from storefront.client import StorefrontClient

    async def _verify():
        async with StorefrontClient(server_url=url) as client:
            return await client.verify_payment(session_id)

    result = asyncio.run(_verify())
    if not result.success:
        console.print(f"[bold red]{result.error}[/bold red] (HTTP {result.status_code})")
        raise typer.Exit(1)
    console.print(f"[bold]{result.status}[/bold] {result.amount_total} {result.currency}")
    console.print(f"  Customer: {result.customer_email}")


@app.command()
def totals(
    cart_file: Path = typer.Argument(..., help="JSON file with a list of cart items"),
):
    """Compute order totals for a cart file using the configured fees."""
    from storefront.cart.models import CartItem
    from storefront.cart.totals import compute_totals, format_currency
    from storefront.common.config import get_settings

    try:
        items = [CartItem.from_dict(i) for i in json.loads(cart_file.read_text(encoding="utf-8"))]
    except (OSError, json.JSONDecodeError, TypeError, AttributeError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    settings = get_settings()
    result = compute_totals(
        items,
        shipping_fee=settings.shipping_flat_fee,
        free_shipping_threshold=settings.free_shipping_threshold,
        tax_rate=settings.tax_rate,
    )
    console.print(f"Subtotal: {format_currency(result.subtotal)}")
    console.print(f"Shipping: {format_currency(result.shipping)}")
    console.print(f"Tax:      {format_currency(result.tax)}")
    console.print(f"[bold]Total:    {format_currency(result.total)}[/bold]")


@app.command()
def search(
    term: str = typer.Argument(..., help="Product name fragment"),
    limit: int = typer.Option(10, help="Maximum results"),
):
    """Search the product catalog by name."""
    from rich.table import Table

    from storefront.catalog.supabase import ProductCatalog
    from storefront.common.config import get_settings

    settings = get_settings()
    if not settings.supabase_url:
        console.print("[bold red]Error:[/bold red] STOREFRONT_SUPABASE_URL is not set")
        raise typer.Exit(1)

    async def _search():
        catalog = ProductCatalog(settings.supabase_url, settings.supabase_anon_key)
        try:
            return await catalog.search(term, limit=limit)
        finally:
            await catalog.close()

    try:
        products = asyncio.run(_search())
    except httpx.HTTPError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not products:
        console.print("No matching products found.")
        return

    table = Table(title=f"Products matching '{term}'")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Price", justify="right")
    table.add_column("Path")
    for product in products:
        price = "" if product.price is None else f"{product.price:.2f}"
        table.add_row(product.name, product.category, price, product.detail_path)
    console.print(table)


if __name__ == "__main__":
    app()
