"""
Auto-Discount CLI

Command-line interface for auto-discount administration.

Commands:
- run-now: Run one price oscillation sweep immediately
- settings: Show or change a shop's automation settings
- enroll: Enroll a product in oscillation
- unenroll: Remove a product from oscillation
- list-enrollments: List enrolled products for a shop
- set-credential: Store a shop's catalog access token
- init-db: Create the auto-discount tables
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="autodiscount",
    help="Auto-Discount price oscillation CLI",
)

console = Console()

STATUS_STYLES = {
    "updated": "green",
    "rejected": "yellow",
    "failed": "red",
    "conflict": "red",
    "persistence_failed": "bold red",
}


def get_db():
    """Get database session."""
    from basecore.db import get_db as _get_db
    return next(_get_db())


def _parse_price(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        rprint(f"[red]Invalid price: {value}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Configure logging before any command runs."""
    from basecore.logging import setup_logging
    setup_logging(level=log_level)


@app.command()
def run_now():
    """
    Run one sweep across all shops with automation enabled.

    Uses the same engine and shop locks as the daily timer.
    """
    from autodiscount_core.runtime import get_engine

    result = get_engine().run_scheduler_sync()

    if result.error:
        rprint(f"[red]Sweep could not start: {result.error}[/red]")
        raise typer.Exit(1)

    if not result.shops:
        rprint("[yellow]No shops with automation enabled[/yellow]")
        return

    shops_table = Table(title="Shops")
    shops_table.add_column("Shop", style="cyan")
    shops_table.add_column("Status")
    shops_table.add_column("Items")
    shops_table.add_column("Error")
    for shop in result.shops:
        shops_table.add_row(shop.shop, shop.status.value, str(len(shop.items)), shop.error or "")
    console.print(shops_table)

    if result.items:
        items_table = Table(title="Items")
        items_table.add_column("Shop", style="cyan")
        items_table.add_column("Product")
        items_table.add_column("Phase")
        items_table.add_column("Price")
        items_table.add_column("Status")
        for shop in result.shops:
            for item in shop.items:
                style = STATUS_STYLES.get(item.status.value, "white")
                target = f"{item.target_price:.2f}" if item.target_price is not None else "-"
                items_table.add_row(
                    shop.shop,
                    item.product_id,
                    f"{item.previous_phase.value} -> {item.target_phase.value}",
                    f"{item.previous_price:.2f} -> {target}",
                    f"[{style}]{item.status.value}[/{style}]",
                )
        console.print(items_table)

    summary = result.summary()
    rprint(
        f"Updated: {summary['items_updated']}  "
        f"Rejected: {summary['items_rejected']}  "
        f"Failed: {summary['items_failed']}  "
        f"Skipped shops: {summary['shops_skipped']}"
    )

    if not result.ok:
        raise typer.Exit(1)


@app.command()
def settings(
    shop: str = typer.Argument(..., help="Shop domain (e.g., example.myshopify.com)"),
    enable: Optional[bool] = typer.Option(None, "--enable/--disable", help="Switch automation on or off"),
    admin_discount: Optional[str] = typer.Option(None, help="Admin discount amount"),
):
    """
    Show a shop's settings, changing them first if options are given.
    """
    db = get_db()

    try:
        from autodiscount_core.persistence.repo import AutoDiscountRepository

        repo = AutoDiscountRepository(db)
        current = repo.get_or_create_settings(shop)

        if enable is not None or admin_discount is not None:
            current = repo.save_settings(
                shop,
                auto_discount=current.auto_discount if enable is None else enable,
                admin_discount=_parse_price(admin_discount) if admin_discount is not None else None,
            )
            rprint("[green]Settings saved[/green]")

        db.commit()

        rprint(f"  Shop: {current.shop}")
        rprint(f"  Auto discount: {current.auto_discount}")
        rprint(f"  Admin discount: {current.admin_discount}")

    finally:
        db.close()


@app.command()
def enroll(
    shop: str = typer.Argument(..., help="Shop domain"),
    product_id: str = typer.Argument(..., help="Catalog product ID"),
    variant_id: str = typer.Argument(..., help="Catalog variant ID"),
    price: str = typer.Argument(..., help="Current price, captured as the original price"),
    title: str = typer.Option("", help="Product title"),
):
    """
    Enroll a product in price oscillation.

    The given price becomes the product's original price. Enrolling an
    already enrolled product leaves it unchanged.
    """
    original_price = _parse_price(price)
    db = get_db()

    try:
        from autodiscount_core.persistence.repo import AutoDiscountRepository

        repo = AutoDiscountRepository(db)
        enrollment, created = repo.enroll_product(shop, product_id, variant_id, title, original_price)
        db.commit()

        if not created:
            rprint(f"[yellow]Product {product_id} is already enrolled[/yellow]")
            rprint(f"  Original price: {enrollment.original_price}")
            rprint(f"  Phase: {enrollment.phase}")
            return

        rprint("[green]Product enrolled:[/green]")
        rprint(f"  ID: {enrollment.id}")
        rprint(f"  Product: {enrollment.product_id}")
        rprint(f"  Variant: {enrollment.variant_id}")
        rprint(f"  Original price: {enrollment.original_price}")

    finally:
        db.close()


@app.command()
def unenroll(
    shop: str = typer.Argument(..., help="Shop domain"),
    product_id: str = typer.Argument(..., help="Catalog product ID"),
):
    """
    Remove a product from price oscillation.

    The catalog price is left as it is.
    """
    db = get_db()

    try:
        from autodiscount_core.persistence.repo import AutoDiscountRepository

        deleted = AutoDiscountRepository(db).unenroll_product(shop, product_id)
        db.commit()

        if not deleted:
            rprint(f"[red]Product {product_id} is not enrolled in {shop}[/red]")
            raise typer.Exit(1)

        rprint(f"[green]Product {product_id} removed from oscillation[/green]")

    finally:
        db.close()


@app.command()
def list_enrollments(
    shop: str = typer.Argument(..., help="Shop domain"),
):
    """
    List enrolled products for a shop.
    """
    db = get_db()

    try:
        from autodiscount_core.persistence.repo import AutoDiscountRepository

        enrollments = AutoDiscountRepository(db).list_enrollments(shop)

        if not enrollments:
            rprint(f"[yellow]No enrolled products for {shop}[/yellow]")
            return

        table = Table(title=f"Enrolled products for {shop}")
        table.add_column("Product", style="cyan")
        table.add_column("Variant")
        table.add_column("Title")
        table.add_column("Original")
        table.add_column("Current")
        table.add_column("Phase")
        table.add_column("Last Updated")

        for enrollment in enrollments:
            table.add_row(
                enrollment.product_id,
                enrollment.variant_id,
                enrollment.product_title[:40],
                f"{enrollment.original_price:.2f}",
                f"{enrollment.current_price:.2f}",
                enrollment.phase,
                enrollment.last_updated.strftime("%Y-%m-%d %H:%M") if enrollment.last_updated else "-",
            )

        console.print(table)

    finally:
        db.close()


@app.command()
def set_credential(
    shop: str = typer.Argument(..., help="Shop domain"),
    access_token: str = typer.Argument(..., help="Admin API access token (will be encrypted)"),
    scope: Optional[str] = typer.Option(None, help="Granted scopes"),
):
    """
    Store the catalog access token for a shop.
    """
    from basecore.settings import get_settings
    from autodiscount_core.catalog.factory import encrypt_access_token

    encryption_key = get_settings().CREDENTIAL_ENCRYPTION_KEY
    if not encryption_key:
        rprint("[yellow]Warning: CREDENTIAL_ENCRYPTION_KEY not set, storing token unencrypted[/yellow]")

    db = get_db()

    try:
        from autodiscount_core.persistence.repo import AutoDiscountRepository

        credential = AutoDiscountRepository(db).upsert_credential(
            shop,
            encrypt_access_token(access_token, encryption_key),
            scope=scope,
        )
        db.commit()

        rprint(f"[green]Credential stored for {credential.shop}[/green]")

    finally:
        db.close()


@app.command()
def init_db():
    """
    Create the auto-discount tables (development; use Alembic elsewhere).
    """
    from basecore.db import get_engine
    from autodiscount_core.persistence.models import AutoDiscountBase

    AutoDiscountBase.metadata.create_all(bind=get_engine())
    rprint("[green]Auto-discount tables created[/green]")


if __name__ == "__main__":
    app()
