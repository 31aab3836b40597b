"""Command-line interface for Naikkelas ledger operators."""

from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from naikkelas.errors import LedgerError
from naikkelas.logging_config import configure_logging, get_logger
from naikkelas.payments.packages import list_packages
from naikkelas.referral.registry import ReferralCodeRegistry
from naikkelas.rewards.ledger import RewardLedger
from naikkelas.settings import settings
from naikkelas.storage.db import db

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="naikkelas",
    help="Naikkelas - referral rewards and credit ledger",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("serve")
def serve(
    host: Annotated[str | None, typer.Option(help="Bind address")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port")] = None,
) -> None:
    """Run the HTTP API with uvicorn."""
    uvicorn.run(
        "naikkelas.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.env == "development",
    )


@app.command("packages")
def show_packages() -> None:
    """List credit packages."""
    table = Table(title="Credit Packages")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Credits", justify="right")
    table.add_column("Price (IDR)", justify="right", style="green")

    for package in list_packages():
        table.add_row(package.id, package.name, f"{package.credits:,}", f"{package.amount:,}")

    console.print(table)


@app.command("referral-code")
def show_referral_code(
    user_id: Annotated[str, typer.Argument(help="User ID")],
) -> None:
    """Show (and create if needed) a user's referral code."""
    try:
        code = ReferralCodeRegistry(db).get_or_create_code(user_id)
    except LedgerError as e:
        console.print(f"[bold red]✗[/bold red] {e.message}")
        raise typer.Exit(1)

    console.print(f"[bold]Code:[/bold] {code}")
    console.print(f"[bold]Link:[/bold] {settings.site_url}?ref={code}")


@app.command("stats")
def show_stats(
    user_id: Annotated[str, typer.Argument(help="User ID")],
) -> None:
    """Show referral statistics and reward balance for a user."""
    ledger = RewardLedger(db)
    stats = ledger.get_stats(user_id)

    console.print(f"[bold]User:[/bold] {user_id}")
    console.print(f"[bold]Reward balance:[/bold] {ledger.get_balance(user_id):,} IDR")
    console.print(f"[bold]Referrals:[/bold] {stats.total_referrals} "
                  f"(level 1: {stats.level1_count}, level 2: {stats.level2_count})")
    console.print(f"[bold]Total earned:[/bold] {stats.total_rewards_earned:,} IDR")

    history = ledger.get_history(user_id, limit=10)
    if history:
        console.print("\n[bold]Last 10 Transactions:[/bold]")
        table = Table()
        table.add_column("Date")
        table.add_column("Type", style="cyan")
        table.add_column("Amount", justify="right", style="green")
        table.add_column("Description")

        for transaction in history:
            table.add_row(
                transaction.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                transaction.type.value,
                f"{transaction.amount:,}",
                transaction.description or "",
            )

        console.print(table)


@app.command("verify-rewards")
def verify_rewards() -> None:
    """Check every reward balance against its transaction log."""
    drift = RewardLedger(db).verify_balances()

    if not drift:
        console.print("[bold green]✓[/bold green] All reward balances match their transactions")
        return

    table = Table(title="Reward Balance Drift")
    table.add_column("User ID", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Transactions", justify="right")
    table.add_column("Difference", justify="right", style="red")

    for row in drift:
        table.add_row(
            row.user_id,
            f"{row.balance:,}",
            f"{row.transactions_total:,}",
            f"{row.balance - row.transactions_total:+,}",
        )

    console.print(table)
    console.print(f"[bold red]✗[/bold red] {len(drift)} balance(s) out of sync")
    raise typer.Exit(1)


if __name__ == "__main__":
    app()
