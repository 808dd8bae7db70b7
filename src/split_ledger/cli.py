"""CLI for SplitLedger using Typer."""

import csv
import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .balances import outstanding_balances
from .config import load_settings
from .exceptions import PersistenceWriteError
from .models import TIMESTAMP_FORMAT, Expense, Session, SplitMethod
from .service import LedgerService
from .store import LedgerStore
from .ui import select_participants_interactive

app = typer.Typer(
    name="split-ledger",
    help="Track shared expenses and who owes whom",
)

console = Console()

CSV_HEADER = [
    "Expense ID",
    "Description",
    "Total Amount",
    "Payer",
    "Payer Name",
    "User ID",
    "User Name",
    "Share",
    "Created At",
]


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def open_service() -> LedgerService:
    """Build the ledger service from settings and load the stored ledger."""
    settings = load_settings()
    store = LedgerStore(
        settings.ledger_data_dir,
        users_filename=settings.users_filename,
        expenses_filename=settings.expenses_filename,
    )
    return LedgerService(settings, store)


def report_error(e: Exception, verbose: bool):
    """Print an error and exit, or re-raise it in verbose mode."""
    if isinstance(e, PersistenceWriteError):
        console.print(
            f"\n[bold yellow]Saved in memory only:[/bold yellow] {e}\n"
            f"Your change was accepted but may not have been written to disk."
        )
    else:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
    if verbose:
        raise e
    sys.exit(1)


# ============================================================================
# Option validation
# ============================================================================


def validate_email(value: str) -> str:
    """Basic email check: must contain '@' and '.'."""
    if "@" not in value or "." not in value:
        raise typer.BadParameter("Invalid email format")
    return value


def validate_phone(value: str) -> str:
    """Basic phone check: 10 or more digits."""
    if len(value) < 10 or not value.isdigit():
        raise typer.BadParameter("Invalid phone number (must be 10+ digits)")
    return value


EMAIL_OPTION = typer.Option(..., "--email", "-e", prompt=True, help="Your email")
PASSWORD_OPTION = typer.Option(
    ..., "--password", prompt=True, hide_input=True, help="Your password"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


# ============================================================================
# Formatting
# ============================================================================


def format_money(amount: Decimal, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"($[red]{abs_amount:,.2f}[/red])"
        return f"(${abs_amount:,.2f})"
    if use_color:
        return f" [green]${abs_amount:,.2f}[/green] "
    return f" ${abs_amount:,.2f} "


def display_expense(expense: Expense, service: LedgerService, viewer_id: int | None):
    """Display one expense with its shares."""
    table = Table(
        title=f"Expense #{expense.id}: {escape(expense.description)}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("User", style="cyan")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Share", justify="right")

    for share in expense.shares:
        name = escape(service.actor_name(share.actor_id))
        if share.actor_id == viewer_id:
            name = f"[bold]{name} (you)[/bold]"
        table.add_row(name, str(share.actor_id), format_money(share.amount))

    console.print()
    console.print(table)
    console.print(
        f"  Amount: {format_money(expense.total_amount)}  "
        f"Method: {expense.method.value}  "
        f"Paid by: {escape(service.actor_name(expense.payer_id))}  "
        f"Created: {expense.created_at.strftime(TIMESTAMP_FORMAT)}"
    )

    if viewer_id is not None:
        own_share = expense.share_of(viewer_id)
        if own_share is not None:
            console.print(f"  Your share: {format_money(own_share)}")


def prompt_split_values(
    method: SplitMethod, participant_ids: list[int], service: LedgerService
) -> list[float]:
    """Ask for one amount or percentage per participant."""
    label = "Amount" if method == SplitMethod.EXACT else "Percentage"
    if method == SplitMethod.PERCENTAGE:
        console.print("\nEnter percentage for each participant (must total 100%):")
    else:
        console.print("\nEnter exact amounts for each participant:")

    return [
        typer.prompt(f"{label} for {service.actor_name(actor_id)}", type=float)
        for actor_id in participant_ids
    ]


# ============================================================================
# Commands
# ============================================================================


@app.command()
def register(
    name: str = typer.Option(..., "--name", "-n", prompt=True, help="Your name"),
    email: str = typer.Option(
        ..., "--email", "-e", prompt=True, callback=validate_email, help="Your email"
    ),
    phone: str = typer.Option(
        ..., "--phone", prompt=True, callback=validate_phone, help="Phone number"
    ),
    password: str = typer.Option(
        ...,
        "--password",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Password",
    ),
    verbose: bool = VERBOSE_OPTION,
):
    """Register a new user."""
    setup_logging(verbose)

    try:
        service = open_service()
        actor = service.register_actor(name, email, phone, password)
        console.print(
            f"\n[bold green]✓ User registered successfully![/bold green] "
            f"(ID: {actor.id})"
        )
    except Exception as e:
        report_error(e, verbose)


@app.command()
def users(verbose: bool = VERBOSE_OPTION):
    """List all registered users."""
    setup_logging(verbose)

    try:
        service = open_service()
        actors = service.list_actors()
        if not actors:
            console.print("[yellow]No users registered yet.[/yellow]")
            return

        table = Table(
            title="Registered Users", show_header=True, header_style="bold magenta"
        )
        table.add_column("ID", style="dim", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        table.add_column("Phone")
        for actor in actors:
            table.add_row(
                str(actor.id), escape(actor.name), escape(actor.email), actor.phone
            )

        console.print(table)
    except Exception as e:
        report_error(e, verbose)


@app.command("add-expense")
def add_expense(
    description: str = typer.Option(
        ..., "--description", "-d", prompt=True, help="What the expense was for"
    ),
    amount: float = typer.Option(..., "--amount", "-a", prompt=True, help="Total"),
    method: SplitMethod = typer.Option(
        SplitMethod.EQUAL, "--method", "-m", case_sensitive=False, help="Split method"
    ),
    participant: list[int] = typer.Option(
        [], "--participant", "-p", help="Participant user ID (repeatable)"
    ),
    value: list[float] = typer.Option(
        [], "--value", help="Amount or percentage per participant (repeatable)"
    ),
    email: str = EMAIL_OPTION,
    password: str = PASSWORD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Add an expense paid by you.

    You are always a participant. For EXACT and PERCENTAGE splits give one
    --value per participant, in the same order, with your own value last
    when you did not list yourself with --participant.
    """
    setup_logging(verbose)

    session: Session | None = None
    try:
        service = open_service()
        session = service.authenticate(email, password)

        participant_ids = list(participant)
        if not participant_ids:
            participant_ids = select_participants_interactive(
                service.list_actors(), session.actor_id
            )

        values = list(value)
        if method != SplitMethod.EQUAL and not values:
            everyone = list(participant_ids)
            if session.actor_id not in everyone:
                everyone.append(session.actor_id)
            values = prompt_split_values(method, everyone, service)

        expense = service.record_expense(
            session, description, amount, method, participant_ids, values
        )

        console.print(
            f"\n[bold green]✓ Expense added successfully![/bold green] "
            f"(ID: {expense.id})"
        )
        display_expense(expense, service, session.actor_id)
    except Exception as e:
        report_error(e, verbose)
    finally:
        if session is not None:
            service.sign_out(session)


@app.command()
def expenses(
    show_all: bool = typer.Option(False, "--all", help="Show every expense"),
    email: str = EMAIL_OPTION,
    password: str = PASSWORD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show your expenses (or all expenses with --all)."""
    setup_logging(verbose)

    session: Session | None = None
    try:
        service = open_service()
        session = service.authenticate(email, password)

        found = service.list_expenses(session, involving_only=not show_all)
        if not found:
            console.print(
                "[yellow]No expenses recorded yet.[/yellow]"
                if show_all
                else "[yellow]No expenses found for you.[/yellow]"
            )
            return

        for expense in found:
            display_expense(expense, service, session.actor_id)
    except Exception as e:
        report_error(e, verbose)
    finally:
        if session is not None:
            service.sign_out(session)


@app.command()
def balance(
    email: str = EMAIL_OPTION,
    password: str = PASSWORD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show who owes you and whom you owe."""
    setup_logging(verbose)

    session: Session | None = None
    try:
        service = open_service()
        session = service.authenticate(email, password)

        balances = service.query_balances(session)
        if not balances:
            console.print("No balances to show.")
            return

        outstanding = outstanding_balances(balances)
        if not outstanding:
            console.print("[green]All settled up![/green]")
            return

        for actor_id, amount in sorted(outstanding.items()):
            name = escape(service.actor_name(actor_id))
            if amount > 0:
                console.print(f"{name} owes you: {format_money(amount)}")
            else:
                console.print(f"You owe {name}: {format_money(-amount)}")
    except Exception as e:
        report_error(e, verbose)
    finally:
        if session is not None:
            service.sign_out(session)


@app.command()
def export(
    filename: Optional[Path] = typer.Argument(None, help="CSV file to write"),
    email: str = EMAIL_OPTION,
    password: str = PASSWORD_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Export your expenses, one row per participant, to a CSV file."""
    setup_logging(verbose)

    session: Session | None = None
    try:
        service = open_service()
        session = service.authenticate(email, password)

        target = filename or Path(service.settings.export_filename)
        rows = service.export_ledger(session)

        with target.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for row in rows:
                writer.writerow(row.as_csv_row())

        console.print(
            f"\n[bold green]✓ Balance sheet exported to {target} "
            f"successfully![/bold green] ({len(rows)} rows)"
        )
    except Exception as e:
        report_error(e, verbose)
    finally:
        if session is not None:
            service.sign_out(session)


if __name__ == "__main__":
    app()
