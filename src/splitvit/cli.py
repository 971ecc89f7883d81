"""CLI for SplitVit using Typer."""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path

import httpx
import typer
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.table import Table

from . import editor
from .auth import AuthService
from .config import Settings, load_settings
from .db import Database
from .exceptions import SplitVitError
from .models import Expense, ExpenseRecord, Group, GroupSummary, SettlementResult
from .service import GroupService
from .settlement import calc_settlements, round_money, total_spent
from .ui import confirm, select_member_interactive, select_split_interactive

app = typer.Typer(
    name="splitvit",
    help="Split shared expenses within a group and see who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Network requests are too noisy at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@contextmanager
def cli_context(verbose: bool) -> Iterator[tuple[Settings, Database]]:
    """Load settings and the local database; report errors and exit 1."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield settings, db
    except (SplitVitError, httpx.HTTPError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        raise typer.Exit(1) from e
    finally:
        if db is not None:
            db.close()


def _group_service(settings: Settings, db: Database) -> GroupService:
    session = AuthService(settings, db).current_session()
    return GroupService(settings, session)


# ============================================================================
# Rendering
# ============================================================================


def format_money(amount: Decimal, symbol: str = "₹", use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: (₹85.02)
    Positive amounts have spaces:      ₹85.02
    """
    abs_amount = abs(round_money(amount))
    if amount < 0 and abs_amount:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "


def display_groups(summaries: list[GroupSummary], symbol: str):
    """Display the dashboard of groups."""
    count = len(summaries)
    plural = "s" if count != 1 else ""
    console.print(f"\n[bold]Your Groups[/bold] [dim]({count} group{plural} saved)[/dim]")
    if not summaries:
        console.print("[dim]No groups yet. Create one with 'splitvit new NAME'.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Group", style="cyan")
    table.add_column("Members", justify="right")
    table.add_column("Expenses", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")

    for summary in summaries:
        status = (
            "[green]Settled ✓[/green]"
            if summary.is_settled
            else f"[red]{summary.pending_transfers} pending[/red]"
        )
        table.add_row(
            summary.group.id,
            summary.group.name,
            str(summary.member_count),
            str(summary.expense_count),
            format_money(summary.total, symbol),
            status,
        )

    console.print(table)


def display_settlement(result: SettlementResult, symbol: str):
    """Display balances and the transfers that settle them."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right")

    for name, amount in result.balance.items():
        table.add_row(name, format_money(amount, symbol))
    console.print(table)

    if result.is_settled:
        console.print("\n[bold green]✓ All settled up![/bold green]")
        return

    console.print("\n[bold]Settlements:[/bold]")
    for transfer in result.settlements:
        console.print(
            f"  {transfer.from_member} → {transfer.to_member}: "
            f"[bold red]{symbol}{round_money(transfer.amount):,.2f}[/bold red]"
        )


def display_expenses(expenses: list[Expense], symbol: str):
    """Display the expense breakdown with a total."""
    if not expenses:
        console.print("[dim]No expenses yet.[/dim]")
        return

    table = Table(
        title="Expense Breakdown", show_header=True, header_style="bold magenta"
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Paid by")
    table.add_column("Split between")
    table.add_column("Amount", justify="right")

    for i, expense in enumerate(expenses, start=1):
        table.add_row(
            str(i),
            expense.title,
            expense.paid_by,
            ", ".join(expense.split_between),
            format_money(expense.amount, symbol),
        )
    table.add_section()
    table.add_row(
        "", "[bold]Total[/bold]", "", "", format_money(total_spent(expenses), symbol)
    )

    console.print(table)


def display_group(
    group_name: str, members: list[str], expenses: list[Expense], symbol: str
):
    """Display the settlement view for a group."""
    console.print(f"\n[bold]{group_name}[/bold]")
    console.print(f"  Members: {', '.join(members) or '[dim]none[/dim]'}\n")
    display_settlement(calc_settlements(members, expenses), symbol)
    console.print()
    display_expenses(expenses, symbol)


def _display_state(state: editor.EditorState, symbol: str):
    display_group(state.group_name, state.members, state.expenses, symbol)


def _display_shared(group: Group, symbol: str):
    display_group(group.name, group.member_names(), group.expenses, symbol)


# ============================================================================
# Auth commands
# ============================================================================


@app.command()
def signup(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="E-mail address"),
    name: str = typer.Option("", "--name", "-n", help="Your name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create an account with e-mail and password."""
    with cli_context(verbose) as (settings, db):
        session = AuthService(settings, db).sign_up(email, password, name or None)
        if session is None:
            console.print(
                "[yellow]✉️  Check your email to confirm your account, then log in.[/yellow]"
            )
            return
        console.print(
            f"[bold green]✓ Welcome, {session.user.display_name}![/bold green]"
        )


@app.command()
def login(
    email: str = typer.Option("", "--email", "-e", help="E-mail address"),
    google: bool = typer.Option(False, "--google", help="Sign in with Google"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Sign in with e-mail and password, or with Google.

    The Google flow prints a URL to open in a browser; paste back the
    address the browser ends up on.
    """
    with cli_context(verbose) as (settings, db):
        auth = AuthService(settings, db)

        if google:
            console.print("\n[bold]Open this URL to sign in with Google:[/bold]")
            console.print(f"  [cyan]{auth.oauth_url('google')}[/cyan]\n")
            redirect_url = typer.prompt("Paste the URL you were redirected to")
            session = auth.sign_in_with_redirect(redirect_url)
        else:
            if not email:
                email = typer.prompt("Email")
            password = typer.prompt("Password", hide_input=True)
            session = auth.sign_in(email, password)

        console.print(
            f"[bold green]✓ Welcome back, {session.user.display_name.split(' ')[0]}![/bold green]"
        )


@app.command()
def logout(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Sign out and forget the local session."""
    with cli_context(verbose) as (settings, db):
        AuthService(settings, db).sign_out()
        console.print("[green]Logged out.[/green]")


@app.command()
def whoami(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the signed-in user."""
    with cli_context(verbose) as (settings, db):
        session = AuthService(settings, db).current_session()
        console.print(f"{session.user.display_name} [dim]({session.user.email})[/dim]")


# ============================================================================
# Group commands
# ============================================================================


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List your groups with their totals and settlement status."""
    with cli_context(verbose) as (settings, db):
        summaries = _group_service(settings, db).list_groups()
        display_groups(summaries, settings.currency_symbol)


@app.command()
def new(
    name: str = typer.Argument(..., help="Group name"),
    members: list[str] = typer.Option(
        [], "--member", "-m", help="Member to add (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a group, optionally with its first members."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.ensure_group(service.open_editor(name=name))
        for member in members:
            state = service.add_member(state, member)

        console.print(
            f"[bold green]✓ Created group '{state.group_name}'[/bold green] "
            f"[dim](id: {state.group_id})[/dim]"
        )


@app.command()
def show(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show balances, settlements and expenses for a group."""
    with cli_context(verbose) as (settings, db):
        state = _group_service(settings, db).open_editor(group_id)
        _display_state(state, settings.currency_symbol)


@app.command()
def shared(
    token: str = typer.Argument(..., help="Share token (the part after '#')"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a group someone shared with you. No sign-in needed."""
    with cli_context(verbose) as (settings, db):
        group = GroupService(settings).get_shared_group(token.split("#")[-1])
        _display_shared(group, settings.currency_symbol)


@app.command("delete-group")
def delete_group(
    group_id: str = typer.Argument(..., help="Group ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a group with all its members and expenses."""
    with cli_context(verbose) as (settings, db):
        if not yes and not confirm("Delete this group? This cannot be undone."):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        _group_service(settings, db).delete_group(group_id)
        console.print("[green]Group deleted[/green]")


@app.command()
def share(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Print a read-only link to a group's settlement."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        _, url = service.share_url(service.open_editor(group_id))
        console.print(
            "Anyone with this link can view the settlement summary:\n"
            f"  [cyan]{url}[/cyan]"
        )


# ============================================================================
# Member commands
# ============================================================================


@app.command("add-member")
def add_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    names: list[str] = typer.Argument(..., help="Member names"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add one or more members to a group."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.open_editor(group_id)
        for name in names:
            state = service.add_member(state, name)
        console.print(f"[green]Members: {', '.join(state.members)}[/green]")


@app.command("remove-member")
def remove_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a member from a group. Their past expenses are kept."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.remove_member(service.open_editor(group_id), name)
        console.print(f"[green]Members: {', '.join(state.members) or 'none'}[/green]")


# ============================================================================
# Expense commands
# ============================================================================


def _fill_form_interactively(state: editor.EditorState) -> editor.EditorState:
    """Ask for payer and split members that were not given as options."""
    form = state.form
    if not form.paid_by:
        paid_by = select_member_interactive(state.members, "Paid by")
        if paid_by:
            state = editor.with_form(state, paid_by=paid_by)
    if not form.split_between:
        split = select_split_interactive(state.members)
        if split:
            state = editor.with_form(state, split_between=split)
    return state


@app.command("add-expense")
def add_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    title: str = typer.Option(..., "--title", "-t", prompt=True, help="What was it for"),
    amount: str = typer.Option(..., "--amount", "-a", prompt=True, help="Amount paid"),
    paid_by: str = typer.Option("", "--paid-by", "-p", help="Who paid"),
    split: list[str] = typer.Option(
        [], "--split", "-s", help="Member sharing the cost (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Log an expense. Prompts for payer and split when not given."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.open_editor(group_id)
        state = editor.with_form(
            state, title=title, amount=amount, paid_by=paid_by, split_between=split
        )
        state = _fill_form_interactively(state)
        state = service.save_expense(state)

        console.print("[bold green]Expense saved ✓[/bold green]\n")
        display_settlement(editor.settlement(state), settings.currency_symbol)


@app.command("edit-expense")
def edit_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    number: int = typer.Argument(..., help="Expense number as shown by 'show'"),
    title: str | None = typer.Option(None, "--title", "-t", help="New title"),
    amount: str | None = typer.Option(None, "--amount", "-a", help="New amount"),
    paid_by: str | None = typer.Option(None, "--paid-by", "-p", help="New payer"),
    split: list[str] = typer.Option(
        [], "--split", "-s", help="Replace split members (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Change an existing expense. Fields not given keep their value."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.open_editor(group_id)
        if not 1 <= number <= len(state.expenses):
            raise SplitVitError(f"No expense #{number}")

        state = editor.start_edit(state, number - 1)
        changes: dict = {}
        if title is not None:
            changes["title"] = title
        if amount is not None:
            changes["amount"] = amount
        if paid_by is not None:
            changes["paid_by"] = paid_by
        if split:
            changes["split_between"] = split
        state = service.save_expense(editor.with_form(state, **changes))

        console.print("[bold green]Expense saved ✓[/bold green]\n")
        display_settlement(editor.settlement(state), settings.currency_symbol)


@app.command("delete-expense")
def delete_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    number: int = typer.Argument(..., help="Expense number as shown by 'show'"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense."""
    with cli_context(verbose) as (settings, db):
        service = _group_service(settings, db)
        state = service.delete_expense(service.open_editor(group_id), number - 1)

        console.print("[green]Expense deleted[/green]\n")
        display_settlement(editor.settlement(state), settings.currency_symbol)


# ============================================================================
# Offline settlement
# ============================================================================


class SettleInput(BaseModel):
    """Document accepted by the settle command."""

    members: list[str] = Field(default_factory=list)
    expenses: list[ExpenseRecord] = Field(default_factory=list)


def settlement_to_json(result: SettlementResult) -> dict:
    """Plain JSON shape with amounts rounded to cents."""
    return {
        "balance": {
            name: float(round_money(amount)) for name, amount in result.balance.items()
        },
        "settlements": [
            {
                "from": t.from_member,
                "to": t.to_member,
                "amount": float(round_money(t.amount)),
            }
            for t in result.settlements
        ],
    }


@app.command()
def settle(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
    currency: str = typer.Option("₹", "--currency", help="Currency symbol"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Compute a settlement from a local JSON file, without the backend.

    The file holds {"members": [...], "expenses": [{"amount", "paidBy",
    "splitBetween"}, ...]}.
    """
    setup_logging(verbose)

    try:
        data = SettleInput.model_validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"\n[bold red]Error:[/bold red] Invalid settlement file: {e}")
        raise typer.Exit(1) from e

    result = calc_settlements(data.members, data.expenses)

    if as_json:
        typer.echo(json.dumps(settlement_to_json(result), indent=2))
        return

    display_settlement(result, currency)


if __name__ == "__main__":
    app()
