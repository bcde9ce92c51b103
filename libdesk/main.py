import asyncio
import logging
import os
import subprocess
import sys
import webbrowser
from typing import Any, Awaitable, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from libdesk import catalog_items
from libdesk.config import settings
from libdesk.library import Library
from libdesk.store import SQLiteLibraryStore, StorageError
from libdesk.utils.cli_config import cli_config
from libdesk.utils.ui_helpers import (
    BOOK_COLUMNS,
    LOAN_COLUMNS,
    STAFF_COLUMNS,
    USER_COLUMNS,
    print_report,
    print_rows,
    set_output_mode,
)
from libdesk.utils.validators import StockValidator

APP_NAME = "Library Desk"

logger = logging.getLogger(__name__)
console = Console()


class LibraryManager:
    _instance: Optional[Library] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Library:
        """Get or create the Library for the configured database file."""
        current_db = settings.database_file
        if cls._instance is None or cls._db_file_snapshot != current_db:
            store = SQLiteLibraryStore(current_db, seed=settings.seed_demo_data)
            cls._instance = Library(store)
            cls._db_file_snapshot = current_db
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._db_file_snapshot = None


def _run(operation: Awaitable[Any]) -> Any:
    """Drive one library operation; storage faults become a message instead of a crash."""
    try:
        return asyncio.run(operation)
    except StorageError as e:
        print(f"Storage unavailable: {e}")
        return None


def _acting_ids(user_id: Optional[int], staff_id: Optional[int]) -> tuple:
    default_user, default_staff = cli_config.acting_ids()
    return (user_id if user_id is not None else default_user, staff_id if staff_id is not None else default_staff)


# --- Typer CLI Application ---
app = typer.Typer(help="Library Desk CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    logging.basicConfig(level=settings.log_level.upper())
    set_output_mode(output or cli_config.get("preferences.output_mode", "plain"))


@app.command("list")
def cli_list():
    """List every book in the catalog."""
    books = _run(LibraryManager.get_instance().list_books())
    if books is not None:
        print_rows("Books", books, BOOK_COLUMNS, "No books in library.")


@app.command("available")
def cli_available():
    """List books that can be borrowed right now."""
    books = _run(LibraryManager.get_instance().list_available_books())
    if books is not None:
        print_rows("Available Books", books, BOOK_COLUMNS, "No books available to borrow.")


@app.command("search")
def cli_search(keyword: str = typer.Argument(..., help="Matches title, author or category")):
    """Search the catalog."""
    books = _run(LibraryManager.get_instance().search_books(keyword))
    if books is not None:
        print_rows(f"Results for '{keyword}'", books, BOOK_COLUMNS, "No books found.")


@app.command("add")
def cli_add(
    title: str,
    author: str,
    category: str = typer.Option("General", "--category", "-c", help="Free-text category"),
    stock: int = typer.Option(1, "--stock", "-s", min=0, help="Number of copies"),
):
    """Add a book to the catalog."""
    result = _run(LibraryManager.get_instance().add_book(title, author, category, stock))
    if result is not None:
        print(result.message)


@app.command("borrow")
def cli_borrow(
    book_id: int,
    user_id: Optional[int] = typer.Option(None, "--user", "-u", help="Borrower (default: acting user)"),
    staff_id: Optional[int] = typer.Option(None, "--staff", "-s", help="Lending staff (default: acting staff)"),
):
    """Borrow one copy of a book."""
    user_id, staff_id = _acting_ids(user_id, staff_id)
    result = _run(LibraryManager.get_instance().borrow_book(book_id, user_id, staff_id))
    if result is not None:
        print(result.message)


@app.command("return")
def cli_return(loan_id: int, book_id: int):
    """Return a borrowed book."""
    result = _run(LibraryManager.get_instance().return_book(loan_id, book_id))
    if result is not None:
        print(result.message)


@app.command("loans")
def cli_loans():
    """List active loans."""
    loans = _run(LibraryManager.get_instance().list_active_loans())
    if loans is not None:
        print_rows("Active Loans", loans, LOAN_COLUMNS, "No active loans.")


@app.command("users")
def cli_users():
    """List registered users."""
    users = _run(LibraryManager.get_instance().list_users())
    if users is not None:
        print_rows("Users", users, USER_COLUMNS, "No registered users.")


@app.command("staff")
def cli_staff():
    """List staff members."""
    staff = _run(LibraryManager.get_instance().list_staff())
    if staff is not None:
        print_rows("Staff", staff, STAFF_COLUMNS, "No staff registered.")


@app.command("report")
def cli_report(
    kind: str = typer.Argument(..., help="monthly | inventory | membership"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Compiler name"),
):
    """Build one of the named reports."""
    author = author or cli_config.get("preferences.report_author", settings.report_author)
    try:
        report = _run(LibraryManager.get_instance().build_report(kind.lower(), author))
    except ValueError as e:
        print(f"Error: {e}")
        return
    if report is not None:
        print_report(report)


@app.command("items")
def cli_items():
    """Show every holding (books, periodicals, digital media) as catalog items."""
    items = _run(LibraryManager.get_instance().list_catalog_items(catalog_items.SAMPLE_HOLDINGS))
    if items is None:
        return
    print_rows(
        "Catalog Items",
        items,
        [
            ("ID", catalog_items.item_id),
            ("Kind", catalog_items.kind_label),
            ("Info", catalog_items.display_info),
            ("Status", lambda i: "Available" if catalog_items.is_available(i) else "Unavailable"),
        ],
        "No catalog items.",
    )
    print(f"Total items: {len(items)}")


@app.command("config")
def cli_config_command(
    action: str = typer.Argument(..., help="Action: show, get, set, acting, reset"),
    key: Optional[str] = typer.Argument(None, help="Config key (dot notation)"),
    value: Optional[str] = typer.Argument(None, help="Config value"),
):
    """Manage CLI preferences and the acting user/staff ids."""
    if action == "show":
        cli_config.show_config()
    elif action == "get":
        if not key:
            print("Error: 'get' needs a key")
            return
        found = cli_config.get(key)
        print(f"{key}: {found}" if found is not None else f"Key '{key}' not found")
    elif action == "set":
        if not key or value is None:
            print("Error: 'set' needs both a key and a value")
            return
        if key.startswith("acting.") and not value.isdigit():
            print(f"Error: {key} must be a number")
            return
        parsed: Any = int(value) if value.isdigit() else value
        cli_config.set(key, parsed)
        print(f"{key} set to {parsed}")
    elif action == "acting":
        if key is None:
            user_id, staff_id = cli_config.acting_ids()
            print(f"Acting user: {user_id}, acting staff: {staff_id}")
            return
        if not key.isdigit() or (value is not None and not value.isdigit()):
            print("Error: acting ids must be numbers: config acting <user_id> [staff_id]")
            return
        cli_config.set_acting_ids(int(key), int(value) if value is not None else None)
        user_id, staff_id = cli_config.acting_ids()
        print(f"Acting user: {user_id}, acting staff: {staff_id}")
    elif action == "reset":
        cli_config.reset_to_default()
    else:
        print(f"Unknown action: {action}")
        print("Available actions: show, get, set, acting, reset")


@app.command("serve")
def cli_serve(timeout: int = typer.Option(0, "--timeout", help="Seconds to run before exiting (0 = no timeout)")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    url = f"http://{host}:{port}/docs"
    print(f"Starting API on {url}")
    try:
        webbrowser.open(url)
    except webbrowser.Error:
        logger.info("Could not open a web browser")

    args = [sys.executable, "-m", "uvicorn", "libdesk.api:app", "--host", host, "--port", str(port)]
    if timeout and timeout > 0:
        proc = subprocess.Popen(args, start_new_session=(os.name != "nt"))
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
    else:
        subprocess.run(args)


# --- Interactive menu ---
def _menu_borrow(lib: Library) -> None:
    books = asyncio.run(lib.list_available_books())
    print_rows("Available Books", books, BOOK_COLUMNS, "No books available to borrow.")
    if not books:
        return
    book_id = IntPrompt.ask("Book ID to borrow")
    user_id, staff_id = cli_config.acting_ids()
    result = asyncio.run(lib.borrow_book(book_id, user_id, staff_id))
    console.print(f"[{'green' if result else 'red'}]{escape(result.message)}[/]")


def _menu_return(lib: Library) -> None:
    loans = asyncio.run(lib.list_active_loans())
    print_rows("Active Loans", loans, LOAN_COLUMNS, "No active loans.")
    if not loans:
        return
    loan_id = IntPrompt.ask("Loan ID to return")
    loan = next((d for d in loans if d.loan.id == loan_id), None)
    if loan is None:
        console.print("[yellow]Invalid loan ID.[/]")
        return
    result = asyncio.run(lib.return_book(loan_id, loan.book.id))
    console.print(f"[{'green' if result else 'red'}]{escape(result.message)}[/]")


def _menu_add(lib: Library) -> None:
    title = Prompt.ask("Title")
    author = Prompt.ask("Author")
    category = Prompt.ask("Category", default="General")
    raw_stock = Prompt.ask("Stock", default="1")
    stock = StockValidator.parse_stock(raw_stock)
    if str(stock) != raw_stock.strip():
        console.print("[yellow]Invalid stock, using the default (1).[/]")
    result = asyncio.run(lib.add_book(title, author, category, stock))
    console.print(f"[{'green' if result else 'red'}]{escape(result.message)}[/]")


def _menu_acting_staff(lib: Library) -> None:
    staff = asyncio.run(lib.list_staff())
    print_rows("Staff", staff, STAFF_COLUMNS, "No staff registered.")
    if not staff:
        return
    staff_id = IntPrompt.ask("Acting staff ID")
    member = next((s for s in staff if s.id == staff_id), None)
    if member is None:
        console.print("[yellow]Invalid staff ID.[/]")
        return
    cli_config.set_acting_ids(staff_id=staff_id)
    console.print(f"[green]Acting staff changed to: {escape(member.name)}[/]")


def run_menu() -> None:
    """Interactive menu for the desk."""
    lib = LibraryManager.get_instance()
    console.print(f"[bold]=== {APP_NAME} ===[/]")
    console.print("Connecting to the database...")
    if asyncio.run(lib.test_connection()):
        console.print("[green]Connected to the database.[/]")
    else:
        console.print("[yellow]Could not connect to the database. Continuing with limited features.[/]")

    menu_items = [
        ("1", "List all books", lambda: cli_list()),
        ("2", "Search books", lambda: cli_search(Prompt.ask("Keyword"))),
        ("3", "Add a book", lambda: _menu_add(lib)),
        ("4", "Borrow a book", lambda: _menu_borrow(lib)),
        ("5", "Return a book", lambda: _menu_return(lib)),
        ("6", "Active loans", lambda: cli_loans()),
        ("7", "Users", lambda: cli_users()),
        ("8", "Staff / change acting staff", lambda: _menu_acting_staff(lib)),
        ("9", "Build a report", lambda: cli_report(
            Prompt.ask("Report", choices=["monthly", "inventory", "membership"], default="monthly"),
            Prompt.ask("Compiled by", default=cli_config.get("preferences.report_author", settings.report_author)),
        )),
        ("10", "Catalog items", lambda: cli_items()),
    ]
    actions = {key: action for key, _, action in menu_items}

    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label, _ in menu_items:
        table.add_row(f"[reverse]{key}[/]", label)
    table.add_row("[reverse]0[/]", "Exit")
    panel = Panel(table, title=APP_NAME, border_style="cyan", box=box.HEAVY, padding=(1, 2))

    while True:
        console.print(panel)
        choice = Prompt.ask("Choose an option", choices=list(actions) + ["0"], default="1")
        if choice == "0":
            console.print("[green]Thank you for using the library desk![/]")
            break
        try:
            actions[choice]()
        except StorageError as e:
            console.print(f"[red]Storage unavailable: {escape(str(e))}[/]")
        print()


def run() -> None:
    if len(sys.argv) > 1:
        app()
    else:
        logging.basicConfig(level=settings.log_level.upper())
        set_output_mode(cli_config.get("preferences.output_mode", "plain"))
        run_menu()


if __name__ == "__main__":
    run()
