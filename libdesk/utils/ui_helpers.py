import json
import os
from typing import Any, Callable, List, Sequence, Tuple

from rich.console import Console
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBDESK_CLI_OUTPUT"

_console = Console()

Column = Tuple[str, Callable[[Any], Any]]


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_rows(title: str, rows: Sequence[Any], columns: List[Column], empty_message: str) -> None:
    """Print entities in the current output mode.
    - plain: each entity's one-line summary
    - json: array of objects built from ``columns``
    - rich: Rich table
    """
    if not rows:
        print(empty_message)
        return

    mode = get_output_mode()
    if mode == "json":
        payload = [{name.lower(): getter(row) for name, getter in columns} for row in rows]
        print(json.dumps(payload, ensure_ascii=False, default=str))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for name, _ in columns:
            table.add_column(name)
        for row in rows:
            table.add_row(*(str(getter(row)) for _, getter in columns))
        _console.print(table)
    else:
        for row in rows:
            print(str(row))


BOOK_COLUMNS: List[Column] = [
    ("ID", lambda b: b.id),
    ("Title", lambda b: b.title),
    ("Author", lambda b: b.author),
    ("Category", lambda b: b.category),
    ("Stock", lambda b: b.stock),
]

LOAN_COLUMNS: List[Column] = [
    ("ID", lambda d: d.loan.id),
    ("Book_ID", lambda d: d.book.id),
    ("Book", lambda d: d.book.title),
    ("Borrower", lambda d: d.user.name),
    ("Staff", lambda d: d.staff.name),
    ("Borrowed", lambda d: f"{d.loan.borrowed_at:%d/%m/%Y}"),
    ("Status", lambda d: d.loan.status.value),
]

USER_COLUMNS: List[Column] = [
    ("ID", lambda u: u.id),
    ("Name", lambda u: u.name),
    ("Address", lambda u: u.address),
    ("Phone", lambda u: u.phone),
]

STAFF_COLUMNS: List[Column] = [
    ("ID", lambda s: s.id),
    ("Name", lambda s: s.name),
    ("Role", lambda s: s.role),
    ("Phone", lambda s: s.phone),
]


def print_report(report: Any) -> None:
    """Print a report as text, or as JSON in json mode."""
    if get_output_mode() == "json":
        print(json.dumps(report.to_dict(), ensure_ascii=False))
    else:
        print(report.render())

