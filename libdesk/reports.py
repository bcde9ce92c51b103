"""Report assembly.

``ReportBuilder`` accumulates fields and entity collections into a private
buffer; ``build()`` hands back an immutable ``Report`` snapshot. Builders are
single-use: ``ReportDirector`` takes a fresh one for every recipe, so two
reports never share collections.

Rendered layout::

    === <title> ===
    Date: dd/mm/yyyy
    Compiled by: <author>

    <header>

    Daftar Buku:
    - <book line>
    ...

    <footer>

Sections appear only for non-empty collections, always in the order books,
loans, users.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from libdesk.models import Book, LoanDetails, User

logger = logging.getLogger(__name__)

SECTION_LABELS = {
    "books": "Daftar Buku",
    "loans": "Daftar Peminjaman",
    "users": "Daftar Pengguna",
}

MONTHLY_TITLE = "Monthly Library Report"
INVENTORY_TITLE = "Book Inventory Report"
MEMBERSHIP_TITLE = "Library Member Report"


@dataclass(frozen=True)
class Report:
    title: Optional[str] = None
    date: Optional[datetime] = None
    author: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None
    books: Tuple[Book, ...] = field(default_factory=tuple)
    loans: Tuple[LoanDetails, ...] = field(default_factory=tuple)
    users: Tuple[User, ...] = field(default_factory=tuple)

    def render(self) -> str:
        lines: List[str] = []
        if self.title is not None:
            lines.append(f"=== {self.title} ===")
        if self.date is not None:
            lines.append(f"Date: {self.date:%d/%m/%Y}")
        if self.author is not None:
            lines.append(f"Compiled by: {self.author}")
        if self.header is not None:
            lines.extend(["", self.header])

        for key, entries in (("books", self.books), ("loans", self.loans), ("users", self.users)):
            if not entries:
                continue
            lines.extend(["", f"{SECTION_LABELS[key]}:"])
            lines.extend(f"- {entry}" for entry in entries)

        if self.footer is not None:
            lines.extend(["", self.footer])
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.render()

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "date": self.date.isoformat() if self.date else None,
            "author": self.author,
            "header": self.header,
            "footer": self.footer,
            "books": [b.to_dict() for b in self.books],
            "loans": [l.to_dict() for l in self.loans],
            "users": [u.to_dict() for u in self.users],
        }


def _required(value, what: str):
    if value is None:
        raise ValueError(f"Report {what} cannot be None.")
    return value


class ReportBuilder:
    """Fluent accumulator for a single report. Every step returns the builder."""

    def __init__(self) -> None:
        self._title: Optional[str] = None
        self._date: Optional[datetime] = None
        self._author: Optional[str] = None
        self._header: Optional[str] = None
        self._footer: Optional[str] = None
        self._books: List[Book] = []
        self._loans: List[LoanDetails] = []
        self._users: List[User] = []

    def set_title(self, title: str) -> "ReportBuilder":
        self._title = _required(title, "title")
        return self

    def set_date(self, date: datetime) -> "ReportBuilder":
        self._date = _required(date, "date")
        return self

    def set_author(self, author: str) -> "ReportBuilder":
        self._author = _required(author, "author")
        return self

    def set_header(self, header: str) -> "ReportBuilder":
        self._header = _required(header, "header")
        return self

    def set_footer(self, footer: str) -> "ReportBuilder":
        self._footer = _required(footer, "footer")
        return self

    def add_book(self, book: Book) -> "ReportBuilder":
        self._books.append(_required(book, "book"))
        return self

    def add_books(self, books: Iterable[Book]) -> "ReportBuilder":
        for book in _required(books, "book collection"):
            self.add_book(book)
        return self

    def add_loan(self, loan: LoanDetails) -> "ReportBuilder":
        self._loans.append(_required(loan, "loan"))
        return self

    def add_loans(self, loans: Iterable[LoanDetails]) -> "ReportBuilder":
        for loan in _required(loans, "loan collection"):
            self.add_loan(loan)
        return self

    def add_user(self, user: User) -> "ReportBuilder":
        self._users.append(_required(user, "user"))
        return self

    def add_users(self, users: Iterable[User]) -> "ReportBuilder":
        for user in _required(users, "user collection"):
            self.add_user(user)
        return self

    def build(self) -> Report:
        """Snapshot whatever has been set so far. Later builder calls do not affect it."""
        return Report(
            title=self._title,
            date=self._date,
            author=self._author,
            header=self._header,
            footer=self._footer,
            books=tuple(self._books),
            loans=tuple(self._loans),
            users=tuple(self._users),
        )


class ReportDirector:
    """Fixed recipes for the named report kinds."""

    def __init__(
        self,
        builder_factory: Callable[[], ReportBuilder] = ReportBuilder,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._builder_factory = builder_factory
        self._clock = clock

    def monthly(self, books: Iterable[Book], loans: Iterable[LoanDetails], author: str) -> Report:
        now = self._clock()
        report = (
            self._builder_factory()
            .set_title(MONTHLY_TITLE)
            .set_date(now)
            .set_author(author)
            .add_books(books)
            .add_loans(loans)
            .set_header("This report contains monthly library statistics")
            .set_footer(f"Printed on {now:%d/%m/%Y %H:%M:%S}")
            .build()
        )
        logger.info(f"Monthly report built: {len(report.books)} books, {len(report.loans)} active loans")
        return report

    def inventory(self, books: Iterable[Book], author: str) -> Report:
        now = self._clock()
        report = (
            self._builder_factory()
            .set_title(INVENTORY_TITLE)
            .set_date(now)
            .set_author(author)
            .add_books(books)
            .set_header("Complete inventory of library books")
            .set_footer(f"Inventory as of {now:%B %Y}")
            .build()
        )
        logger.info(f"Inventory report built: {len(report.books)} books")
        return report

    def membership(self, users: Iterable[User], author: str) -> Report:
        now = self._clock()
        report = (
            self._builder_factory()
            .set_title(MEMBERSHIP_TITLE)
            .set_date(now)
            .set_author(author)
            .add_users(users)
            .set_header("List of all library members")
            .set_footer(f"Member data as of {now:%B %Y}")
            .build()
        )
        logger.info(f"Membership report built: {len(report.users)} members")
        return report
