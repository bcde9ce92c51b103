"""Persistence contract consumed by the core, and its SQLite implementation.

The core only talks to ``LibraryStore``. Reads return fresh rows on every
call; writes report a boolean outcome and never raise for ordinary database
failures. ``SQLiteLibraryStore`` opens one connection per operation and runs
the blocking work in a worker thread so callers can simply ``await`` it.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from libdesk.database import get_db_connection, initialize_database
from libdesk.models import Book, Loan, LoanDetails, LoanStatus, Staff, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """A read against the store could not be completed."""


class LibraryStore(ABC):
    @abstractmethod
    async def test_connection(self) -> bool: ...

    @abstractmethod
    async def list_books(self) -> List[Book]: ...

    @abstractmethod
    async def search_books(self, keyword: str) -> List[Book]: ...

    @abstractmethod
    async def find_book(self, book_id: int) -> Optional[Book]: ...

    @abstractmethod
    async def add_book(self, title: str, author: str, category: str, stock: int) -> bool: ...

    @abstractmethod
    async def borrow_book(self, book_id: int, user_id: int, staff_id: int) -> bool:
        """Decrement stock and open a loan as one write. False if nothing was applied."""

    @abstractmethod
    async def return_book(self, loan_id: int, book_id: int) -> bool:
        """Close an active loan and restore the book's stock as one write."""

    @abstractmethod
    async def get_loan(self, loan_id: int) -> Optional[Loan]: ...

    @abstractmethod
    async def list_active_loans(self) -> List[LoanDetails]: ...

    @abstractmethod
    async def list_users(self) -> List[User]: ...

    @abstractmethod
    async def list_staff(self) -> List[Staff]: ...


_LOAN_JOIN = """
    SELECT l.id, l.book_id, l.user_id, l.staff_id, l.borrowed_at, l.returned_at, l.status,
           b.title AS book_title, b.author AS book_author, b.category AS book_category,
           b.stock AS book_stock,
           u.name AS user_name, u.address AS user_address, u.phone AS user_phone,
           s.name AS staff_name, s.role AS staff_role, s.phone AS staff_phone
    FROM loans l
    JOIN books b ON b.id = l.book_id
    JOIN users u ON u.id = l.user_id
    JOIN staff s ON s.id = l.staff_id
"""


def _escape_like(keyword: str) -> str:
    return keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _entities(rows: List[sqlite3.Row], factory: Callable[[dict], T]) -> List[T]:
    try:
        return [factory(dict(row)) for row in rows]
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Stored row is malformed: {exc}") from exc


def _loan_details_from_row(data: dict) -> LoanDetails:
    return LoanDetails(
        loan=Loan.from_dict(data),
        book=Book(
            id=data["book_id"],
            title=data["book_title"],
            author=data["book_author"],
            category=data["book_category"],
            stock=data["book_stock"],
        ),
        user=User(
            id=data["user_id"],
            name=data["user_name"],
            address=data["user_address"] or "",
            phone=data["user_phone"] or "",
        ),
        staff=Staff(
            id=data["staff_id"],
            name=data["staff_name"],
            role=data["staff_role"] or "",
            phone=data["staff_phone"] or "",
        ),
    )


class SQLiteLibraryStore(LibraryStore):
    """Store backed by a local SQLite file."""

    def __init__(
        self,
        db_file: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
        seed: bool = False,
    ) -> None:
        self.db_file = db_file
        self._clock = clock
        try:
            initialize_database(db_file, seed=seed)
        except sqlite3.Error as exc:
            # Reads raise StorageError and writes return False until the file is usable
            logger.error(f"Could not initialize database {db_file or 'default'}: {exc}")

    # ------------------------- Helpers ------------------------- #
    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            conn = get_db_connection(self.db_file)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open the database: {exc}") from exc
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Query failed: {exc}") from exc
        finally:
            conn.close()

    def _now(self) -> str:
        return self._clock().isoformat(sep=" ")

    # ------------------------- Reads ------------------------- #
    async def test_connection(self) -> bool:
        def ping() -> bool:
            try:
                self._query("SELECT 1")
                return True
            except StorageError as exc:
                logger.error(f"Database connection test failed: {exc}")
                return False

        return await asyncio.to_thread(ping)

    async def list_books(self) -> List[Book]:
        rows = await asyncio.to_thread(
            self._query, "SELECT id, title, author, category, stock FROM books ORDER BY id"
        )
        return _entities(rows, Book.from_dict)

    async def search_books(self, keyword: str) -> List[Book]:
        pattern = f"%{_escape_like(keyword.strip())}%"
        rows = await asyncio.to_thread(
            self._query,
            "SELECT id, title, author, category, stock FROM books "
            "WHERE title LIKE ? ESCAPE '\\' OR author LIKE ? ESCAPE '\\' OR category LIKE ? ESCAPE '\\' "
            "ORDER BY id",
            (pattern, pattern, pattern),
        )
        return _entities(rows, Book.from_dict)

    async def find_book(self, book_id: int) -> Optional[Book]:
        rows = await asyncio.to_thread(
            self._query, "SELECT id, title, author, category, stock FROM books WHERE id = ?", (book_id,)
        )
        books = _entities(rows, Book.from_dict)
        return books[0] if books else None

    async def get_loan(self, loan_id: int) -> Optional[Loan]:
        rows = await asyncio.to_thread(
            self._query,
            "SELECT id, book_id, user_id, staff_id, borrowed_at, returned_at, status FROM loans WHERE id = ?",
            (loan_id,),
        )
        loans = _entities(rows, Loan.from_dict)
        return loans[0] if loans else None

    async def list_active_loans(self) -> List[LoanDetails]:
        rows = await asyncio.to_thread(
            self._query, _LOAN_JOIN + " WHERE l.status = ? ORDER BY l.id", (LoanStatus.ACTIVE.value,)
        )
        return _entities(rows, _loan_details_from_row)

    async def list_users(self) -> List[User]:
        rows = await asyncio.to_thread(self._query, "SELECT id, name, address, phone FROM users ORDER BY id")
        return _entities(rows, User.from_dict)

    async def list_staff(self) -> List[Staff]:
        rows = await asyncio.to_thread(self._query, "SELECT id, name, role, phone FROM staff ORDER BY id")
        return _entities(rows, Staff.from_dict)

    # ------------------------- Writes ------------------------- #
    def _write(self, action: str, statements: Callable[[sqlite3.Connection], bool]) -> bool:
        """Run ``statements`` in a single transaction; roll back when it reports False."""
        try:
            conn = get_db_connection(self.db_file)
        except sqlite3.Error as exc:
            logger.error(f"{action} failed, database unavailable: {exc}")
            return False
        try:
            applied = statements(conn)
            if applied:
                conn.commit()
            else:
                conn.rollback()
            return applied
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error(f"{action} failed: {exc}")
            return False
        finally:
            conn.close()

    async def add_book(self, title: str, author: str, category: str, stock: int) -> bool:
        def insert(conn: sqlite3.Connection) -> bool:
            conn.execute(
                "INSERT INTO books (title, author, category, stock) VALUES (?, ?, ?, ?)",
                (title, author, category, stock),
            )
            return True

        return await asyncio.to_thread(self._write, "Adding book", insert)

    async def borrow_book(self, book_id: int, user_id: int, staff_id: int) -> bool:
        def borrow(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                "UPDATE books SET stock = stock - 1 WHERE id = ? AND stock > 0", (book_id,)
            )
            if cursor.rowcount != 1:
                return False
            conn.execute(
                "INSERT INTO loans (book_id, user_id, staff_id, borrowed_at, returned_at, status) "
                "VALUES (?, ?, ?, ?, NULL, ?)",
                (book_id, user_id, staff_id, self._now(), LoanStatus.ACTIVE.value),
            )
            return True

        return await asyncio.to_thread(self._write, f"Borrowing book {book_id}", borrow)

    async def return_book(self, loan_id: int, book_id: int) -> bool:
        def give_back(conn: sqlite3.Connection) -> bool:
            # returned_at never precedes borrowed_at, even if the clock steps back
            cursor = conn.execute(
                "UPDATE loans SET status = ?, returned_at = MAX(?, borrowed_at) "
                "WHERE id = ? AND book_id = ? AND status = ?",
                (LoanStatus.RETURNED.value, self._now(), loan_id, book_id, LoanStatus.ACTIVE.value),
            )
            if cursor.rowcount != 1:
                return False
            cursor = conn.execute("UPDATE books SET stock = stock + 1 WHERE id = ?", (book_id,))
            return cursor.rowcount == 1

        return await asyncio.to_thread(self._write, f"Returning loan {loan_id}", give_back)

    # ------------------------- Seeding helpers ------------------------- #
    async def add_user(self, name: str, address: str = "", phone: str = "") -> bool:
        def insert(conn: sqlite3.Connection) -> bool:
            conn.execute("INSERT INTO users (name, address, phone) VALUES (?, ?, ?)", (name, address, phone))
            return True

        return await asyncio.to_thread(self._write, "Adding user", insert)

    async def add_staff(self, name: str, role: str = "", phone: str = "") -> bool:
        def insert(conn: sqlite3.Connection) -> bool:
            conn.execute("INSERT INTO staff (name, role, phone) VALUES (?, ?, ?)", (name, role, phone))
            return True

        return await asyncio.to_thread(self._write, "Adding staff", insert)
