"""Domain entities for the lending desk.

Books, users, staff and loans are plain dataclasses loaded from the store.
Every entity is frozen: a changed stock count or a closed loan arrives as a
new value read back from the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class Book:
    id: int
    title: str
    author: str
    category: str
    stock: int = 1

    def __post_init__(self) -> None:
        if self.id is None:
            raise ValueError("Book id is required.")
        if self.stock < 0:
            raise ValueError(f"Book {self.id} has negative stock ({self.stock}).")

    def __str__(self) -> str:
        return f"[{self.id}] {self.title} - {self.author} ({self.category}) - Stock: {self.stock}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "stock": self.stock,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Book":
        return Book(
            id=int(data["id"]),
            title=data["title"],
            author=data["author"],
            category=data.get("category") or "General",
            stock=int(data.get("stock", 0)),
        )


@dataclass(frozen=True)
class User:
    """A registered library member."""

    id: int
    name: str
    address: str = ""
    phone: str = ""

    def __str__(self) -> str:
        return f"[{self.id}] {self.name} - {self.address} - {self.phone}"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "address": self.address, "phone": self.phone}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "User":
        return User(
            id=int(data["id"]),
            name=data["name"],
            address=data.get("address") or "",
            phone=data.get("phone") or "",
        )


@dataclass(frozen=True)
class Staff:
    """A staff member who can act as the lending agent for a loan."""

    id: int
    name: str
    role: str = ""
    phone: str = ""

    def __str__(self) -> str:
        return f"[{self.id}] {self.name} - {self.role} - {self.phone}"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role, "phone": self.phone}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Staff":
        return Staff(
            id=int(data["id"]),
            name=data["name"],
            role=data.get("role") or "",
            phone=data.get("phone") or "",
        )


@dataclass(frozen=True)
class Loan:
    id: int
    book_id: int
    user_id: int
    staff_id: int
    borrowed_at: datetime
    returned_at: Optional[datetime] = None
    status: LoanStatus = LoanStatus.ACTIVE

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", LoanStatus(self.status))
        if self.status is LoanStatus.RETURNED:
            if self.returned_at is None:
                raise ValueError(f"Loan {self.id} is returned but has no return date.")
            if self.returned_at < self.borrowed_at:
                raise ValueError(f"Loan {self.id} was returned before it was borrowed.")

    @property
    def is_open(self) -> bool:
        return self.status is LoanStatus.ACTIVE and self.returned_at is None

    def __str__(self) -> str:
        return f"[{self.id}] Book #{self.book_id} - User #{self.user_id} - Status: {self.status.value}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "staff_id": self.staff_id,
            "borrowed_at": self.borrowed_at.isoformat(),
            "returned_at": self.returned_at.isoformat() if self.returned_at else None,
            "status": self.status.value,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Loan":
        return Loan(
            id=int(data["id"]),
            book_id=int(data["book_id"]),
            user_id=int(data["user_id"]),
            staff_id=int(data["staff_id"]),
            borrowed_at=_parse_timestamp(data["borrowed_at"]),
            returned_at=_parse_timestamp(data.get("returned_at")),
            status=LoanStatus(data.get("status", LoanStatus.ACTIVE.value)),
        )


@dataclass(frozen=True)
class LoanDetails:
    """A loan joined with its book, borrower and acting staff member.

    The store performs the join before handing the view out; nothing in the
    core writes through these references.
    """

    loan: Loan
    book: Book
    user: User
    staff: Staff

    @property
    def id(self) -> int:
        return self.loan.id

    def __str__(self) -> str:
        return (
            f"[{self.loan.id}] Book: {self.book.title} - Borrower: {self.user.name}"
            f" - Status: {self.loan.status.value}"
        )

    def to_dict(self) -> dict:
        data = self.loan.to_dict()
        data.update(
            {
                "book_title": self.book.title,
                "user_name": self.user.name,
                "staff_name": self.staff.name,
            }
        )
        return data
