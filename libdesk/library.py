import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from libdesk.catalog_items import CatalogItem, build_catalog_items
from libdesk.lending import LendingFailure, LendingResult, LoanEngine
from libdesk.models import Book, LoanDetails, Staff, User
from libdesk.reports import Report, ReportDirector
from libdesk.store import LibraryStore
from libdesk.utils.validators import StockValidator, TextValidator

logger = logging.getLogger(__name__)

BORROW_MESSAGES = {
    None: "Book borrowed successfully!",
    LendingFailure.NOT_FOUND: "Book not found!",
    LendingFailure.OUT_OF_STOCK: "Book is currently out of stock!",
    LendingFailure.PERSISTENCE_FAILURE: "Failed to borrow the book. Please try again.",
}

RETURN_MESSAGES = {
    None: "Book returned successfully!",
    LendingFailure.NOT_FOUND: "Loan not found for that book. Check the loan ID.",
    LendingFailure.ALREADY_RETURNED: "This loan has already been returned.",
    LendingFailure.PERSISTENCE_FAILURE: "Failed to return the book. Please try again.",
}


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str
    failure: Optional[LendingFailure] = None

    def __bool__(self) -> bool:
        return self.success


def _to_operation_result(result: LendingResult, messages: dict) -> OperationResult:
    return OperationResult(success=result.success, message=messages[result.failure], failure=result.failure)


class Library:
    """Entry point for the presentation layers: catalog, lending and reports over one store."""

    def __init__(self, store: LibraryStore, director: Optional[ReportDirector] = None) -> None:
        self.store = store
        self.lending = LoanEngine(store)
        self.director = director or ReportDirector()

    # ------------------------- Catalog ------------------------- #
    async def test_connection(self) -> bool:
        return await self.store.test_connection()

    async def list_books(self) -> List[Book]:
        return await self.store.list_books()

    async def list_available_books(self) -> List[Book]:
        return [book for book in await self.store.list_books() if book.stock > 0]

    async def search_books(self, keyword: str) -> List[Book]:
        return await self.store.search_books(keyword)

    async def add_book(self, title: str, author: str, category: str = "General", stock: int = 1) -> OperationResult:
        if not TextValidator.validate_title(title):
            return OperationResult(False, "Title must contain letters.")
        if not TextValidator.validate_author(author):
            return OperationResult(False, "Author cannot be empty or numeric.")
        if not StockValidator.validate_stock(stock):
            return OperationResult(False, "Stock must be a whole number of zero or more.")

        title = TextValidator.sanitize_text(title)
        author = TextValidator.sanitize_text(author)
        category = TextValidator.sanitize_text(category) or "General"
        if await self.store.add_book(title, author, category, stock):
            logger.info(f"Book added: {title} ({stock} copies)")
            return OperationResult(True, f"Book '{title}' added successfully!")
        return OperationResult(False, "Failed to add the book. Please try again.")

    def build_catalog_items(self, books: Iterable[Book], extras: Iterable[CatalogItem] = ()) -> List[CatalogItem]:
        return build_catalog_items(books, extras)

    async def list_catalog_items(self, extras: Iterable[CatalogItem] = ()) -> List[CatalogItem]:
        return build_catalog_items(await self.store.list_books(), extras)

    # ------------------------- Lending ------------------------- #
    async def borrow_book(self, book_id: int, user_id: int, staff_id: int) -> OperationResult:
        result = await self.lending.borrow(book_id, user_id, staff_id)
        return _to_operation_result(result, BORROW_MESSAGES)

    async def return_book(self, loan_id: int, book_id: int) -> OperationResult:
        result = await self.lending.return_loan(loan_id, book_id)
        return _to_operation_result(result, RETURN_MESSAGES)

    async def list_active_loans(self) -> List[LoanDetails]:
        return await self.lending.list_active_loans()

    # ------------------------- People ------------------------- #
    async def list_users(self) -> List[User]:
        return await self.store.list_users()

    async def list_staff(self) -> List[Staff]:
        return await self.store.list_staff()

    # ------------------------- Reports ------------------------- #
    async def build_monthly_report(self, author: str) -> Report:
        books = await self.store.list_books()
        loans = await self.lending.list_active_loans()
        return self.director.monthly(books, loans, author)

    async def build_inventory_report(self, author: str) -> Report:
        return self.director.inventory(await self.store.list_books(), author)

    async def build_membership_report(self, author: str) -> Report:
        return self.director.membership(await self.store.list_users(), author)

    async def build_report(self, kind: str, author: str) -> Report:
        builders = {
            "monthly": self.build_monthly_report,
            "inventory": self.build_inventory_report,
            "membership": self.build_membership_report,
        }
        if kind not in builders:
            raise ValueError(f"Unknown report kind: {kind}. Use monthly, inventory or membership.")
        return await builders[kind](author)
