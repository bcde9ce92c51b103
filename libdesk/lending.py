"""Loan lifecycle: borrowing and returning copies.

Stock is the only gate for opening a loan and the loan rows are the audit
trail. Each transition is a single write request to the store; its boolean
outcome is the ground truth. When a write is refused the engine reads the
current state once more to name the most likely cause. That diagnosis is
best effort: the state may have moved between the failed write and the read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from libdesk.models import LoanDetails
from libdesk.store import LibraryStore, StorageError

logger = logging.getLogger(__name__)


class LendingFailure(str, Enum):
    NOT_FOUND = "not_found"
    OUT_OF_STOCK = "out_of_stock"
    ALREADY_RETURNED = "already_returned"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class LendingResult:
    success: bool
    failure: Optional[LendingFailure] = None

    def __bool__(self) -> bool:
        return self.success


LENT = LendingResult(success=True)


class LoanEngine:
    def __init__(self, store: LibraryStore) -> None:
        self.store = store

    async def borrow(self, book_id: int, user_id: int, staff_id: int) -> LendingResult:
        """Take one copy of ``book_id`` out on behalf of ``user_id``, recorded by ``staff_id``."""
        if await self.store.borrow_book(book_id, user_id, staff_id):
            logger.info(f"Book {book_id} lent to user {user_id} by staff {staff_id}")
            return LENT

        failure = await self._diagnose_borrow(book_id)
        logger.warning(f"Borrowing book {book_id} refused: {failure.value}")
        return LendingResult(success=False, failure=failure)

    async def return_loan(self, loan_id: int, book_id: int) -> LendingResult:
        """Close ``loan_id`` and put its copy of ``book_id`` back on the shelf."""
        if await self.store.return_book(loan_id, book_id):
            logger.info(f"Loan {loan_id} closed, book {book_id} back in stock")
            return LENT

        failure = await self._diagnose_return(loan_id, book_id)
        logger.warning(f"Returning loan {loan_id} refused: {failure.value}")
        return LendingResult(success=False, failure=failure)

    async def list_active_loans(self) -> List[LoanDetails]:
        return await self.store.list_active_loans()

    # ------------------------- Diagnosis ------------------------- #
    async def _diagnose_borrow(self, book_id: int) -> LendingFailure:
        try:
            book = await self.store.find_book(book_id)
        except StorageError as exc:
            logger.error(f"Could not re-read book {book_id}: {exc}")
            return LendingFailure.PERSISTENCE_FAILURE
        if book is None:
            return LendingFailure.NOT_FOUND
        if book.stock <= 0:
            return LendingFailure.OUT_OF_STOCK
        return LendingFailure.PERSISTENCE_FAILURE

    async def _diagnose_return(self, loan_id: int, book_id: int) -> LendingFailure:
        try:
            loan = await self.store.get_loan(loan_id)
        except StorageError as exc:
            logger.error(f"Could not re-read loan {loan_id}: {exc}")
            return LendingFailure.PERSISTENCE_FAILURE
        if loan is None or loan.book_id != book_id:
            return LendingFailure.NOT_FOUND
        if not loan.is_open:
            return LendingFailure.ALREADY_RETURNED
        return LendingFailure.PERSISTENCE_FAILURE
