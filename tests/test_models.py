from datetime import datetime, timedelta

import pytest

from libdesk.models import Book, Loan, LoanDetails, LoanStatus, Staff, User


def test_book_rejects_negative_stock():
    with pytest.raises(ValueError):
        Book(1, "X", "Y", "Z", stock=-1)


def test_book_summary_line():
    assert str(Book(1, "Laskar Pelangi", "Andrea Hirata", "Novel", 3)) == \
        "[1] Laskar Pelangi - Andrea Hirata (Novel) - Stock: 3"


def test_loan_open_and_closed():
    borrowed = datetime(2024, 5, 1, 10, 0)
    open_loan = Loan(1, book_id=1, user_id=1, staff_id=1, borrowed_at=borrowed)
    assert open_loan.is_open

    closed = Loan(2, 1, 1, 1, borrowed, returned_at=borrowed + timedelta(days=3), status="Returned")
    assert closed.status is LoanStatus.RETURNED
    assert not closed.is_open


def test_closed_loan_needs_a_valid_return_date():
    borrowed = datetime(2024, 5, 1, 10, 0)
    with pytest.raises(ValueError):
        Loan(1, 1, 1, 1, borrowed, returned_at=None, status=LoanStatus.RETURNED)
    with pytest.raises(ValueError):
        Loan(1, 1, 1, 1, borrowed, returned_at=borrowed - timedelta(days=1), status=LoanStatus.RETURNED)


def test_loan_round_trips_through_rows():
    row = {
        "id": 4, "book_id": 2, "user_id": 3, "staff_id": 1,
        "borrowed_at": "2024-05-01 10:00:00", "returned_at": None, "status": "Active",
    }
    loan = Loan.from_dict(row)
    assert loan.borrowed_at == datetime(2024, 5, 1, 10, 0)
    assert loan.to_dict()["status"] == "Active"


def test_loan_details_summary():
    details = LoanDetails(
        loan=Loan(5, 1, 1, 1, datetime(2024, 5, 1)),
        book=Book(1, "Bumi Manusia", "Pramoedya Ananta Toer", "Novel", 1),
        user=User(1, "Siti Rahma"),
        staff=Staff(1, "Dewi Lestari"),
    )
    assert str(details) == "[5] Book: Bumi Manusia - Borrower: Siti Rahma - Status: Active"
    assert details.to_dict()["user_name"] == "Siti Rahma"
