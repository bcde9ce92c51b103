from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from libdesk.models import Book, Loan, LoanDetails, Staff, User
from libdesk.reports import Report, ReportBuilder, ReportDirector

FIXED_NOW = datetime(2024, 6, 15, 9, 30, 0)


@pytest.fixture
def director():
    return ReportDirector(clock=lambda: FIXED_NOW)


def _books():
    return [
        Book(1, "Laskar Pelangi", "Andrea Hirata", "Novel", 3),
        Book(2, "Bumi Manusia", "Pramoedya Ananta Toer", "Novel", 0),
        Book(3, "Clean Code", "Robert C. Martin", "Programming", 1),
    ]


def _loan():
    return LoanDetails(
        loan=Loan(9, 2, 1, 1, datetime(2024, 6, 1)),
        book=Book(2, "Bumi Manusia", "Pramoedya Ananta Toer", "Novel", 0),
        user=User(1, "Budi Santoso"),
        staff=Staff(1, "Dewi Lestari"),
    )


def test_builder_calls_are_chainable_and_cumulative():
    builder = ReportBuilder()
    books = _books()

    assert builder.set_title("Custom") is builder
    builder.add_books(books[:2]).add_books(books[2:]).add_book(books[0])

    report = builder.build()
    assert [b.id for b in report.books] == [1, 2, 3, 1]


def test_build_is_a_snapshot():
    builder = ReportBuilder().set_title("Partial").add_book(_books()[0])
    first = builder.build()
    builder.add_book(_books()[1]).set_footer("later")

    assert len(first.books) == 1
    assert first.footer is None
    assert isinstance(first.books, tuple)


def test_built_report_entries_cannot_be_mutated():
    report = ReportBuilder().add_books(_books()).build()
    rendered = report.render()

    with pytest.raises(FrozenInstanceError):
        report.books[0].stock = 0
    assert report.render() == rendered


def test_unset_fields_are_omitted_from_rendering():
    text = ReportBuilder().set_title("Only Title").build().render()
    assert text == "=== Only Title ===\n"


def test_empty_report_renders_nothing():
    assert Report().render() == "\n"


def test_builder_rejects_none():
    with pytest.raises(ValueError):
        ReportBuilder().set_title(None)
    with pytest.raises(ValueError):
        ReportBuilder().add_book(None)
    with pytest.raises(ValueError):
        ReportBuilder().add_users(None)


def test_sections_follow_fixed_order():
    report = (
        ReportBuilder()
        .add_user(User(1, "Budi Santoso", "Jl. Merdeka 10", "0812"))
        .add_loan(_loan())
        .add_book(_books()[0])
        .build()
    )
    text = report.render()
    assert text.index("Daftar Buku:") < text.index("Daftar Peminjaman:") < text.index("Daftar Pengguna:")
    assert "- [1] Laskar Pelangi - Andrea Hirata (Novel) - Stock: 3" in text
    assert "- [9] Book: Bumi Manusia - Borrower: Budi Santoso - Status: Active" in text
    assert "- [1] Budi Santoso - Jl. Merdeka 10 - 0812" in text


def test_monthly_report_with_empty_collections(director):
    report = director.monthly([], [], "Admin")
    text = report.render()

    assert "=== Monthly Library Report ===" in text
    assert "Date: 15/06/2024" in text
    assert "Compiled by: Admin" in text
    assert "contains monthly library statistics" in text
    assert "Printed on 15/06/2024 09:30:00" in text
    assert "Daftar Buku" not in text
    assert "Daftar Peminjaman" not in text


def test_monthly_report_lists_books_and_loans(director):
    report = director.monthly(_books(), [_loan()], "Admin")
    assert len(report.books) == 3
    assert len(report.loans) == 1
    assert report.users == ()


def test_inventory_report_keeps_store_order(director):
    books = _books()
    report = director.inventory(books, "Admin")

    assert report.title == "Book Inventory Report"
    assert list(report.books) == books
    assert report.loans == () and report.users == ()
    assert report.footer == "Inventory as of June 2024"


def test_membership_report_lists_users_only(director):
    users = [User(1, "Budi Santoso"), User(2, "Siti Rahma")]
    report = director.membership(users, "Librarian")

    assert report.title == "Library Member Report"
    assert report.author == "Librarian"
    assert list(report.users) == users
    assert "Daftar Buku" not in report.render()
    assert report.footer == "Member data as of June 2024"


def test_director_uses_a_fresh_builder_per_report(director):
    first = director.inventory(_books(), "Admin")
    second = director.inventory(_books()[:1], "Admin")

    assert len(first.books) == 3
    assert len(second.books) == 1


def test_report_to_dict(director):
    data = director.monthly(_books()[:1], [_loan()], "Admin").to_dict()
    assert data["title"] == "Monthly Library Report"
    assert data["date"] == FIXED_NOW.isoformat()
    assert data["books"][0]["title"] == "Laskar Pelangi"
    assert data["loans"][0]["book_title"] == "Bumi Manusia"
