import asyncio

import pytest

from libdesk.catalog_items import is_available, item_id, periodical_item
from libdesk.lending import LendingFailure
from libdesk.library import Library
from libdesk.store import SQLiteLibraryStore


def test_empty_catalog(lib):
    assert asyncio.run(lib.list_books()) == []
    assert asyncio.run(lib.test_connection()) is True


def test_add_and_search_books(lib):
    result = asyncio.run(lib.add_book("Laskar Pelangi", "Andrea Hirata", "Novel", 3))
    asyncio.run(lib.add_book("Clean Code", "Robert C. Martin", "Programming", 1))

    assert result.success
    assert result.message == "Book 'Laskar Pelangi' added successfully!"
    assert [b.title for b in asyncio.run(lib.search_books("pelangi"))] == ["Laskar Pelangi"]
    assert [b.title for b in asyncio.run(lib.search_books("programming"))] == ["Clean Code"]
    assert [b.title for b in asyncio.run(lib.search_books("martin"))] == ["Clean Code"]
    assert asyncio.run(lib.search_books("nothing-like-this")) == []


def test_search_treats_wildcards_literally(lib):
    asyncio.run(lib.add_book("Laskar Pelangi", "Andrea Hirata", "Novel", 3))
    asyncio.run(lib.add_book("snake_case Style", "Guido", "Programming", 1))
    asyncio.run(lib.add_book("100% Indonesia", "Tim Redaksi", "Travel", 1))

    assert [b.title for b in asyncio.run(lib.search_books("_"))] == ["snake_case Style"]
    assert [b.title for b in asyncio.run(lib.search_books("%"))] == ["100% Indonesia"]
    assert asyncio.run(lib.search_books("\\")) == []


@pytest.mark.parametrize("title,author,stock", [
    ("", "Someone", 1),
    ("1234", "Someone", 1),
    ("Title", "   ", 1),
    ("Title", "42", 1),
    ("Title", "Someone", -1),
])
def test_add_book_rejects_bad_input(lib, title, author, stock):
    result = asyncio.run(lib.add_book(title, author, "Novel", stock))
    assert not result.success
    assert asyncio.run(lib.list_books()) == []


def test_add_book_defaults_blank_category(lib):
    asyncio.run(lib.add_book("<b>Sapiens</b>", "Yuval Noah Harari", "  ", 2))
    book = asyncio.run(lib.list_books())[0]
    assert book.title == "Sapiens"
    assert book.category == "General"


def test_end_to_end_borrow_and_return(lib, people):
    asyncio.run(lib.add_book("X", "Someone", "Novel", 1))

    borrowed = asyncio.run(lib.borrow_book(1, 1, 1))
    assert borrowed.success
    assert borrowed.message == "Book borrowed successfully!"
    assert asyncio.run(lib.list_books())[0].stock == 0
    loans = asyncio.run(lib.list_active_loans())
    assert len(loans) == 1 and loans[0].book.id == 1

    returned = asyncio.run(lib.return_book(loans[0].loan.id, 1))
    assert returned.success
    assert asyncio.run(lib.list_books())[0].stock == 1
    assert asyncio.run(lib.list_active_loans()) == []


def test_borrow_messages_distinguish_causes(lib, people):
    asyncio.run(lib.add_book("X", "Someone", "Novel", 0))

    missing = asyncio.run(lib.borrow_book(999, 1, 1))
    empty = asyncio.run(lib.borrow_book(1, 1, 1))

    assert missing.failure is LendingFailure.NOT_FOUND
    assert empty.failure is LendingFailure.OUT_OF_STOCK
    assert missing.message == "Book not found!"
    assert empty.message == "Book is currently out of stock!"
    assert missing.message != empty.message


def test_second_return_reports_already_returned(lib, people):
    asyncio.run(lib.add_book("X", "Someone", "Novel", 1))
    asyncio.run(lib.borrow_book(1, 1, 1))
    loan_id = asyncio.run(lib.list_active_loans())[0].id
    asyncio.run(lib.return_book(loan_id, 1))

    again = asyncio.run(lib.return_book(loan_id, 1))

    assert not again
    assert again.message == "This loan has already been returned."
    assert asyncio.run(lib.list_books())[0].stock == 1


def test_available_books_hides_empty_stock(lib):
    asyncio.run(lib.add_book("In", "Someone", "Novel", 2))
    asyncio.run(lib.add_book("Out", "Someone", "Novel", 0))
    assert [b.title for b in asyncio.run(lib.list_available_books())] == ["In"]


def test_inventory_report_lists_books_in_store_order(lib):
    for title in ("Gamma", "Alpha", "Beta"):
        asyncio.run(lib.add_book(title, "Someone", "Novel", 1))

    report = asyncio.run(lib.build_inventory_report("Admin"))

    assert [b.title for b in report.books] == ["Gamma", "Alpha", "Beta"]
    assert report.author == "Admin"


def test_monthly_report_includes_active_loans(lib, people):
    asyncio.run(lib.add_book("X", "Someone", "Novel", 2))
    asyncio.run(lib.borrow_book(1, 1, 1))

    text = asyncio.run(lib.build_monthly_report("Admin")).render()

    assert "Daftar Buku:" in text
    assert "Daftar Peminjaman:" in text
    assert "Borrower: Budi Santoso" in text


def test_membership_report_lists_users(lib, people):
    report = asyncio.run(lib.build_membership_report("Admin"))
    assert [u.name for u in report.users] == ["Budi Santoso"]


def test_unknown_report_kind(lib):
    with pytest.raises(ValueError):
        asyncio.run(lib.build_report("yearly", "Admin"))


def test_catalog_items_from_books_plus_extras(lib):
    asyncio.run(lib.add_book("X", "Someone", "Novel", 0))
    books = asyncio.run(lib.list_books())
    extra = periodical_item(1001, "National Geographic", "June 2023", 3)

    items = lib.build_catalog_items(books, [extra])

    assert [item_id(i) for i in items] == [1, 1001]
    assert [is_available(i) for i in items] == [False, True]
    assert len(asyncio.run(lib.list_catalog_items())) == 1


def test_staff_listing(lib, people):
    assert [s.name for s in asyncio.run(lib.list_staff())] == ["Dewi Lestari"]


def test_seeded_database(tmp_path):
    lib = Library(SQLiteLibraryStore(str(tmp_path / "seeded.db"), seed=True))
    assert len(asyncio.run(lib.list_books())) == 4
    assert len(asyncio.run(lib.list_users())) == 3
    assert len(asyncio.run(lib.list_staff())) == 2


def test_persistence_across_instances(tmp_path):
    db_file = str(tmp_path / "persist.db")
    asyncio.run(Library(SQLiteLibraryStore(db_file)).add_book("Sapiens", "Yuval Noah Harari", "History", 2))

    lib2 = Library(SQLiteLibraryStore(db_file))
    assert asyncio.run(lib2.list_books())[0].title == "Sapiens"
