from dataclasses import FrozenInstanceError, replace

import pytest

from libdesk.catalog_items import (
    BookItem,
    DigitalMediaItem,
    PeriodicalItem,
    book_item,
    build_catalog_items,
    digital_media_item,
    display_info,
    is_available,
    item_id,
    kind_label,
    periodical_item,
)
from libdesk.models import Book


def test_book_item_availability_follows_stock():
    assert is_available(book_item(Book(1, "X", "Someone", "Novel", stock=0))) is False
    assert is_available(book_item(Book(1, "X", "Someone", "Novel", stock=1))) is True


def test_book_item_is_a_snapshot():
    book = Book(7, "Dune", "Frank Herbert", "Sci-Fi", stock=1)
    before = book_item(book)
    after = book_item(replace(book, stock=0))

    assert is_available(before) is True
    assert is_available(after) is False


def test_book_cannot_be_changed_in_place():
    book = Book(7, "Dune", "Frank Herbert", "Sci-Fi", stock=1)
    with pytest.raises(FrozenInstanceError):
        book.stock = 0


def test_periodical_and_media_availability():
    assert is_available(periodical_item(1001, "National Geographic", "June 2023", 3))
    assert not is_available(periodical_item(1002, "Tempo", "May 2023", 0))
    assert is_available(digital_media_item(2001, "Python Course", "Video", True))
    assert not is_available(digital_media_item(2002, "Old Lecture", "Audio", False))


def test_uniform_operations_per_kind():
    items = [
        book_item(Book(3, "Clean Code", "Robert C. Martin", "Programming", stock=2)),
        periodical_item(1001, "National Geographic", "June 2023", 3),
        digital_media_item(2001, "Python Course", "Video", True),
    ]

    assert [item_id(i) for i in items] == [3, 1001, 2001]
    assert [kind_label(i) for i in items] == ["Book", "Periodical", "Digital Media"]
    assert display_info(items[0]) == "Book: Clean Code by Robert C. Martin (Programming) - Stock: 2"
    assert "June 2023" in display_info(items[1])
    assert "Video" in display_info(items[2])


def test_build_catalog_items_keeps_insertion_order_and_duplicates():
    books = [
        Book(2, "B", "Author B", "Misc", stock=1),
        Book(1, "A", "Author A", "Misc", stock=0),
        Book(2, "B", "Author B", "Misc", stock=1),
    ]
    extra = periodical_item(1001, "National Geographic", "June 2023", 3)

    items = build_catalog_items(books, [extra])

    assert [item_id(i) for i in items] == [2, 1, 2, 1001]
    assert isinstance(items[0], BookItem)
    assert isinstance(items[-1], PeriodicalItem)


def test_build_catalog_items_empty():
    assert build_catalog_items([]) == []


@pytest.mark.parametrize("factory,args", [
    (periodical_item, (None, "Title", "June", 1)),
    (periodical_item, (1, None, "June", 1)),
    (periodical_item, (1, "Title", None, 1)),
    (digital_media_item, (1, "Title", None, True)),
    (digital_media_item, (1, "Title", "Video", None)),
])
def test_factories_reject_missing_fields(factory, args):
    with pytest.raises(ValueError):
        factory(*args)


def test_book_item_requires_a_book():
    with pytest.raises(ValueError):
        book_item(None)


def test_unknown_item_type_is_rejected():
    with pytest.raises(TypeError):
        display_info("not an item")


def test_digital_media_flag_is_normalized_to_bool():
    item = digital_media_item(2001, "Python Course", "Video", 1)
    assert isinstance(item, DigitalMediaItem)
    assert item.licensed is True
