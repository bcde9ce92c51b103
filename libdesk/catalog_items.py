"""Read-only catalog views over the library's holdings.

The set of holding kinds is closed: books tracked in the store, periodicals
and digital media supplied as literal parameters. Each kind is a frozen
dataclass built by its own factory, and the uniform operations
(``item_id``, ``display_info``, ``is_available``) dispatch on the variant
with ``match``.

Items are snapshots. Two items built from the same book at different times
may disagree on availability if stock changed in between.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Union

from libdesk.models import Book


@dataclass(frozen=True)
class BookItem:
    item_id: int
    title: str
    author: str
    category: str
    stock: int


@dataclass(frozen=True)
class PeriodicalItem:
    item_id: int
    title: str
    edition: str
    copies: int


@dataclass(frozen=True)
class DigitalMediaItem:
    item_id: int
    title: str
    media_format: str
    licensed: bool


CatalogItem = Union[BookItem, PeriodicalItem, DigitalMediaItem]


def _require(**fields: object) -> None:
    missing = [name for name, value in fields.items() if value is None]
    if missing:
        raise ValueError(f"Missing required catalog fields: {', '.join(missing)}")


# ------------------------- Factories ------------------------- #
def book_item(book: Book) -> BookItem:
    """Wrap a stored book. Stock bounds are the loan engine's concern, not checked here."""
    if book is None:
        raise ValueError("A book is required to build a catalog item.")
    _require(id=book.id, title=book.title, stock=book.stock)
    return BookItem(
        item_id=book.id,
        title=book.title,
        author=book.author or "",
        category=book.category or "",
        stock=book.stock,
    )


def periodical_item(item_id: int, title: str, edition: str, copies: int) -> PeriodicalItem:
    _require(item_id=item_id, title=title, edition=edition, copies=copies)
    return PeriodicalItem(item_id=item_id, title=title, edition=edition, copies=copies)


def digital_media_item(item_id: int, title: str, media_format: str, licensed: bool) -> DigitalMediaItem:
    _require(item_id=item_id, title=title, media_format=media_format, licensed=licensed)
    return DigitalMediaItem(item_id=item_id, title=title, media_format=media_format, licensed=bool(licensed))


def build_catalog_items(books: Iterable[Book], extras: Iterable[CatalogItem] = ()) -> List[CatalogItem]:
    """One BookItem per book in the given order, followed by the extra holdings.

    No sorting or de-duplication happens here.
    """
    items: List[CatalogItem] = [book_item(book) for book in books]
    items.extend(extras)
    return items


# Non-book holdings that are not tracked as book rows
SAMPLE_HOLDINGS = (
    periodical_item(1001, "National Geographic", "June 2023", 3),
    digital_media_item(2001, "Python Programming Course", "Video", True),
)


# ------------------------- Uniform operations ------------------------- #
def item_id(item: CatalogItem) -> int:
    match item:
        case BookItem(item_id=ident) | PeriodicalItem(item_id=ident) | DigitalMediaItem(item_id=ident):
            return ident
    raise TypeError(f"Unsupported catalog item: {item!r}")


def kind_label(item: CatalogItem) -> str:
    match item:
        case BookItem():
            return "Book"
        case PeriodicalItem():
            return "Periodical"
        case DigitalMediaItem():
            return "Digital Media"
    raise TypeError(f"Unsupported catalog item: {item!r}")


def display_info(item: CatalogItem) -> str:
    match item:
        case BookItem(title=title, author=author, category=category, stock=stock):
            return f"Book: {title} by {author} ({category}) - Stock: {stock}"
        case PeriodicalItem(title=title, edition=edition, copies=copies):
            return f"Periodical: {title} - Edition: {edition} - Copies: {copies}"
        case DigitalMediaItem(title=title, media_format=media_format, licensed=licensed):
            access = "downloadable" if licensed else "not downloadable"
            return f"Digital Media: {title} ({media_format}) - {access}"
    raise TypeError(f"Unsupported catalog item: {item!r}")


def is_available(item: CatalogItem) -> bool:
    match item:
        case BookItem(stock=stock):
            return stock > 0
        case PeriodicalItem(copies=copies):
            return copies > 0
        case DigitalMediaItem(licensed=licensed):
            return licensed
    raise TypeError(f"Unsupported catalog item: {item!r}")


def to_dict(item: CatalogItem) -> dict:
    return {
        "id": item_id(item),
        "kind": kind_label(item),
        "info": display_info(item),
        "available": is_available(item),
    }
