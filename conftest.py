import asyncio

import pytest

from libdesk.library import Library
from libdesk.store import SQLiteLibraryStore


@pytest.fixture
def store(tmp_path, request):
    # Unique database file per test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    return SQLiteLibraryStore(db_file=db_file)


@pytest.fixture
def lib(store):
    return Library(store)


@pytest.fixture
def people(store):
    """One user and one staff member, both with id 1."""
    asyncio.run(store.add_user("Budi Santoso", "Jl. Merdeka 10", "0812-1111-2222"))
    asyncio.run(store.add_staff("Dewi Lestari", "Head Librarian", "0815-7777-8888"))
    return store
