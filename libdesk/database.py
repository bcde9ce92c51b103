import logging
import sqlite3
from typing import Optional

from libdesk.config import settings

logger = logging.getLogger(__name__)

# Default database file. Callers (and tests) may pass their own path to every helper.
DATABASE_FILE = settings.database_file


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database with rows addressable by column name."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the required tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                category TEXT NOT NULL DEFAULT 'General',
                stock INTEGER NOT NULL DEFAULT 1 CHECK(stock >= 0)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                address TEXT,
                phone TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS staff (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                role TEXT,
                phone TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                book_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                staff_id INTEGER NOT NULL,
                borrowed_at TIMESTAMP NOT NULL,
                returned_at TIMESTAMP,
                status TEXT NOT NULL DEFAULT 'Active' CHECK(status IN ('Active', 'Returned')),
                FOREIGN KEY (book_id) REFERENCES books(id),
                FOREIGN KEY (user_id) REFERENCES users(id),
                FOREIGN KEY (staff_id) REFERENCES staff(id)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(author)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_status ON loans(status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_book_id ON loans(book_id)")
        conn.commit()
    finally:
        conn.close()


DEMO_USERS = [
    ("Budi Santoso", "Jl. Merdeka 10", "0812-1111-2222"),
    ("Siti Rahma", "Jl. Sudirman 5", "0813-3333-4444"),
    ("Andi Wijaya", "Jl. Diponegoro 21", "0814-5555-6666"),
]

DEMO_STAFF = [
    ("Dewi Lestari", "Head Librarian", "0815-7777-8888"),
    ("Rudi Hartono", "Circulation Desk", "0816-9999-0000"),
]

DEMO_BOOKS = [
    ("Laskar Pelangi", "Andrea Hirata", "Novel", 3),
    ("Bumi Manusia", "Pramoedya Ananta Toer", "Novel", 2),
    ("Clean Code", "Robert C. Martin", "Programming", 1),
    ("Sapiens", "Yuval Noah Harari", "History", 2),
]


def seed_demo_data(db_file: Optional[str] = None) -> None:
    """Insert demo users, staff and books into tables that are still empty."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        seeded = []
        cursor.execute("SELECT COUNT(*) FROM users")
        if cursor.fetchone()[0] == 0:
            cursor.executemany("INSERT INTO users (name, address, phone) VALUES (?, ?, ?)", DEMO_USERS)
            seeded.append("users")
        cursor.execute("SELECT COUNT(*) FROM staff")
        if cursor.fetchone()[0] == 0:
            cursor.executemany("INSERT INTO staff (name, role, phone) VALUES (?, ?, ?)", DEMO_STAFF)
            seeded.append("staff")
        cursor.execute("SELECT COUNT(*) FROM books")
        if cursor.fetchone()[0] == 0:
            cursor.executemany(
                "INSERT INTO books (title, author, category, stock) VALUES (?, ?, ?, ?)", DEMO_BOOKS
            )
            seeded.append("books")
        conn.commit()
        if seeded:
            logger.info(f"Seeded demo data: {', '.join(seeded)}")
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None, seed: bool = False) -> None:
    """Create the schema and, when asked, fill empty tables with demo rows."""
    create_tables(db_file)
    if seed:
        seed_demo_data(db_file)
