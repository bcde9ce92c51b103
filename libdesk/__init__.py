"""Library Desk - lending and catalog core

This package contains:
- Domain entities (models.py)
- Catalog item views (catalog_items.py)
- Persistence contract and SQLite store (store.py, database.py)
- Loan lifecycle engine (lending.py)
- Report builder and recipes (reports.py)
- Service facade (library.py)
- CLI interface (main.py) and HTTP API (api.py)
"""

__version__ = "1.0.0"
