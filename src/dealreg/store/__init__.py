"""Tabular store layer -- pluggable backends for the header-indexed system of record.

Provides the abstract TabularStore interface with concrete implementations:
- GoogleSheetsStore: one spreadsheet tab per table via the Sheets v4 API
- InMemoryTabularStore: local development and tests
- TableSchema: versioned, header-name based row <-> record mapping
"""

from src.dealreg.store.base import FoundRow, TabularStore
from src.dealreg.store.memory import InMemoryTabularStore
from src.dealreg.store.schema import TableSchema

__all__ = [
    "FoundRow",
    "InMemoryTabularStore",
    "TableSchema",
    "TabularStore",
]
