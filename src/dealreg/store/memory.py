"""In-process tabular store for local development and tests.

Behaves like the spreadsheet backend: rows are copied on every read and
write so callers never share mutable state with the store, and nothing is
enforced beyond row positions.
"""

from __future__ import annotations

import copy

import structlog

from src.dealreg.store.base import TabularStore

logger = structlog.get_logger(__name__)


class InMemoryTabularStore(TabularStore):
    """Dict-of-lists table storage.

    Args:
        tables: Optional initial contents, table name -> rows (header first).
    """

    def __init__(self, tables: dict[str, list[list[str]]] | None = None) -> None:
        self._tables: dict[str, list[list[str]]] = copy.deepcopy(tables or {})

    async def get_rows(self, table: str) -> list[list[str]]:
        return copy.deepcopy(self._tables.get(table, []))

    async def append_row(self, table: str, row: list[str]) -> None:
        self._tables.setdefault(table, []).append([str(v) for v in row])
        logger.debug("memory_store.row_appended", table=table)

    async def update_row(self, table: str, position: int, row: list[str]) -> None:
        if position < 1:
            raise ValueError(f"Row positions are 1-based, got {position}")
        rows = self._tables.setdefault(table, [])
        while len(rows) < position:
            rows.append([])
        rows[position - 1] = [str(v) for v in row]
        logger.debug("memory_store.row_updated", table=table, position=position)

    def dump(self, table: str) -> list[list[str]]:
        """Synchronous snapshot of a table, for inspection in tests and tooling."""
        return copy.deepcopy(self._tables.get(table, []))
