"""Tabular store abstract base class -- the contract every backing store implements.

The backing store is a set of header-indexed tables with spreadsheet
semantics: scan a whole table, append a row, overwrite a row by position.
There are no transactions and no concurrency control, and writes may become
visible to other readers with a delay.

Read-then-write race windows (callers must treat these as best effort):
- find_row_by_column_value() then update_row(): the row can be changed or
  moved by another writer between the two calls.
- get_rows() then append_row(): two writers can both observe "absent" and
  both append, producing duplicate rows.

Positions are 1-based: position 1 is the header, data rows start at 2.
"""

from __future__ import annotations

import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


@dataclass(frozen=True)
class FoundRow:
    """A matching row together with the header needed to name its cells."""

    header: list[str]
    row: list[str]
    position: int

    def as_record(self) -> dict[str, str]:
        """Zip header and row into a name -> value dict ("" for short rows)."""
        return {
            name: (self.row[i] if i < len(self.row) else "")
            for i, name in enumerate(self.header)
        }


class TabularStore(ABC):
    """Abstract interface for header-row-indexed table storage.

    Methods:
        get_rows: All rows of a table, header first.
        append_row: Append one row (values in header order).
        update_row: Overwrite one row in place by 1-based position.
        get_header: The header row only.
        find_row_by_column_value: First row whose column equals a value.
        ensure_table: Write the header into an empty table.
        generate_id: Opaque, time-prefixed unique id.
        now: Timestamp in the store's serialized format.
    """

    @abstractmethod
    async def get_rows(self, table: str) -> list[list[str]]:
        """Return every row of `table`; the first row is the header.

        Raises:
            StoreUnavailable: On backing store I/O failure.
        """
        ...

    @abstractmethod
    async def append_row(self, table: str, row: list[str]) -> None:
        """Append a row. No uniqueness or foreign-key enforcement."""
        ...

    @abstractmethod
    async def update_row(self, table: str, position: int, row: list[str]) -> None:
        """Overwrite the row at `position` (1-based, header is 1)."""
        ...

    async def get_header(self, table: str) -> list[str]:
        """Return the header row of `table` (empty list for an empty table)."""
        rows = await self.get_rows(table)
        return list(rows[0]) if rows else []

    async def find_row_by_column_value(
        self, table: str, column: str, value: str
    ) -> FoundRow | None:
        """Return the first data row whose `column` equals `value` exactly.

        Returns None when the table is empty, the column is not in the
        header, or no row matches.
        """
        rows = await self.get_rows(table)
        if not rows:
            return None

        header = [str(name).strip() for name in rows[0]]
        if column not in header:
            return None
        col = header.index(column)

        for offset, row in enumerate(rows[1:]):
            cell = row[col] if col < len(row) else ""
            if cell == value:
                return FoundRow(header=header, row=list(row), position=offset + 2)
        return None

    async def ensure_table(self, table: str, header: list[str]) -> bool:
        """Write `header` into `table` if it has no rows yet.

        Returns:
            True if the header was written, False if the table already had one.
        """
        rows = await self.get_rows(table)
        if rows:
            return False
        await self.append_row(table, list(header))
        return True

    @staticmethod
    def generate_id() -> str:
        """Time-based prefix plus random suffix.

        Collisions are improbable but not impossible; not for security use.
        """
        return _to_base36(int(time.time() * 1000)) + _to_base36(secrets.randbits(40))

    @staticmethod
    def now() -> str:
        """Current UTC time as ISO-8601 with milliseconds and a Z suffix."""
        return (
            datetime.now(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
