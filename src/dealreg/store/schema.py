"""Explicit, versioned column mapping for header-indexed tables.

A TableSchema names the columns a table must carry and converts between
raw rows and named values by looking columns up in the table's *current*
header row. Fields are never assigned by position, so a reordered header
(or extra columns added by hand in the backing store) cannot silently shift
values into the wrong field.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.dealreg.core.errors import StoreSchemaError


@dataclass(frozen=True)
class TableSchema:
    """Column contract for one table in the backing store.

    Attributes:
        name: Table (sheet/tab) name in the backing store.
        columns: Canonical column names; also the header written when a
            table is bootstrapped.
        key: Column that identifies a row for point updates.
        stamp_columns: Columns set to the store timestamp on create.
        version: Schema version, bumped whenever `columns` changes.
    """

    name: str
    columns: tuple[str, ...]
    key: str = "id"
    stamp_columns: tuple[str, ...] = ("created_at", "updated_at")
    version: int = 1

    def validate_header(self, header: list[str]) -> dict[str, int]:
        """Return a column -> index map for `header`.

        Raises:
            StoreSchemaError: If any schema column is absent from the header.
        """
        index = {name.strip(): i for i, name in enumerate(header)}
        missing = [col for col in self.columns if col not in index]
        if missing:
            raise StoreSchemaError(
                f"Table {self.name} (schema v{self.version}) is missing columns: "
                f"{', '.join(missing)}",
                detail={"table": self.name, "missing": missing},
            )
        return index

    def row_to_values(self, header: list[str], row: list[str]) -> dict[str, str]:
        """Map a raw row to schema column values using the header names.

        Short rows (backing stores drop trailing blanks) are padded with "".
        Columns outside the schema are ignored.
        """
        index = self.validate_header(header)
        values: dict[str, str] = {}
        for col in self.columns:
            i = index[col]
            values[col] = str(row[i]) if i < len(row) and row[i] is not None else ""
        return values

    def values_to_row(
        self,
        header: list[str],
        values: dict[str, str],
        base: list[str] | None = None,
    ) -> list[str]:
        """Lay named values out in the order of `header`.

        Args:
            header: The table's current header row.
            values: Column values; unknown keys are ignored.
            base: Existing row whose non-schema cells are preserved.

        Returns:
            A row exactly as long as the header.
        """
        index = self.validate_header(header)
        row = [str(v) for v in (base or [])][: len(header)]
        row.extend([""] * (len(header) - len(row)))
        for col in self.columns:
            if col in values:
                value = values[col]
                row[index[col]] = "" if value is None else str(value)
        return row
