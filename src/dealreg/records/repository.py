"""Record repositories -- typed read/write helpers per table on top of TabularStore.

TableRepository converts between raw rows and pydantic records through the
table's TableSchema, so every read and write locates columns by header name.
Each entity gets a thin subclass with the lookups the business logic needs.

Nothing is cached: every call round-trips to the store. Partial updates are
partial in intent only -- the whole row is re-read, merged and written back
at its recorded position.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel

from src.dealreg.core.errors import ConcurrentModification, NotFound, StoreSchemaError
from src.dealreg.records.schemas import (
    AdminEntry,
    AuditLogEntry,
    CustomerRecord,
    DealRecord,
    PartnerRecord,
    UserRecord,
)
from src.dealreg.records.tables import (
    ADMINS,
    ALL_TABLES,
    AUDIT_LOG,
    CUSTOMERS,
    DEALS,
    PARTNERS,
    USERS,
)
from src.dealreg.store.base import TabularStore
from src.dealreg.store.schema import TableSchema

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_STAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _next_version(stored: str, now: str) -> str:
    """Return `now`, or stored + 1ms when `now` would not move the token forward.

    Stamps share one fixed-width format, so string order is time order.
    Unparseable hand-edited stamps fall back to `now`.
    """
    if not stored or now > stored:
        return now
    try:
        previous = datetime.strptime(stored, _STAMP_FORMAT)
    except ValueError:
        return now
    bumped = previous + timedelta(milliseconds=1)
    return bumped.strftime(_STAMP_FORMAT)[:-4] + "Z"


class TableRepository(Generic[RecordT]):
    """Generic find/create/update for one table.

    Args:
        store: Backing tabular store.
        table: Column contract of the table.
        record_type: Pydantic record class for rows of the table.
    """

    def __init__(
        self,
        store: TabularStore,
        table: TableSchema,
        record_type: type[RecordT],
    ) -> None:
        self._store = store
        self._table = table
        self._record_type = record_type

    @property
    def table(self) -> TableSchema:
        return self._table

    def now(self) -> str:
        """Timestamp in the backing store's serialized format."""
        return self._store.now()

    def _to_record(self, header: list[str], row: list[str]) -> RecordT:
        return self._record_type.model_validate(self._table.row_to_values(header, row))

    def _check_column(self, column: str) -> None:
        if column not in self._table.columns:
            raise ValueError(f"Unknown column for {self._table.name}: {column}")

    async def find_all(self) -> list[RecordT]:
        """Every data row of the table, in store order."""
        rows = await self._store.get_rows(self._table.name)
        if not rows:
            return []
        header = [str(name) for name in rows[0]]
        return [self._to_record(header, row) for row in rows[1:] if any(row)]

    async def find(self, field: str, value: str) -> RecordT | None:
        """First record whose `field` equals `value` exactly, or None."""
        self._check_column(field)
        found = await self._store.find_row_by_column_value(self._table.name, field, value)
        if found is None:
            return None
        return self._to_record(found.header, found.row)

    async def create(self, record: RecordT) -> RecordT:
        """Append `record` as a new row and return it as persisted.

        Generates the key when the table is keyed on `id` and none is set,
        and always stamps the table's stamp columns with store.now().
        """
        header = await self._store.get_header(self._table.name)
        if not header:
            raise StoreSchemaError(
                f"Table {self._table.name} has no header row",
                detail={"table": self._table.name},
            )

        values = record.model_dump()
        if self._table.key == "id" and not values.get("id"):
            values["id"] = self._store.generate_id()
        now = self._store.now()
        for column in self._table.stamp_columns:
            values[column] = now

        row = self._table.values_to_row(header, values)
        await self._store.append_row(self._table.name, row)
        logger.info(
            "record.created",
            table=self._table.name,
            key=values.get(self._table.key, ""),
        )
        return self._record_type.model_validate(values)

    async def update_partial(
        self,
        key_value: str,
        deltas: dict[str, str],
        expected_updated_at: str | None = None,
    ) -> RecordT:
        """Merge `deltas` into the row identified by `key_value` and write it back.

        Args:
            key_value: Value of the table's key column.
            deltas: Column -> new value; other columns keep their stored value.
            expected_updated_at: Optimistic-concurrency token. When given, the
                write is refused if the stored updated_at no longer matches.
                The token has millisecond resolution, so each write moves it
                strictly past the stored value even when two writes land in
                the same millisecond.

        Raises:
            NotFound: If the row is absent at merge time.
            ConcurrentModification: If the row changed since it was read.
        """
        for column in deltas:
            self._check_column(column)

        found = await self._store.find_row_by_column_value(
            self._table.name, self._table.key, key_value
        )
        if found is None:
            raise NotFound(
                f"{self._table.name} record not found: {key_value}",
                detail={"table": self._table.name, "key": key_value},
            )

        current = self._table.row_to_values(found.header, found.row)
        has_version = "updated_at" in self._table.columns
        if (
            expected_updated_at is not None
            and has_version
            and current["updated_at"] != expected_updated_at
        ):
            logger.warning(
                "record.stale_update_refused",
                table=self._table.name,
                key=key_value,
                expected_updated_at=expected_updated_at,
                stored_updated_at=current["updated_at"],
            )
            raise ConcurrentModification(
                f"{self._table.name} record {key_value} was modified concurrently",
                detail={"table": self._table.name, "key": key_value},
            )

        merged = {**current, **deltas}
        if has_version:
            merged["updated_at"] = _next_version(current["updated_at"], self._store.now())

        row = self._table.values_to_row(found.header, merged, base=found.row)
        await self._store.update_row(self._table.name, found.position, row)
        logger.info(
            "record.updated",
            table=self._table.name,
            key=key_value,
            position=found.position,
            fields=sorted(deltas),
        )
        return self._record_type.model_validate(merged)


# ── Entity Repositories ─────────────────────────────────────────────────────


class DealRepository(TableRepository[DealRecord]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, DEALS, DealRecord)

    async def get(self, deal_id: str) -> DealRecord | None:
        return await self.find("id", deal_id)


class CustomerRepository(TableRepository[CustomerRecord]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, CUSTOMERS, CustomerRecord)

    async def find_by_domain(self, domain: str) -> CustomerRecord | None:
        """Exact, case-sensitive domain lookup."""
        return await self.find("domain", domain)


class PartnerRepository(TableRepository[PartnerRecord]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, PARTNERS, PartnerRecord)

    async def get(self, partner_id: str) -> PartnerRecord | None:
        return await self.find("id", partner_id)

    async def find_by_company_name(self, company_name: str) -> PartnerRecord | None:
        return await self.find("company_name", company_name)


class UserRepository(TableRepository[UserRecord]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, USERS, UserRecord)

    async def get(self, user_id: str) -> UserRecord | None:
        return await self.find("id", user_id)

    async def find_by_email(self, email: str) -> UserRecord | None:
        """Lookup by email; emails are stored lower-cased."""
        return await self.find("email", email.strip().lower())


class AdminRepository(TableRepository[AdminEntry]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, ADMINS, AdminEntry)

    async def find_by_email(self, email: str) -> AdminEntry | None:
        """Case-insensitive lookup; rows edited by hand may carry any casing."""
        target = email.strip().lower()
        for entry in await self.find_all():
            if entry.email.strip().lower() == target:
                return entry
        return None


class AuditLogRepository(TableRepository[AuditLogEntry]):
    def __init__(self, store: TabularStore) -> None:
        super().__init__(store, AUDIT_LOG, AuditLogEntry)

    async def for_deal(self, deal_id: str) -> list[AuditLogEntry]:
        return [entry for entry in await self.find_all() if entry.deal_id == deal_id]


@dataclass
class Repositories:
    """All entity repositories bound to one store."""

    deals: DealRepository
    customers: CustomerRepository
    partners: PartnerRepository
    users: UserRepository
    admins: AdminRepository
    audit_log: AuditLogRepository

    @classmethod
    def for_store(cls, store: TabularStore) -> Repositories:
        return cls(
            deals=DealRepository(store),
            customers=CustomerRepository(store),
            partners=PartnerRepository(store),
            users=UserRepository(store),
            admins=AdminRepository(store),
            audit_log=AuditLogRepository(store),
        )


async def ensure_schema(store: TabularStore) -> list[str]:
    """Bootstrap header rows for empty tables; return the tables initialized."""
    initialized: list[str] = []
    for table in ALL_TABLES:
        if await store.ensure_table(table.name, list(table.columns)):
            initialized.append(table.name)
    if initialized:
        logger.info("store.tables_initialized", tables=initialized)
    return initialized
