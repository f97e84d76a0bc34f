"""Table definitions for the backing store.

Each TableSchema's columns are taken from its record type so the typed
struct and the column mapping cannot drift apart. Bump `version` whenever a
record type gains, loses or renames a field.
"""

from __future__ import annotations

from src.dealreg.records.schemas import (
    AdminEntry,
    AuditLogEntry,
    CustomerRecord,
    DealRecord,
    PartnerRecord,
    UserRecord,
)
from src.dealreg.store.schema import TableSchema

DEALS = TableSchema(name="Deals", columns=tuple(DealRecord.model_fields))
CUSTOMERS = TableSchema(name="Customers", columns=tuple(CustomerRecord.model_fields))
PARTNERS = TableSchema(name="Partners", columns=tuple(PartnerRecord.model_fields))
USERS = TableSchema(name="Users", columns=tuple(UserRecord.model_fields))
ADMINS = TableSchema(
    name="Admins",
    columns=tuple(AdminEntry.model_fields),
    key="email",
    stamp_columns=("added_at",),
)
AUDIT_LOG = TableSchema(
    name="Audit_Log",
    columns=tuple(AuditLogEntry.model_fields),
    stamp_columns=("timestamp",),
)

ALL_TABLES: tuple[TableSchema, ...] = (DEALS, CUSTOMERS, PARTNERS, USERS, ADMINS, AUDIT_LOG)
