"""Record layer -- typed records, table schemas and repositories over the tabular store."""

from src.dealreg.records.repository import Repositories, TableRepository, ensure_schema

__all__ = ["Repositories", "TableRepository", "ensure_schema"]
