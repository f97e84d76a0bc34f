"""Customer de-duplication keyed on domain.

Lookup always precedes creation. The match is exact and case-sensitive,
unlike duplicate deal detection; whether that difference is intended is an
open product question, so it is kept as is. Two concurrent submissions for a
new domain can both miss the lookup and both create a customer.
"""

from __future__ import annotations

import structlog

from src.dealreg.records.repository import CustomerRepository
from src.dealreg.records.schemas import CustomerRecord

logger = structlog.get_logger(__name__)


class CustomerResolver:
    def __init__(self, customers: CustomerRepository) -> None:
        self._customers = customers

    async def resolve_or_create(
        self,
        company_name: str,
        domain: str,
        legal_name: str = "",
        industry: str = "",
        location: str = "",
    ) -> CustomerRecord:
        """Return the customer registered for `domain`, creating it if absent."""
        existing = await self._customers.find_by_domain(domain)
        if existing is not None:
            logger.info("customer.resolved", customer_id=existing.id, domain=domain)
            return existing

        customer = await self._customers.create(
            CustomerRecord(
                company_name=company_name,
                domain=domain,
                legal_name=legal_name,
                industry=industry,
                location=location,
            )
        )
        logger.info("customer.created", customer_id=customer.id, domain=domain)
        return customer
