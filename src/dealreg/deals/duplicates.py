"""Duplicate deal detection.

Scans every existing deal once per check and flags any non-rejected deal
whose company name OR domain equals the candidate's, compared after
lower-casing only (no trimming, no further normalization).

The check is advisory. By default a store failure yields "no duplicates"
(fail-open) and is logged; with fail_open=False the StoreUnavailable error
propagates and the submission is blocked instead.
"""

from __future__ import annotations

import structlog

from src.dealreg.core.errors import StoreUnavailable
from src.dealreg.deals.schemas import DuplicateCheckResult
from src.dealreg.records.repository import DealRepository
from src.dealreg.records.schemas import DealStatus

logger = structlog.get_logger(__name__)


class DuplicateDetector:
    """Case-insensitive company/domain collision scan over the Deals table.

    Args:
        deals: Deal repository to scan.
        fail_open: Return an empty result instead of raising on store failure.
    """

    def __init__(self, deals: DealRepository, fail_open: bool = True) -> None:
        self._deals = deals
        self._fail_open = fail_open

    async def check_duplicates(self, company_name: str, domain: str) -> DuplicateCheckResult:
        try:
            existing = await self._deals.find_all()
        except StoreUnavailable:
            if not self._fail_open:
                raise
            logger.warning(
                "duplicates.check_failed_open",
                company_name=company_name,
                domain=domain,
            )
            return DuplicateCheckResult()

        company_key = company_name.lower()
        domain_key = domain.lower()

        duplicates = [
            deal.model_dump()
            for deal in existing
            if deal.status != DealStatus.REJECTED.value
            and (
                deal.company_name.lower() == company_key
                or deal.domain.lower() == domain_key
            )
        ]

        if duplicates:
            logger.info(
                "duplicates.found",
                company_name=company_name,
                domain=domain,
                count=len(duplicates),
            )
        return DuplicateCheckResult(
            has_duplicates=bool(duplicates),
            duplicates=duplicates,
        )
