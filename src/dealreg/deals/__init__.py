"""Deal registration workflow -- duplicate detection, customer de-duplication and the approval lifecycle."""

from src.dealreg.deals.duplicates import DuplicateDetector
from src.dealreg.deals.lifecycle import DealLifecycle, estimated_approval_time

__all__ = ["DealLifecycle", "DuplicateDetector", "estimated_approval_time"]
