"""
Sources package - Collectors for estate data sources.

Each collector handles:
1. Fetching raw HTML/RSS from the source
2. Extracting record dicts (content, title, date, source, region)
3. Converting them to RawRecords for the pipeline
"""

from .base import BaseCollector, CollectorError
from .probate_notices import ProbateNoticeFeed
from .estatesales import EstateSaleListings
from .legal_notices import LegalNoticeBoard

__all__ = [
    "BaseCollector",
    "CollectorError",
    "ProbateNoticeFeed",
    "EstateSaleListings",
    "LegalNoticeBoard",
    "default_collectors",
]


def default_collectors(config=None) -> list[BaseCollector]:
    """The production collectors, in collection order."""
    return [
        ProbateNoticeFeed(config),
        EstateSaleListings(config),
        LegalNoticeBoard(config),
    ]
