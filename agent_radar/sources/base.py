"""
Base collector class for estate data sources.

All collectors inherit from BaseCollector and implement:
- fetch(): Get raw record dicts from the source for a region
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
import requests

from ..config import AppConfig, get_app_config
from ..models import RawRecord, SourceType

logger = logging.getLogger(__name__)


class CollectorError(Exception):
    """Raised when a source returns something we can't use."""


class BaseCollector(ABC):
    """
    Abstract base class for estate data collectors.

    Provides common functionality:
    - HTTP requests with rate limiting and timeouts
    - Conversion of source dicts into RawRecords

    Subclasses must set name/source_type/jurisdiction and implement fetch().
    collect() may raise; the pipeline skips a source that does.
    """

    name: str
    source_type: SourceType
    jurisdiction: str = "ontario"

    def __init__(self, config: Optional[AppConfig] = None, session: Optional[requests.Session] = None):
        """Initialize the collector."""
        self.config = config or get_app_config()
        self.session = session or requests.Session()

        # Set a reasonable user agent
        self.session.headers.update({
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-CA,en;q=0.5",
        })

        self._last_request_time: float = 0

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.config.request_delay:
            time.sleep(self.config.request_delay - elapsed)
        self._last_request_time = time.time()

    def _get(self, url: str, **kwargs) -> Optional[requests.Response]:
        """
        Make a GET request with rate limiting and error handling.

        Returns:
            Response object or None if request failed
        """
        self._rate_limit()

        try:
            kwargs.setdefault("timeout", self.config.request_timeout)
            response = self.session.get(url, **kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            logger.error(f"Request failed for {url}: {e}")
            return None

    @abstractmethod
    def fetch(self, region: str, since: Optional[datetime] = None) -> list[dict]:
        """
        Fetch raw records from the source.

        Returns:
            List of dicts shaped {content|description, title, date, source, region, url}
        """
        pass

    def collect(self, region: str, since: Optional[datetime] = None) -> list[RawRecord]:
        """
        Main entry point: fetch records and convert them to RawRecords.

        Raises:
            CollectorError: if the source returned something that isn't a record
        """
        logger.info(f"Collecting from {self.name} for {region}")

        records = []
        for item in self.fetch(region, since):
            if not isinstance(item, dict):
                raise CollectorError(f"{self.name} returned a {type(item).__name__}, expected dict")
            item.setdefault("source", self.name)
            records.append(RawRecord.from_dict(item))

        logger.info(f"Collected {len(records)} records from {self.name}")
        return records
