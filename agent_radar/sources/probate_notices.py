"""
Ontario probate notice feed.

Reads the court's probate notices RSS feed. Each entry becomes one record;
the entry summary is usually the full notice text.
"""

import logging
from datetime import datetime
from typing import Optional
import feedparser
from bs4 import BeautifulSoup

from .base import BaseCollector, CollectorError
from ..models import SourceType, parse_datetime

logger = logging.getLogger(__name__)


class ProbateNoticeFeed(BaseCollector):
    """Collector for the Ontario probate court notices feed."""

    name = "Ontario Probate Court Notices"
    source_type = SourceType.RSS
    jurisdiction = "ontario"

    FEED_URL = "https://www.ontariocourts.ca/scj/notices/probate/feed/"

    def fetch(self, region: str, since: Optional[datetime] = None) -> list[dict]:
        response = self._get(self.FEED_URL)
        if not response:
            return []

        items = self.parse_feed(response.content)
        if since:
            items = [
                item for item in items
                if item["date"] is None or item["date"] >= since
            ]
        return items

    def parse_feed(self, raw_feed) -> list[dict]:
        """
        Parse RSS/Atom content into record dicts.

        Raises:
            CollectorError: if the content isn't a feed at all
        """
        feed = feedparser.parse(raw_feed)
        if feed.bozo and not feed.entries:
            raise CollectorError(f"Unreadable feed from {self.name}: {feed.get('bozo_exception')}")

        items = []
        for entry in feed.entries:
            summary = entry.get("summary") or entry.get("description") or ""
            content = BeautifulSoup(summary, "html.parser").get_text(" ", strip=True)
            published = entry.get("published_parsed") or entry.get("updated_parsed")

            items.append({
                "title": entry.get("title"),
                "content": content,
                "date": parse_datetime(published),
                "source": self.name,
                "url": entry.get("link"),
                "region": self.jurisdiction,
            })

        logger.debug(f"Parsed {len(items)} entries from {self.name}")
        return items
