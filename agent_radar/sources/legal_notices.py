"""
Newspaper legal notices collector.

Legal notice pages mix bankruptcy, estate and corporate notices; we keep
the ones that mention an estate, executor or estate trustee.
"""

import logging
from datetime import datetime
from typing import Optional
from bs4 import BeautifulSoup
from urllib.parse import urljoin

from .base import BaseCollector
from ..models import SourceType, parse_datetime

logger = logging.getLogger(__name__)

ESTATE_TERMS = ["estate", "executor", "estate trustee", "probate"]


class LegalNoticeBoard(BaseCollector):
    """Collector for the Toronto Star legal notices page."""

    name = "Legal Notices - Toronto Star"
    source_type = SourceType.WEB_SCRAPING
    jurisdiction = "toronto"

    NOTICES_URL = "https://www.thestar.com/legal-notices/"

    def fetch(self, region: str, since: Optional[datetime] = None) -> list[dict]:
        response = self._get(self.NOTICES_URL)
        if not response:
            return []
        return self.parse_notices(response.text)

    def parse_notices(self, html: str) -> list[dict]:
        """Parse notice blocks, keeping estate-related ones."""
        soup = BeautifulSoup(html, "html.parser")
        items = []

        for block in soup.select("article, .legal-notice, .notice"):
            text = block.get_text(" ", strip=True)
            if not any(term in text.lower() for term in ESTATE_TERMS):
                continue

            heading = block.find(["h1", "h2", "h3", "h4"])
            time_tag = block.find("time")
            link = block.find("a", href=True)

            published = None
            if time_tag:
                published = parse_datetime(time_tag.get("datetime") or time_tag.get_text(strip=True))

            items.append({
                "title": heading.get_text(" ", strip=True) if heading else None,
                "content": text,
                "date": published,
                "source": self.name,
                "url": urljoin(self.NOTICES_URL, link["href"]) if link else self.NOTICES_URL,
                "region": self.jurisdiction,
            })

        logger.debug(f"Kept {len(items)} estate notices from {self.name}")
        return items
