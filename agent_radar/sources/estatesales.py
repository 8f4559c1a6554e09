"""
EstateSales.net collector for Ontario estate sales.

EstateSales.net lists sales (events) per city. Each sale card becomes one
record: its title, the card text as content, and the sale date (as
sale_date, not a publish date) when the card shows one.
"""

import re
import logging
from datetime import datetime
from typing import Optional
from bs4 import BeautifulSoup
from urllib.parse import urljoin

from .base import BaseCollector
from ..models import SourceType
from ..normalization import region_cities

logger = logging.getLogger(__name__)

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


class EstateSaleListings(BaseCollector):
    """
    Collector for EstateSales.net (Ontario).

    Fetches the sale listings for each city in the requested region.
    """

    name = "Estate Sale Companies - GTA"
    source_type = SourceType.WEB_SCRAPING
    jurisdiction = "gta"

    BASE_URL = "https://www.estatesales.net"
    ONTARIO_URL = "https://www.estatesales.net/ON"

    # Cities fetched per region (keeps a run polite)
    MAX_CITIES = 4

    # /ON/City/PostalPrefix/SaleID (e.g. /ON/Toronto/M5V/4760445)
    SALE_PATTERN = re.compile(r"/ON/([^/]+)/[^/]+/(\d+)")

    def fetch(self, region: str, since: Optional[datetime] = None) -> list[dict]:
        cities = region_cities(region)[: self.MAX_CITIES]
        if not cities:
            logger.warning(f"No cities known for region {region}, skipping {self.name}")
            return []

        all_items = []

        for city in cities:
            all_items.extend(self._fetch_city_listings(city))

        return all_items

    def _fetch_city_listings(self, city: str) -> list[dict]:
        """Fetch listings for a specific city."""
        city_url = f"{self.ONTARIO_URL}/{city.replace(' ', '-')}"
        logger.info(f"Fetching listings from: {city_url}")

        response = self._get(city_url)
        if not response:
            return []

        return self.parse_listing(response.text, city)

    def parse_listing(self, html: str, city: str) -> list[dict]:
        """Parse a city page into one dict per sale."""
        soup = BeautifulSoup(html, "html.parser")
        items = []

        # Track seen sale IDs to avoid duplicates
        seen_ids = set()

        for link in soup.find_all("a", href=self.SALE_PATTERN):
            href = link.get("href", "")
            match = self.SALE_PATTERN.search(href)
            if not match:
                continue

            sale_id = match.group(2)
            if sale_id in seen_ids:
                continue
            seen_ids.add(sale_id)

            try:
                items.append(self._parse_sale_link(link, href, city))
            except Exception as e:
                logger.warning(f"Failed to parse sale link {href}: {e}")
                continue

        if not items:
            logger.warning(f"No sale links found for {city}")

        return items

    def _parse_sale_link(self, link, href: str, city: str) -> dict:
        """Parse a sale link and its surrounding card."""
        title = link.get_text(" ", strip=True)
        title = re.sub(r"^\d+\s*", "", title)  # Remove leading photo count
        title = re.sub(r"Listed\s*by.*$", "", title, flags=re.IGNORECASE).strip()
        if len(title) < 3:
            title = "Estate Sale"

        parent = link.find_parent(["div", "article", "li"])
        card_text = parent.get_text(" ", strip=True) if parent else title

        return {
            "title": title,
            "content": card_text,
            "sale_date": self._parse_sale_date(card_text),
            "source": self.name,
            "url": urljoin(self.BASE_URL, href),
            "region": city,
        }

    def _parse_sale_date(self, text: str, today: Optional[datetime] = None) -> Optional[datetime]:
        """Find a "Mon DD" date in card text (this year, or next if already past)."""
        today = today or datetime.now()

        month_match = re.search(
            r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\w*\.?\s+(\d{1,2})\b",
            text,
            re.IGNORECASE,
        )
        if not month_match:
            return None

        month = MONTHS[month_match.group(1)[:3].lower()]
        day = int(month_match.group(2))

        try:
            sale_date = datetime(today.year, month, day)
        except ValueError:
            return None

        # Cards only list upcoming sales, so a past date means next year
        if sale_date.date() < today.date():
            try:
                sale_date = datetime(today.year + 1, month, day)
            except ValueError:
                return None
        return sale_date
