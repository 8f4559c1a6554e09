"""
Normalization module for AgentRadar.

Turns raw collector records into NormalizedRecord objects:
- cleans and normalizes text
- pulls out simple structured fields (dates, money, property type, urgency)
- scores data quality and drops records below the quality threshold
"""

import re
import logging
from typing import Optional

from .models import NormalizedRecord, RawRecord, StructuredData

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

# Anything that is not a word char, whitespace, or . , ; : ( ) $ -
DISALLOWED_CHARS = re.compile(r"[^\w\s.,;:()$\-]")
WHITESPACE = re.compile(r"\s+")
HTML_ENTITY = re.compile(r"&(?:[a-zA-Z]+|#\d+);")

DATE_PATTERN = re.compile(
    r"(?:\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"
    r"|\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}"
    r"|(?:january|february|march|april|may|june|july|august|september|october|november|december)"
    r"\s+\d{1,2},?\s+\d{4})",
    re.IGNORECASE,
)

MONEY_PATTERN = re.compile(r"\$[\d,]+(?:\.\d{2})?")

# Dollar amounts under this are fees, deposits etc. and not property values
MIN_MONETARY_VALUE = 1000

PROPERTY_TYPE_KEYWORDS: dict[str, str] = {
    "residential": "residential",
    "commercial": "commercial",
    "condo": "condominium",
}

URGENT_TERMS = ["immediate", "urgent", "must sell", "final notice"]

QUALITY_KEYWORDS = ["estate", "probate"]


# =============================================================================
# REGIONS (Ontario service areas and the cities in them)
# =============================================================================

REGION_CITIES: dict[str, list[str]] = {
    "toronto": ["Toronto", "North York", "Scarborough", "Etobicoke"],
    "york": ["Markham", "Vaughan", "Richmond Hill", "Newmarket", "Aurora"],
    "peel": ["Mississauga", "Brampton", "Caledon"],
    "durham": ["Oshawa", "Whitby", "Ajax", "Pickering"],
    "halton": ["Oakville", "Burlington", "Milton", "Halton Hills"],
}

# Regions made up of other regions
REGION_GROUPS: dict[str, list[str]] = {
    "gta": ["toronto", "york", "peel", "durham", "halton"],
}

PROVINCE_WIDE = {"ontario", "ontario-wide"}


def _region_key(value: str) -> str:
    return value.strip().lower().replace(" ", "-")


def region_cities(region: str) -> list[str]:
    """Cities covered by a region (expanding groups like "gta", and "ontario" to every city)."""
    key = _region_key(region)
    if key in PROVINCE_WIDE:
        return [city for cities in REGION_CITIES.values() for city in cities]
    if key in REGION_GROUPS:
        cities = []
        for sub in REGION_GROUPS[key]:
            cities.extend(REGION_CITIES.get(sub, []))
        return cities
    return list(REGION_CITIES.get(key, []))


def matches_region(record_region: Optional[str], region: str) -> bool:
    """
    Does a record tagged with record_region belong to region?

    Untagged and province-wide records match every region. A record may be
    tagged with a region name or a city name.
    """
    if not record_region:
        return True

    record_key = _region_key(record_region)
    region_key = _region_key(region)

    if record_key == region_key or record_key in PROVINCE_WIDE or region_key in PROVINCE_WIDE:
        return True
    if record_key in REGION_GROUPS.get(region_key, []):
        return True

    city_keys = {_region_key(city) for city in region_cities(region_key)}
    return record_key in city_keys


# =============================================================================
# TEXT FUNCTIONS
# =============================================================================

def clean_text(text: Optional[str]) -> str:
    """Remove HTML entities and collapse whitespace, keeping case and punctuation."""
    if not text:
        return ""

    text = HTML_ENTITY.sub(" ", text)
    text = WHITESPACE.sub(" ", text)
    return text.strip()


def normalize_text(text: Optional[str]) -> str:
    """
    Lowercase, drop punctuation outside the allow-list and collapse whitespace.

    Idempotent: normalize_text(normalize_text(x)) == normalize_text(x).
    """
    if not text:
        return ""

    text = text.lower()
    text = DISALLOWED_CHARS.sub("", text)
    text = WHITESPACE.sub(" ", text)
    return text.strip()


def extract_dates(text: str) -> list[str]:
    """Return date-looking substrings in order of appearance."""
    if not text:
        return []
    return DATE_PATTERN.findall(text)


def extract_monetary_values(text: str) -> list[float]:
    """
    Return $-prefixed amounts as floats, dropping values under 1000.

    "$500 fee, $950,000 sale" -> [950000.0]
    """
    if not text:
        return []

    values = []
    for match in MONEY_PATTERN.findall(text):
        cleaned = match.replace("$", "").replace(",", "")
        try:
            value = float(cleaned)
        except ValueError:
            continue
        if value >= MIN_MONETARY_VALUE:
            values.append(value)
    return values


def infer_property_types(text: str) -> list[str]:
    text_lower = text.lower()
    return [
        property_type
        for keyword, property_type in PROPERTY_TYPE_KEYWORDS.items()
        if keyword in text_lower
    ]


def assess_urgency_level(text: str) -> str:
    """Return "high" if any urgent term appears, otherwise "medium"."""
    text_lower = text.lower()
    if any(term in text_lower for term in URGENT_TERMS):
        return "high"
    return "medium"


def calculate_data_quality(raw: RawRecord) -> float:
    """
    Score how usable a raw record is, in [0, 1].

    Base 0.5, +0.2 for content over 100 chars, +0.1 each for a title,
    a date, and an estate/probate mention.
    """
    score = 0.5
    content = raw.content or ""
    content_lower = content.lower()

    if len(content) > 100:
        score += 0.2
    if raw.title:
        score += 0.1
    if raw.published_at:
        score += 0.1
    if any(keyword in content_lower for keyword in QUALITY_KEYWORDS):
        score += 0.1

    return round(min(1.0, score), 4)


# =============================================================================
# NORMALIZER CLASS
# =============================================================================

class RecordNormalizer:
    """
    Cleans raw records and keeps the ones that pass the data-quality gate.

    Usage:
        normalizer = RecordNormalizer()
        records = normalizer.normalize_batch(raw_records)
    """

    def __init__(self, quality_threshold: float = 0.75, pipeline_version: str = ""):
        self.quality_threshold = quality_threshold
        self.pipeline_version = pipeline_version

    def normalize_batch(self, raw_records: list[RawRecord]) -> list[NormalizedRecord]:
        """
        Normalize a batch of raw records.

        Records that fail or fall below the quality threshold are dropped.
        """
        normalized = []

        for raw in raw_records:
            try:
                record = self.normalize(raw)
                if record:
                    normalized.append(record)
            except Exception as e:
                logger.warning(f"Failed to normalize record from {raw.source}: {e}")
                continue

        logger.info(f"Normalized {len(normalized)}/{len(raw_records)} records")
        return normalized

    def normalize(self, raw: RawRecord) -> Optional[NormalizedRecord]:
        """
        Normalize a single raw record.

        Returns:
            NormalizedRecord, or None if data quality is below the threshold
        """
        quality = calculate_data_quality(raw)
        if quality < self.quality_threshold:
            logger.debug(f"Dropping low-quality record from {raw.source} ({quality:.2f})")
            return None

        cleaned = clean_text(raw.content)
        structured = StructuredData(
            dates=extract_dates(cleaned),
            monetary_values=extract_monetary_values(cleaned),
            property_types=infer_property_types(cleaned),
            urgency_level=assess_urgency_level(cleaned),
        )

        return NormalizedRecord(
            raw=raw,
            clean_text=cleaned,
            normalized_text=normalize_text(raw.content),
            structured=structured,
            data_quality_score=quality,
            pipeline_version=self.pipeline_version,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def normalize_records(
    raw_records: list[RawRecord],
    quality_threshold: float = 0.75,
) -> list[NormalizedRecord]:
    """Convenience function to normalize records with default settings."""
    normalizer = RecordNormalizer(quality_threshold=quality_threshold)
    return normalizer.normalize_batch(raw_records)
