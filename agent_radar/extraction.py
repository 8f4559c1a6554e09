"""
Entity extraction module for AgentRadar.

Pulls executors, legal firms, contact details, addresses and key persons out
of estate notice text using a fixed set of regular expressions. This is
pattern matching, not a statistical model: it is over-inclusive
and later stages filter on confidence.
"""

import re
import logging
from typing import Iterable, Optional

from .models import ExtractedEntities

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

# Label-prefixed executor names, captured up to the next comma/period/newline
EXECUTOR_PATTERNS = [
    re.compile(r"estate\s+trustee[:\s]+([^,\n.]+)", re.IGNORECASE),
    re.compile(r"executor[:\s]+([^,\n.]+)", re.IGNORECASE),
    re.compile(r"administrator[:\s]+([^,\n.]+)", re.IGNORECASE),
    re.compile(r"personal\s+representative[:\s]+([^,\n.]+)", re.IGNORECASE),
    re.compile(r"trustee\s+of\s+the\s+estate[:\s]+([^,\n.]+)", re.IGNORECASE),
]

# Capitalized words followed by a firm-type suffix (suffix matched in any case)
_FIRM_NAME = r"\b[A-Z][a-z]+(?:\s+(?:&\s+)?[A-Z][a-z]+)*"
LEGAL_FIRM_PATTERNS = [
    re.compile(_FIRM_NAME + r"\s+(?i:law|legal|barristers|solicitors)\b"),
    re.compile(_FIRM_NAME + r"\s+(?i:llp)\b"),
    re.compile(_FIRM_NAME + r"\s+(?i:professional\s+corporation)\b"),
]

PHONE_PATTERN = re.compile(r"(?<!\d)(?:\+?1[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]\d{4}(?!\d)")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

STREET_TYPES = (
    "Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Court|Ct|Boulevard|Blvd|Lane|Ln|"
    "Place|Pl|Circle|Cir|Way|Crescent|Cres|Terrace|Ter|Square|Sq"
)
# <number> <street name> <type>, <city>, ON <postal code>
# Name/city runs are bounded so long unpunctuated text can't backtrack badly.
ADDRESS_PATTERN = re.compile(
    r"\b\d+[A-Z]?\s+[A-Za-z\s\-'.]{1,60}?(?:" + STREET_TYPES + r")\b\.?"
    r"[,\s]+[A-Za-z\s\-'.]{1,40}[,\s]+ON[,\s]+[A-Z]\d[A-Z]\s?\d[A-Z]\d",
    re.IGNORECASE,
)

# "Estate of John Smith", "In the estate of the late Mary A. Jones"
KEY_PERSON_PATTERN = re.compile(
    r"(?i:\bestate\s+of\s+(?:the\s+late\s+)?)"
    r"([A-Z][a-z'\-]+(?:\s+[A-Z]\.)?(?:\s+[A-Z][a-z'\-]+)+)"
)


def _unique(values: Iterable[str]) -> list[str]:
    """Strip, drop empties and de-duplicate, keeping first-seen order."""
    return list(dict.fromkeys(v.strip() for v in values if v and v.strip()))


# =============================================================================
# EXTRACTOR
# =============================================================================

class EntityExtractor:
    """
    Regex-based entity extractor.

    Usage:
        extractor = EntityExtractor()
        entities = extractor.extract(text)
    """

    def extract(self, text: Optional[str]) -> ExtractedEntities:
        """
        Extract all entity groups from text.

        Never raises for string input; groups are always lists.
        """
        if not text:
            return ExtractedEntities()

        return ExtractedEntities(
            executors=self.extract_executors(text),
            legal_firms=self.extract_legal_firms(text),
            contact_info=self.extract_contact_info(text),
            addresses=self.extract_addresses(text),
            key_persons=self.extract_key_persons(text),
        )

    def extract_executors(self, text: str) -> list[str]:
        found = []
        for pattern in EXECUTOR_PATTERNS:
            found.extend(match.group(1) for match in pattern.finditer(text))
        return _unique(found)

    def extract_legal_firms(self, text: str) -> list[str]:
        found = []
        for pattern in LEGAL_FIRM_PATTERNS:
            found.extend(match.group(0) for match in pattern.finditer(text))
        return _unique(found)

    def extract_contact_info(self, text: str) -> list[str]:
        phones = [match.group(0) for match in PHONE_PATTERN.finditer(text)]
        emails = [match.group(0) for match in EMAIL_PATTERN.finditer(text)]
        return _unique(phones + emails)

    def extract_addresses(self, text: str) -> list[str]:
        return _unique(match.group(0) for match in ADDRESS_PATTERN.finditer(text))

    def extract_key_persons(self, text: str) -> list[str]:
        return _unique(match.group(1) for match in KEY_PERSON_PATTERN.finditer(text))


def calculate_ner_confidence(entities: ExtractedEntities) -> float:
    """
    Confidence that extraction found something actionable, in [0, 1].

    executors +0.3, legal firms +0.2, contacts +0.2, addresses +0.3.
    """
    confidence = 0.0
    if entities.executors:
        confidence += 0.3
    if entities.legal_firms:
        confidence += 0.2
    if entities.contact_info:
        confidence += 0.2
    if entities.addresses:
        confidence += 0.3
    return round(min(1.0, confidence), 4)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def extract_entities(text: Optional[str]) -> ExtractedEntities:
    """Convenience function to extract entities with the default patterns."""
    return EntityExtractor().extract(text)
