"""
Data models for AgentRadar.

Defines canonical dataclasses that every pipeline stage produces or consumes:
RawRecord (from collectors) → NormalizedRecord → (entities, scores) →
AlertRecord (persisted). Stage-specific results live next to the stage that
builds them (scoring.ScoredRecord, validation.ValidatedRecord).
"""

import time
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Optional


class Priority(str, Enum):
    """Priority tier derived from the opportunity score."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AlertStatus(str, Enum):
    """Lifecycle status of a persisted alert (only ACTIVE is set here)."""
    ACTIVE = "ACTIVE"
    DISMISSED = "DISMISSED"
    EXPIRED = "EXPIRED"


class AlertType(str, Enum):
    """Kinds of alert the app stores."""
    ESTATE_SALE = "ESTATE_SALE"


class SourceType(str, Enum):
    """How a collector gets its data."""
    RSS = "RSS"
    WEB_SCRAPING = "WEB_SCRAPING"
    CROSS_REFERENCE = "CROSS_REFERENCE"


class PipelineStage(str, Enum):
    """States of a single pipeline run."""
    IDLE = "idle"
    COLLECTING = "collecting"
    CLEANING = "cleaning"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    VALIDATING = "validating"
    STORING = "storing"
    ALERTING = "alerting"


DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%B %d, %Y",
]


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse a datetime from the formats collectors hand us.

    Accepts datetime/date objects, time.struct_time (feedparser),
    ISO strings, RFC 2822 strings (RSS pubDate) and a few common formats.
    Naive values are treated as UTC. Returns None when nothing parses.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, time.struct_time):
        parsed = datetime(*value[:6])
    elif isinstance(value, str):
        parsed = _parse_datetime_string(value.strip())
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_datetime_string(value: str) -> Optional[datetime]:
    # Try ISO format first
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    # RSS pubDate, e.g. "Mon, 12 Oct 2026 09:00:00 -0400"
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RawRecord:
    """
    A text blob as delivered by a collector.

    Immutable once collected. `content` falls back to the description
    field when a source only has that. `event_date` is when something
    happens (e.g. an upcoming sale), as opposed to when it was published.
    """
    source: str
    content: str = ""
    title: Optional[str] = None
    published_at: Optional[datetime] = None
    region: Optional[str] = None
    url: Optional[str] = None
    event_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RawRecord":
        """Build from the collector dict shape ({content|description, title, date|publishDate, source})."""
        published = (
            data.get("published_at")
            or data.get("publish_date")
            or data.get("publishDate")
            or data.get("date")
        )
        return cls(
            source=data.get("source") or "unknown",
            content=data.get("content") or data.get("description") or "",
            title=data.get("title") or None,
            published_at=parse_datetime(published),
            region=data.get("region") or None,
            url=data.get("url") or data.get("source_url") or None,
            event_date=parse_datetime(data.get("event_date") or data.get("sale_date")),
        )

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "content": self.content,
            "title": self.title,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "region": self.region,
            "url": self.url,
            "event_date": self.event_date.isoformat() if self.event_date else None,
        }


@dataclass
class StructuredData:
    """Simple structured fields pulled out of a record's text."""
    dates: list[str] = field(default_factory=list)
    monetary_values: list[float] = field(default_factory=list)
    property_types: list[str] = field(default_factory=list)
    urgency_level: str = "medium"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class NormalizedRecord:
    """
    A RawRecord after the cleaning stage.

    clean_text keeps case and punctuation (entity extraction runs on it);
    normalized_text is the lowercased, punctuation-stripped form used for
    keyword scoring and alert descriptions.
    """
    raw: RawRecord
    clean_text: str
    normalized_text: str
    structured: StructuredData
    data_quality_score: float
    processed_at: datetime = field(default_factory=utcnow)
    pipeline_version: str = ""

    @property
    def title(self) -> Optional[str]:
        return self.raw.title

    @property
    def source(self) -> str:
        return self.raw.source

    @property
    def region(self) -> Optional[str]:
        return self.raw.region

    @property
    def published_at(self) -> Optional[datetime]:
        return self.raw.published_at


@dataclass
class ExtractedEntities:
    """Named groups found by the pattern extractor. Lists are never None."""
    executors: list[str] = field(default_factory=list)
    legal_firms: list[str] = field(default_factory=list)
    contact_info: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    key_persons: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (self.executors, self.legal_firms, self.contact_info, self.addresses, self.key_persons)
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedEntities":
        return cls(
            executors=list(data.get("executors") or []),
            legal_firms=list(data.get("legal_firms") or []),
            contact_info=list(data.get("contact_info") or []),
            addresses=list(data.get("addresses") or []),
            key_persons=list(data.get("key_persons") or []),
        )


@dataclass
class AlertRecord:
    """
    The persisted output of the pipeline.

    Created once per validated record; the pipeline never updates it.
    alert_id and created_at are filled in by the store.
    """
    title: str
    description: str
    address: str
    city: str
    region: str
    priority: Priority
    opportunity_score: int
    source: str
    estimated_value: Optional[float] = None
    alert_type: AlertType = AlertType.ESTATE_SALE
    status: AlertStatus = AlertStatus.ACTIVE
    metadata: dict[str, Any] = field(default_factory=dict)

    alert_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "alert_id": self.alert_id,
            "alert_type": self.alert_type.value,
            "title": self.title,
            "description": self.description,
            "address": self.address,
            "city": self.city,
            "region": self.region,
            "priority": self.priority.value,
            "status": self.status.value,
            "opportunity_score": self.opportunity_score,
            "estimated_value": self.estimated_value,
            "source": self.source,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertRecord":
        """Create from dictionary (e.g., from database)."""
        return cls(
            alert_id=data.get("alert_id"),
            alert_type=AlertType(data.get("alert_type", "ESTATE_SALE")),
            title=data["title"],
            description=data.get("description", ""),
            address=data.get("address", ""),
            city=data.get("city", "Unknown"),
            region=data.get("region", "ontario"),
            priority=Priority(data.get("priority", "LOW")),
            status=AlertStatus(data.get("status", "ACTIVE")),
            opportunity_score=int(data.get("opportunity_score", 0)),
            estimated_value=data.get("estimated_value"),
            source=data.get("source", "unknown"),
            metadata=data.get("metadata") or {},
            created_at=parse_datetime(data.get("created_at")),
        )
