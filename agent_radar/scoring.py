"""
Opportunity Scoring module for AgentRadar.

Turns a normalized record plus its extracted entities into a 0-100
opportunity score. The score is a sum of capped heuristic bonuses on top of
a base score; there is no trained model and no randomness, so the same input
always scores the same.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Callable, Optional

from .models import ExtractedEntities, NormalizedRecord, Priority, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# SCORING FEATURES
# =============================================================================

URGENCY_INDICATORS = [
    "immediate sale", "must sell", "estate settlement", "probate complete",
    "final notice", "court ordered", "liquidation", "urgent disposal",
]

PROPERTY_VALUE_CLUES = [
    "luxury", "executive", "custom built", "waterfront", "heritage",
    "renovated", "updated", "prime location", "prestigious",
]

TIMELINE_INDICATORS = [
    "closing soon", "offers due", "sale pending", "final week",
    "extended deadline", "price reduced", "motivated seller",
]


def score_to_priority(score: float) -> Priority:
    """Map an opportunity score to a priority tier."""
    if score >= 85:
        return Priority.HIGH
    if score >= 70:
        return Priority.MEDIUM
    return Priority.LOW


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ScoringBreakdown:
    """Points each component contributed, after its own cap."""
    urgency: int = 0
    property_value: int = 0
    timeline: int = 0
    entity_quality: int = 0
    monetary_value: int = 0
    recency: int = 0

    @property
    def total(self) -> int:
        return (
            self.urgency + self.property_value + self.timeline
            + self.entity_quality + self.monetary_value + self.recency
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScoredRecord:
    """
    A normalized record with its entities and opportunity score.

    Contains the breakdown and human-readable reasons for the score.
    """
    record: NormalizedRecord
    entities: ExtractedEntities
    ner_confidence: float
    opportunity_score: int = 0
    breakdown: ScoringBreakdown = field(default_factory=ScoringBreakdown)
    reasons: list[str] = field(default_factory=list)

    @property
    def priority(self) -> Priority:
        return score_to_priority(self.opportunity_score)


# =============================================================================
# OPPORTUNITY SCORER
# =============================================================================

class OpportunityScorer:
    """
    Scores records with capped additive bonuses.

    Usage:
        scorer = OpportunityScorer()
        ranked = scorer.score_batch(extracted)
    """

    BASE_SCORE = 50

    # (points per hit, cap) for each keyword component
    KEYWORD_POINTS = {
        "urgency": (5, 25),
        "property_value": (4, 20),
        "timeline": (3, 15),
    }

    ENTITY_CAP = 10
    MONETARY_CAP = 10
    RECENCY_CAP = 10

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """Initialize scorer; clock returns "now" for the recency bonus."""
        self.clock = clock or utcnow

    def score_batch(
        self,
        items: list[tuple[NormalizedRecord, ExtractedEntities, float]],
    ) -> list[ScoredRecord]:
        """
        Score (record, entities, ner_confidence) triples.

        Returns:
            ScoredRecords sorted by score descending; ties keep input order
        """
        scored = []

        for record, entities, ner_confidence in items:
            try:
                scored.append(self.score(record, entities, ner_confidence))
            except Exception as e:
                logger.warning(f"Failed to score record from {record.source}: {e}")
                continue

        return rank_by_score(scored)

    def score(
        self,
        record: NormalizedRecord,
        entities: ExtractedEntities,
        ner_confidence: float = 0.0,
    ) -> ScoredRecord:
        """Score a single record."""
        reasons: list[str] = []
        text = record.normalized_text.lower()

        breakdown = ScoringBreakdown(
            urgency=self._score_keywords("urgency", URGENCY_INDICATORS, text, reasons),
            property_value=self._score_keywords("property_value", PROPERTY_VALUE_CLUES, text, reasons),
            timeline=self._score_keywords("timeline", TIMELINE_INDICATORS, text, reasons),
            entity_quality=self._score_entities(entities, reasons),
            monetary_value=self._score_monetary(record.structured.monetary_values, reasons),
            recency=self._score_recency(record.published_at, reasons),
        )

        score = min(100, max(0, self.BASE_SCORE + breakdown.total))

        return ScoredRecord(
            record=record,
            entities=entities,
            ner_confidence=ner_confidence,
            opportunity_score=score,
            breakdown=breakdown,
            reasons=reasons,
        )

    def _score_keywords(
        self,
        component: str,
        keywords: list[str],
        text: str,
        reasons: list,
    ) -> int:
        """Points per distinct keyword present, capped."""
        points, cap = self.KEYWORD_POINTS[component]
        hits = [keyword for keyword in keywords if keyword in text]
        if hits:
            reasons.append(f"{component.replace('_', ' ').title()} cues: {', '.join(hits)}")
        return min(len(hits) * points, cap)

    def _score_entities(self, entities: ExtractedEntities, reasons: list) -> int:
        score = 0
        if entities.executors:
            score += 5
            reasons.append("Executor identified")
        if entities.contact_info:
            score += 3
            reasons.append("Contact details found")
        if entities.addresses:
            score += 2
            reasons.append("Property address found")
        return min(score, self.ENTITY_CAP)

    def _score_monetary(self, values: list[float], reasons: list) -> int:
        if not values:
            return 0

        max_value = max(values)
        if max_value > 1_000_000:
            score = 10
        elif max_value > 500_000:
            score = 5
        else:
            return 0

        reasons.append(f"Value cue ${max_value:,.0f}")
        return min(score, self.MONETARY_CAP)

    def _score_recency(self, published_at: Optional[datetime], reasons: list) -> int:
        if published_at is None:
            return 0
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=timezone.utc)

        days_since_posted = (self.clock() - published_at).total_seconds() / 86400
        if days_since_posted < 0:
            # Dated in the future: not a publication date we can age
            return 0
        if days_since_posted < 7:
            score = 10
        elif days_since_posted < 30:
            score = 5
        else:
            return 0

        reasons.append(f"Posted {days_since_posted:.0f} days ago")
        return min(score, self.RECENCY_CAP)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def rank_by_score(records: list[ScoredRecord]) -> list[ScoredRecord]:
    """Sort descending by score; equal scores keep their input order."""
    return sorted(records, key=lambda r: r.opportunity_score, reverse=True)


def score_record(
    record: NormalizedRecord,
    entities: ExtractedEntities,
    ner_confidence: float = 0.0,
) -> ScoredRecord:
    """Convenience function to score one record with the default scorer."""
    return OpportunityScorer().score(record, entities, ner_confidence)
