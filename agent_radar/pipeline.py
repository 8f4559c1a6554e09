"""
Main Pipeline module for AgentRadar.

Orchestrates the estate sale data flow for one region:
1. Collect   → Fetch raw records from every source
2. Clean     → Normalize text, drop low-quality records
3. Extract   → Pull out executors, contacts, addresses, firms
4. Score     → Heuristic 0-100 opportunity score
5. Validate  → Address/property/entity checks and validation gate
6. Store     → One AlertRecord per validated record
7. Alert     → Notify matching users about high-value alerts

Failures are contained where they happen: a failing source is skipped, a
failing record is dropped, and only an error outside those steps fails the
run. Everything the pipeline uses is passed in; build_pipeline() wires the
production pieces for the CLI and scheduler.
"""

import json
import time
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from .alerts import AlertDispatcher, EmailAlertNotifier, NoUserMatcher, PreferenceUserMatcher
from .cache import Cache, alert_cache_key
from .config import PipelineConfig, get_app_config, get_pipeline_config
from .db import AlertStore, MemoryAlertStore, SupabaseAlertStore
from .extraction import EntityExtractor, calculate_ner_confidence
from .models import (
    AlertRecord,
    ExtractedEntities,
    NormalizedRecord,
    PipelineStage,
    RawRecord,
    parse_datetime,
    utcnow,
)
from .normalization import RecordNormalizer, matches_region
from .scoring import OpportunityScorer, ScoredRecord, score_to_priority
from .sources import BaseCollector, default_collectors
from .validation import RecordValidator, ValidatedRecord

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class PipelineResult:
    """Outcome of one pipeline run for one region."""
    region: str
    success: bool = False
    collected: int = 0
    processed: int = 0
    stored: int = 0
    high_value_opportunities: int = 0
    notifications_sent: int = 0
    processing_time: float = 0.0
    error: Optional[str] = None
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())
    alert_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CycleResult:
    """Outcome of a scheduled cycle over several regions."""
    results: list[PipelineResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def total_processed(self) -> int:
        return sum(result.processed for result in self.results)

    @property
    def total_stored(self) -> int:
        return sum(result.stored for result in self.results)

    @property
    def high_value_opportunities(self) -> int:
        return sum(result.high_value_opportunities for result in self.results)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "total_processed": self.total_processed,
            "total_stored": self.total_stored,
            "high_value_opportunities": self.high_value_opportunities,
            "regions": [result.to_dict() for result in self.results],
        }


# =============================================================================
# HELPERS
# =============================================================================

def extract_city(address: Optional[str]) -> Optional[str]:
    """City part of "123 Main Street, Toronto, ON M5V 1A1"."""
    if not address:
        return None
    parts = address.split(",")
    if len(parts) < 2:
        return None
    return parts[1].strip() or None


def remove_duplicates(records: list[RawRecord]) -> list[RawRecord]:
    """Drop records with the same title and opening content."""
    seen = set()
    unique = []
    for record in records:
        key = f"{record.title or ''}-{(record.content or '')[:50]}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


# =============================================================================
# PIPELINE
# =============================================================================

class EstateSalePipeline:
    """
    Runs the estate sale pipeline for a region.

    Usage:
        pipeline = EstateSalePipeline(collectors, store)
        result = pipeline.run("gta")
    """

    def __init__(
        self,
        collectors: list[BaseCollector],
        store: AlertStore,
        config: Optional[PipelineConfig] = None,
        normalizer: Optional[RecordNormalizer] = None,
        extractor: Optional[EntityExtractor] = None,
        scorer: Optional[OpportunityScorer] = None,
        validator: Optional[RecordValidator] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        cache: Optional[Cache] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or get_pipeline_config()
        self.collectors = collectors
        self.store = store
        self.normalizer = normalizer or RecordNormalizer(
            quality_threshold=self.config.data_quality_threshold,
            pipeline_version=self.config.pipeline_version,
        )
        self.extractor = extractor or EntityExtractor()
        self.scorer = scorer or OpportunityScorer()
        self.validator = validator or RecordValidator(threshold=self.config.validation_threshold)
        self.dispatcher = dispatcher or AlertDispatcher(threshold=self.config.high_value_threshold)
        self.cache = cache
        self.sleep = sleep

        self.stage = PipelineStage.IDLE

    def _enter(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug(f"Pipeline stage: {stage.value}")

    # =========================================================================
    # RUNS
    # =========================================================================

    def run(self, region: str = "gta", days_back: Optional[int] = None) -> PipelineResult:
        """
        Run every stage for one region.

        Returns:
            PipelineResult; success is False only if an error escaped the stages
        """
        days_back = days_back if days_back is not None else self.config.days_back
        start = time.monotonic()
        result = PipelineResult(region=region)
        logger.info(f"Starting estate sale pipeline for {region} ({days_back} days back)")

        try:
            raw = self.collect(region, days_back)
            result.collected = len(raw)

            cleaned = self.clean(raw)
            extracted = self.extract(cleaned)
            scored = self.score(extracted)
            validated = self.validate(scored)
            result.processed = len(validated)
            result.high_value_opportunities = sum(
                1 for record in validated
                if record.opportunity_score > self.config.high_value_threshold
            )

            stored = self.store_alerts(validated, region)
            result.stored = len(stored)
            result.alert_ids = [alert.alert_id for alert in stored]

            result.notifications_sent = self.send_alerts(stored)
            result.success = True

        except Exception as e:
            logger.error(f"Estate sale pipeline failed for {region}: {e}")
            result.error = str(e)

        finally:
            self._enter(PipelineStage.IDLE)

        result.processing_time = time.monotonic() - start
        logger.info(
            f"Pipeline for {region} complete in {result.processing_time:.1f}s: "
            f"{result.stored} stored, {result.high_value_opportunities} high-value"
        )
        return result

    def run_cycle(
        self,
        regions: Optional[list[str]] = None,
        days_back: Optional[int] = None,
    ) -> CycleResult:
        """
        Run the pipeline for each region in turn, pausing between regions.
        """
        regions = regions if regions is not None else self.config.cycle_regions
        days_back = days_back if days_back is not None else self.config.cycle_days_back
        cycle = CycleResult()

        for index, region in enumerate(regions):
            if index > 0:
                self.sleep(self.config.region_delay)
            cycle.results.append(self.run(region, days_back))

        logger.info(
            f"Estate sale cycle complete: {cycle.total_processed} processed, "
            f"{cycle.high_value_opportunities} high-value across {len(regions)} regions"
        )
        return cycle

    # =========================================================================
    # STAGES
    # =========================================================================

    def collect(self, region: str, days_back: int) -> list[RawRecord]:
        """Collect from every source; a failing source is logged and skipped."""
        self._enter(PipelineStage.COLLECTING)
        since = utcnow() - timedelta(days=days_back)
        all_records = []

        for index, collector in enumerate(self.collectors):
            if index > 0:
                self.sleep(self.config.source_delay)

            try:
                records = collector.collect(region, since)
                kept = [record for record in records if self._in_window(record, region, since)]
            except Exception as e:
                logger.error(f"Failed to collect from {collector.name}: {e}")
                continue

            all_records.extend(kept)
            logger.info(f"{collector.name}: {len(kept)} records")

        unique = remove_duplicates(all_records)
        logger.info(f"Collected {len(unique)} raw records for {region}")
        return unique

    @staticmethod
    def _in_window(record: RawRecord, region: str, since: datetime) -> bool:
        """Undated records are kept; naive dates are read as UTC."""
        published = parse_datetime(record.published_at)
        if published is not None and published < since:
            return False
        return matches_region(record.region, region)

    def clean(self, records: list[RawRecord]) -> list[NormalizedRecord]:
        self._enter(PipelineStage.CLEANING)
        return self.normalizer.normalize_batch(records)

    def extract(
        self, records: list[NormalizedRecord]
    ) -> list[tuple[NormalizedRecord, ExtractedEntities, float]]:
        """Extract entities, keeping records with enough NER confidence."""
        self._enter(PipelineStage.EXTRACTING)
        extracted = []

        for record in records:
            try:
                entities = self.extractor.extract(record.clean_text)
                confidence = calculate_ner_confidence(entities)
            except Exception as e:
                logger.warning(f"Entity extraction failed for record from {record.source}: {e}")
                continue

            if confidence >= self.config.ner_confidence_threshold:
                extracted.append((record, entities, confidence))

        logger.info(f"Entity extraction kept {len(extracted)}/{len(records)} records")
        return extracted

    def score(
        self, extracted: list[tuple[NormalizedRecord, ExtractedEntities, float]]
    ) -> list[ScoredRecord]:
        self._enter(PipelineStage.SCORING)
        return self.scorer.score_batch(extracted)

    def validate(self, scored: list[ScoredRecord]) -> list[ValidatedRecord]:
        self._enter(PipelineStage.VALIDATING)
        return self.validator.validate_batch(scored)

    def store_alerts(self, records: list[ValidatedRecord], region: str) -> list[AlertRecord]:
        """Persist one alert per record; a failed insert loses only that alert."""
        self._enter(PipelineStage.STORING)
        stored = []

        for record in records:
            try:
                alert = self.build_alert(record, region)
                self.store.create_alert(alert)
            except Exception as e:
                logger.error(f"Failed to store alert for record from {record.scored.record.source}: {e}")
                continue

            stored.append(alert)
            self._cache_alert(alert)

        logger.info(f"Stored {len(stored)}/{len(records)} estate sale alerts")
        return stored

    def send_alerts(self, alerts: list[AlertRecord]) -> int:
        self._enter(PipelineStage.ALERTING)
        return self.dispatcher.dispatch(alerts)

    # =========================================================================
    # ALERT BUILDING
    # =========================================================================

    def build_alert(self, validated: ValidatedRecord, region: Optional[str] = None) -> AlertRecord:
        """Map a validated record to the persisted alert shape."""
        scored = validated.scored
        record = scored.record
        structured = record.structured
        address = validated.primary_address

        return AlertRecord(
            title=record.title or "Estate Sale Opportunity",
            description=record.normalized_text[:500],
            address=address or "Address pending validation",
            city=extract_city(address) or "Unknown",
            region=region or record.region or "ontario",
            priority=score_to_priority(scored.opportunity_score),
            opportunity_score=scored.opportunity_score,
            estimated_value=structured.monetary_values[0] if structured.monetary_values else None,
            source=record.source,
            metadata={
                "pipeline_version": record.pipeline_version or self.config.pipeline_version,
                "data_quality_score": record.data_quality_score,
                "ner_confidence": scored.ner_confidence,
                "validation_score": validated.validation_score,
                "extracted_entities": scored.entities.to_dict(),
                "scoring_breakdown": scored.breakdown.to_dict(),
                "scoring_reasons": scored.reasons,
                "dates": structured.dates,
                "monetary_values": structured.monetary_values,
                "property_types": structured.property_types,
                "urgency_level": structured.urgency_level,
                "validated_addresses": [addr.to_dict() for addr in validated.validated_addresses],
                "source_url": record.raw.url,
                "published_at": record.published_at.isoformat() if record.published_at else None,
                "event_date": record.raw.event_date.isoformat() if record.raw.event_date else None,
                "processed_at": record.processed_at.isoformat(),
            },
        )

    def _cache_alert(self, alert: AlertRecord) -> None:
        """Cache high-scoring alerts; cache problems never fail the run."""
        if self.cache is None or alert.opportunity_score <= self.config.cache_score_threshold:
            return

        try:
            self.cache.set(alert_cache_key(alert.alert_id), alert.to_dict(), self.config.cache_ttl_seconds)
        except Exception as e:
            logger.warning(f"Failed to cache alert {alert.alert_id}: {e}")


# =============================================================================
# SETUP
# =============================================================================

def build_pipeline(dry_run: bool = False, cache: Optional[Cache] = None) -> EstateSalePipeline:
    """
    Wire the production pipeline from environment configuration.

    With dry_run, alerts go to an in-memory store and nobody is notified.
    No cache is wired unless one is passed in: nothing in this process reads
    cached alerts back.
    """
    config = get_pipeline_config()
    app_config = get_app_config()

    if dry_run:
        store = MemoryAlertStore()
        dispatcher = AlertDispatcher(NoUserMatcher(), None, threshold=config.high_value_threshold)
    else:
        store = SupabaseAlertStore()
        dispatcher = AlertDispatcher(
            PreferenceUserMatcher(store),
            EmailAlertNotifier(store, app_config=app_config),
            threshold=config.high_value_threshold,
        )

    return EstateSalePipeline(
        collectors=default_collectors(app_config),
        store=store,
        config=config,
        dispatcher=dispatcher,
        cache=cache,
    )


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """CLI entry point for running the pipeline."""
    import argparse

    parser = argparse.ArgumentParser(description="AgentRadar Estate Sale Pipeline")
    parser.add_argument(
        "--run",
        metavar="REGION",
        help="Run the pipeline once for a region (e.g. gta, toronto, york)"
    )
    parser.add_argument(
        "--cycle",
        action="store_true",
        help="Run one scheduled cycle over the configured regions"
    )
    parser.add_argument(
        "--days-back",
        type=int,
        default=None,
        help="Only collect records published in the last N days"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep alerts in memory and don't notify anyone"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level"
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if not args.run and not args.cycle:
        parser.print_help()
        return

    pipeline = build_pipeline(dry_run=args.dry_run)

    if args.run:
        result = pipeline.run(args.run, args.days_back)
        print(json.dumps(result.to_dict(), indent=2))
    else:
        cycle = pipeline.run_cycle(days_back=args.days_back)
        print(json.dumps(cycle.to_dict(), indent=2))


if __name__ == "__main__":
    main()
