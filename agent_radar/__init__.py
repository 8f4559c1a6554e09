"""
AgentRadar - Estate Sale Opportunity Pipeline

Turns probate notices, estate sale listings and legal notices into scored,
prioritized alerts for real estate agents in Ontario.

Modules:
- config: Configuration and environment variables
- models: Canonical data models (dataclasses)
- sources: Collectors for estate data sources
- normalization: Clean text, structured fields, data quality gate
- extraction: Pattern-based entity extraction
- scoring: Opportunity scoring and ranking
- validation: Address/property/entity checks
- db: Alert storage (Supabase or in-memory)
- cache: TTL cache for high-scoring alerts
- alerts: User matching and email notifications
- pipeline: Main orchestration
- scheduler: APScheduler setup for recurring cycles
- server: Read-only alerts API
"""

__version__ = "2.1.0"

# Convenient imports
from .models import (
    RawRecord,
    NormalizedRecord,
    StructuredData,
    ExtractedEntities,
    AlertRecord,
    Priority,
    AlertStatus,
    PipelineStage,
)
from .normalization import normalize_text, normalize_records, RecordNormalizer
from .extraction import extract_entities, calculate_ner_confidence, EntityExtractor
from .scoring import score_record, OpportunityScorer, ScoredRecord
from .validation import RecordValidator, ValidatedRecord
from .db import AlertStore, MemoryAlertStore, SupabaseAlertStore
from .alerts import AlertDispatcher
from .pipeline import EstateSalePipeline, PipelineResult, CycleResult, build_pipeline

__all__ = [
    # Models
    "RawRecord",
    "NormalizedRecord",
    "StructuredData",
    "ExtractedEntities",
    "AlertRecord",
    "Priority",
    "AlertStatus",
    "PipelineStage",
    # Normalization
    "normalize_text",
    "normalize_records",
    "RecordNormalizer",
    # Extraction
    "extract_entities",
    "calculate_ner_confidence",
    "EntityExtractor",
    # Scoring
    "score_record",
    "OpportunityScorer",
    "ScoredRecord",
    # Validation
    "RecordValidator",
    "ValidatedRecord",
    # Storage
    "AlertStore",
    "MemoryAlertStore",
    "SupabaseAlertStore",
    # Alerts
    "AlertDispatcher",
    # Pipeline
    "EstateSalePipeline",
    "PipelineResult",
    "CycleResult",
    "build_pipeline",
]
