"""
Configuration module for AgentRadar.

Loads environment variables and provides configuration constants.
All sensitive values should be in .env file (never commit to git).
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or malformed."""


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class SupabaseConfig:
    """Supabase connection configuration."""
    url: str
    key: str  # Service role key for server-side operations

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        return cls(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_KEY", ""),
        )


@dataclass
class EmailConfig:
    """Email sending configuration (SMTP or SendGrid)."""
    provider: str  # "smtp" or "sendgrid"
    # SMTP settings
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    # SendGrid settings
    sendgrid_api_key: str
    # Common
    from_email: str
    from_name: str

    @classmethod
    def from_env(cls) -> "EmailConfig":
        return cls(
            provider=os.getenv("EMAIL_PROVIDER", "smtp"),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
            from_email=os.getenv("FROM_EMAIL", "alerts@agentradar.app"),
            from_name=os.getenv("FROM_NAME", "AgentRadar"),
        )


@dataclass
class AppConfig:
    """HTTP and link settings shared by collectors and notifications."""
    # Scraping settings
    request_timeout: int = 30
    request_delay: float = 2.0  # Seconds between requests (be nice to servers)
    user_agent: str = "Mozilla/5.0 (compatible; AgentRadar/2.0; Real Estate Intelligence)"

    # Base URL of the dashboard, used for "view opportunity" links
    dashboard_base_url: str = ""

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            request_delay=float(os.getenv("REQUEST_DELAY", "2.0")),
            user_agent=os.getenv("USER_AGENT", cls.user_agent),
            dashboard_base_url=os.getenv("DASHBOARD_BASE_URL", ""),
        )


@dataclass
class PipelineConfig:
    """
    Thresholds and scheduling for the estate sale pipeline.

    The thresholds gate records between stages; see normalization,
    extraction, validation and alerts for where each one applies.
    """
    pipeline_version: str = "2.1.0"

    # Stage gates
    data_quality_threshold: float = 0.75
    ner_confidence_threshold: float = 0.6
    validation_threshold: float = 0.7

    # Alert / cache thresholds (opportunity score, 0-100)
    high_value_threshold: int = 85
    cache_score_threshold: int = 80
    cache_ttl_seconds: int = 3600

    # Collection window
    days_back: int = 30
    cycle_days_back: int = 7

    # Regions processed by a scheduled cycle, one at a time
    target_regions: list[str] = field(
        default_factory=lambda: ["gta", "toronto", "york", "peel", "durham", "halton"]
    )
    regions_per_cycle: int = 3

    # Delays (seconds) between sources and between regions
    source_delay: float = 2.0
    region_delay: float = 5.0

    # Scheduler
    interval_hours: int = 4
    timezone: str = "America/Toronto"
    jobstore_url: str = ""  # e.g. sqlite:///jobs.sqlite; empty = in-memory

    @property
    def cycle_regions(self) -> list[str]:
        """Regions handled by one scheduled cycle."""
        return self.target_regions[: self.regions_per_cycle]

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        defaults = cls()
        return cls(
            pipeline_version=os.getenv("PIPELINE_VERSION", defaults.pipeline_version),
            data_quality_threshold=float(os.getenv("DATA_QUALITY_THRESHOLD", "0.75")),
            ner_confidence_threshold=float(os.getenv("NER_CONFIDENCE_THRESHOLD", "0.6")),
            validation_threshold=float(os.getenv("VALIDATION_THRESHOLD", "0.7")),
            high_value_threshold=int(os.getenv("HIGH_VALUE_THRESHOLD", "85")),
            cache_score_threshold=int(os.getenv("CACHE_SCORE_THRESHOLD", "80")),
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "3600")),
            days_back=int(os.getenv("DAYS_BACK", "30")),
            cycle_days_back=int(os.getenv("CYCLE_DAYS_BACK", "7")),
            target_regions=_env_list("TARGET_REGIONS", ",".join(defaults.target_regions)),
            regions_per_cycle=int(os.getenv("REGIONS_PER_CYCLE", "3")),
            source_delay=float(os.getenv("SOURCE_DELAY", "2.0")),
            region_delay=float(os.getenv("REGION_DELAY", "5.0")),
            interval_hours=int(os.getenv("PIPELINE_INTERVAL_HOURS", "4")),
            timezone=os.getenv("SCHEDULER_TIMEZONE", "America/Toronto"),
            jobstore_url=os.getenv("SCHEDULER_JOBSTORE_URL", ""),
        )


# Global configuration instances (lazy loaded)
_supabase_config: Optional[SupabaseConfig] = None
_email_config: Optional[EmailConfig] = None
_app_config: Optional[AppConfig] = None
_pipeline_config: Optional[PipelineConfig] = None


def get_supabase_config() -> SupabaseConfig:
    """Get Supabase configuration (cached)."""
    global _supabase_config
    if _supabase_config is None:
        _supabase_config = SupabaseConfig.from_env()
    return _supabase_config


def get_email_config() -> EmailConfig:
    """Get email configuration (cached)."""
    global _email_config
    if _email_config is None:
        _email_config = EmailConfig.from_env()
    return _email_config


def get_app_config() -> AppConfig:
    """Get app configuration (cached)."""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config


def get_pipeline_config() -> PipelineConfig:
    """Get pipeline configuration (cached)."""
    global _pipeline_config
    if _pipeline_config is None:
        _pipeline_config = PipelineConfig.from_env()
    return _pipeline_config
