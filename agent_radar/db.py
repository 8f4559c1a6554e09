"""
Persistence module for AgentRadar.

Alerts are written once by the pipeline and read by the API server. Two
stores implement the same contract:
- SupabaseAlertStore: production storage in Supabase
- MemoryAlertStore: dry runs and tests

Tables used (Supabase):
- alerts: persisted AlertRecords (metadata stored as JSON text)
- users: users who receive alerts
- alert_preferences: per-user regions and minimum score for notifications
"""

import json
import uuid
import logging
from abc import ABC, abstractmethod
from typing import Optional
from supabase import create_client, Client

from .config import ConfigurationError, SupabaseConfig, get_supabase_config
from .models import AlertRecord, Priority, utcnow

logger = logging.getLogger(__name__)


def new_alert_id() -> str:
    return f"alert_{uuid.uuid4().hex[:12]}"


class AlertStore(ABC):
    """Create-only sink for alerts, plus the reads the API needs."""

    @abstractmethod
    def create_alert(self, alert: AlertRecord) -> str:
        """Persist an alert and return its assigned id."""
        pass

    @abstractmethod
    def get_alert(self, alert_id: str) -> Optional[AlertRecord]:
        pass

    @abstractmethod
    def list_alerts(
        self,
        region: Optional[str] = None,
        priority: Optional[Priority] = None,
        min_score: Optional[int] = None,
        limit: int = 50,
    ) -> list[AlertRecord]:
        """Alerts matching the filters, highest score first."""
        pass


class MemoryAlertStore(AlertStore):
    """Keeps alerts in a list. Used for --dry-run and in tests."""

    def __init__(self):
        self.alerts: list[AlertRecord] = []

    def create_alert(self, alert: AlertRecord) -> str:
        alert.alert_id = alert.alert_id or new_alert_id()
        alert.created_at = alert.created_at or utcnow()
        self.alerts.append(alert)
        logger.info(f"Created alert: {alert.alert_id} ({alert.priority.value}, {alert.opportunity_score})")
        return alert.alert_id

    def get_alert(self, alert_id: str) -> Optional[AlertRecord]:
        for alert in self.alerts:
            if alert.alert_id == alert_id:
                return alert
        return None

    def list_alerts(
        self,
        region: Optional[str] = None,
        priority: Optional[Priority] = None,
        min_score: Optional[int] = None,
        limit: int = 50,
    ) -> list[AlertRecord]:
        matches = [
            alert for alert in self.alerts
            if (region is None or alert.region == region)
            and (priority is None or alert.priority == priority)
            and (min_score is None or alert.opportunity_score >= min_score)
        ]
        matches.sort(key=lambda a: a.opportunity_score, reverse=True)
        return matches[:limit]


class SupabaseAlertStore(AlertStore):
    """
    Supabase client wrapper.

    Provides the alert, user and preference queries the pipeline and API need.
    """

    def __init__(self, config: Optional[SupabaseConfig] = None, client: Optional[Client] = None):
        """Initialize Supabase client."""
        if client is None:
            config = config or get_supabase_config()
            if not config.url or not config.key:
                raise ConfigurationError("Supabase URL and key must be set in environment variables")
            client = create_client(config.url, config.key)
        self._client: Client = client

    @property
    def client(self) -> Client:
        """Get the Supabase client."""
        return self._client

    # =========================================================================
    # ALERT OPERATIONS
    # =========================================================================

    def create_alert(self, alert: AlertRecord) -> str:
        """Insert a new alert record."""
        alert.alert_id = alert.alert_id or new_alert_id()
        alert.created_at = alert.created_at or utcnow()

        alert_dict = alert.to_dict()
        alert_dict["metadata"] = json.dumps(alert_dict["metadata"], default=str)

        self._client.table("alerts").insert(alert_dict).execute()
        logger.info(f"Created alert: {alert.alert_id} ({alert.priority.value}, {alert.opportunity_score})")
        return alert.alert_id

    def get_alert(self, alert_id: str) -> Optional[AlertRecord]:
        """Get an alert by ID."""
        result = self._client.table("alerts").select("*").eq("alert_id", alert_id).execute()
        if not result.data:
            return None
        return self._to_alert(result.data[0])

    def list_alerts(
        self,
        region: Optional[str] = None,
        priority: Optional[Priority] = None,
        min_score: Optional[int] = None,
        limit: int = 50,
    ) -> list[AlertRecord]:
        query = self._client.table("alerts").select("*")

        if region:
            query = query.eq("region", region)
        if priority:
            query = query.eq("priority", priority.value)
        if min_score is not None:
            query = query.gte("opportunity_score", min_score)

        result = query.order("opportunity_score", desc=True).limit(limit).execute()
        return [self._to_alert(data) for data in result.data]

    def _to_alert(self, data: dict) -> AlertRecord:
        # Parse metadata from JSON
        if isinstance(data.get("metadata"), str):
            data["metadata"] = json.loads(data["metadata"])
        return AlertRecord.from_dict(data)

    # =========================================================================
    # USER & PREFERENCE OPERATIONS
    # =========================================================================

    def get_user(self, user_id: str) -> Optional[dict]:
        """Get user by ID."""
        result = self._client.table("users").select("*").eq("id", user_id).execute()
        return result.data[0] if result.data else None

    def get_users_for_alert(self, region: str, score: int) -> list[str]:
        """
        IDs of active users who want alerts for this region and score.

        A preference with no regions listed matches every region.
        """
        result = (
            self._client.table("alert_preferences")
            .select("*")
            .eq("is_active", True)
            .lte("min_score", score)
            .execute()
        )

        user_ids = []
        for pref in result.data:
            regions = pref.get("regions") or []
            if isinstance(regions, str):
                regions = json.loads(regions)
            if not regions or region in regions:
                user_ids.append(pref["user_id"])

        return list(dict.fromkeys(user_ids))
