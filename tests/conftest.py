"""Shared fakes and fixtures for the AgentRadar unit tests."""

from collections import defaultdict
from datetime import timedelta
from typing import Any, Callable, Optional

import pytest

from agent_radar.alerts import Notifier, UserMatcher
from agent_radar.config import AppConfig, PipelineConfig
from agent_radar.db import MemoryAlertStore
from agent_radar.models import RawRecord, SourceType, utcnow
from agent_radar.sources.base import BaseCollector

JANE_SMITH_NOTICE = (
    "Estate Trustee: Jane Smith, Phone: 416-555-1234. Immediate sale required. "
    "$1,200,000. 123 Main Street, Toronto, ON M5V 1A1."
)


class FakeCollector(BaseCollector):
    """Returns canned record dicts, tagged with the requested region unless set."""

    name = "Fake Source"
    source_type = SourceType.RSS

    def __init__(self, records=None, fail_regions=(), name: Optional[str] = None):
        super().__init__(config=AppConfig(request_delay=0))
        self.records = list(records or [])
        self.fail_regions = set(fail_regions)
        self.calls: list[str] = []
        if name:
            self.name = name

    def fetch(self, region, since=None):
        self.calls.append(region)
        if region in self.fail_regions:
            raise RuntimeError(f"{self.name} is down for {region}")
        return [{"region": region, **record} for record in self.records]


class StaticUserMatcher(UserMatcher):
    def __init__(self, user_ids):
        self.user_ids = list(user_ids)

    def find_matching_users(self, alert):
        return list(self.user_ids)


class RecordingNotifier(Notifier):
    def __init__(self, fail_for=()):
        self.sent: list[tuple[str, dict]] = []
        self.fail_for = set(fail_for)

    def send_user_alert(self, user_id, payload):
        if user_id in self.fail_for:
            raise RuntimeError(f"mailbox full for {user_id}")
        self.sent.append((user_id, payload))


class FailingStore(MemoryAlertStore):
    """Rejects inserts for alerts whose title contains a marker."""

    def __init__(self, marker: str = "reject"):
        super().__init__()
        self.marker = marker

    def create_alert(self, alert):
        if self.marker in alert.title.lower():
            raise RuntimeError("insert rejected")
        return super().create_alert(alert)


# =============================================================================
# FAKE SUPABASE CLIENT
# =============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the store."""

    def __init__(self, rows: list):
        self.rows = rows
        self.filters: list[Callable[[dict], bool]] = []
        self.inserted: Optional[dict] = None
        self.order_by: Optional[tuple[str, bool]] = None
        self.max_rows: Optional[int] = None

    def select(self, *columns):
        return self

    def insert(self, row: dict):
        self.inserted = row
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        if self.inserted is not None:
            self.rows.append(dict(self.inserted))
            return FakeResponse([dict(self.inserted)])

        rows = [dict(row) for row in self.rows if all(check(row) for check in self.filters)]
        if self.order_by:
            column, desc = self.order_by
            rows.sort(key=lambda row: row[column], reverse=desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return FakeResponse(rows)


class FakeSupabaseClient:
    def __init__(self, tables: Optional[dict[str, list]] = None):
        self.tables: dict[str, list] = defaultdict(list)
        for name, rows in (tables or {}).items():
            self.tables[name] = list(rows)

    def table(self, name):
        return FakeQuery(self.tables[name])


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(source_delay=0, region_delay=0)


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def fake_collector_cls():
    return FakeCollector


@pytest.fixture
def notice() -> Callable[..., dict]:
    """Factory for a collector dict shaped like a recent estate notice."""

    def _make(**overrides: Any) -> dict:
        record = {
            "title": "Estate of the late Margaret Smith",
            "content": JANE_SMITH_NOTICE,
            "date": utcnow() - timedelta(days=1),
            "source": "Fake Source",
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def raw_notice(notice) -> Callable[..., RawRecord]:
    def _make(**overrides: Any) -> RawRecord:
        return RawRecord.from_dict(notice(**overrides))

    return _make


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def recording_notifier_cls():
    return RecordingNotifier


@pytest.fixture
def static_user_matcher_cls():
    return StaticUserMatcher


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def fake_supabase_client_cls():
    return FakeSupabaseClient
