"""Unit tests for agent_radar.pipeline."""

from datetime import datetime, timedelta, timezone

import pytest

from agent_radar.alerts import AlertDispatcher
from agent_radar.cache import Cache, MemoryCache, alert_cache_key
from agent_radar.config import AppConfig
from agent_radar.db import MemoryAlertStore
from agent_radar.models import PipelineStage, Priority, RawRecord, SourceType, utcnow
from agent_radar.pipeline import EstateSalePipeline, build_pipeline, extract_city, remove_duplicates
from agent_radar.sources.base import BaseCollector


class BrokenCache(Cache):
    def get(self, key):
        raise RuntimeError("cache down")

    def set(self, key, value, ttl_seconds):
        raise RuntimeError("cache down")


class RecordCollector(BaseCollector):
    """Hands back ready-made RawRecords, bypassing dict conversion."""

    source_type = SourceType.RSS

    def __init__(self, records, name: str):
        super().__init__(config=AppConfig(request_delay=0))
        self.records = list(records)
        self.name = name

    def fetch(self, region, since=None):
        return []

    def collect(self, region, since=None):
        return list(self.records)


def _pipeline(collectors, config, store=None, **kwargs):
    kwargs.setdefault("sleep", lambda seconds: None)
    return EstateSalePipeline(
        collectors=collectors,
        store=store if store is not None else MemoryAlertStore(),
        config=config,
        **kwargs,
    )


def test_jane_smith_notice_becomes_a_high_priority_alert(fake_collector_cls, notice, pipeline_config):
    store = MemoryAlertStore()
    cache = MemoryCache()
    pipeline = _pipeline([fake_collector_cls([notice()])], pipeline_config, store=store, cache=cache)

    result = pipeline.run("toronto", days_back=7)

    assert result.success is True
    assert result.collected == 1
    assert result.processed == 1
    assert result.stored == 1
    assert len(store.alerts) == 1

    alert = store.alerts[0]
    assert alert.priority == Priority.HIGH
    assert alert.opportunity_score == 85
    assert alert.address == "123 Main Street, Toronto, ON M5V 1A1"
    assert alert.city == "Toronto"
    assert alert.region == "toronto"
    assert alert.estimated_value == 1200000.0
    assert alert.description.startswith("estate trustee: jane smith")
    assert alert.metadata["extracted_entities"]["executors"] == ["Jane Smith"]
    assert alert.metadata["extracted_entities"]["contact_info"] == ["416-555-1234"]
    assert alert.metadata["ner_confidence"] == 0.8
    assert alert.metadata["validation_score"] == 0.7
    assert alert.metadata["pipeline_version"] == pipeline_config.pipeline_version
    assert alert.metadata["scoring_breakdown"]["urgency"] == 5

    # Score 85 is cached (> 80) but not high-value enough to notify (> 85)
    assert cache.get(alert_cache_key(alert.alert_id))["alert_id"] == alert.alert_id
    assert result.high_value_opportunities == 0
    assert result.notifications_sent == 0
    assert pipeline.stage == PipelineStage.IDLE


def test_high_value_alerts_notify_matching_users(
    fake_collector_cls, notice, pipeline_config, static_user_matcher_cls, recording_notifier
):
    luxury = notice(content="Luxury waterfront home. " + notice()["content"])
    dispatcher = AlertDispatcher(static_user_matcher_cls(["u1", "u2"]), recording_notifier, threshold=85)
    pipeline = _pipeline([fake_collector_cls([luxury])], pipeline_config, dispatcher=dispatcher)

    result = pipeline.run("toronto", days_back=7)

    assert result.high_value_opportunities == 1
    assert result.notifications_sent == 2
    user_ids = [user_id for user_id, _ in recording_notifier.sent]
    assert user_ids == ["u1", "u2"]
    payload = recording_notifier.sent[0][1]
    assert payload["opportunity_score"] == 93
    assert payload["id"] == f"estate-{result.alert_ids[0]}"


def test_garbage_input_produces_no_alerts(fake_collector_cls, pipeline_config):
    garbage = [
        {"content": "asdf"},
        {"title": "x", "content": "!!!! ???? ####"},
        {"content": "estate " * 30},  # long enough, but no entities
    ]
    store = MemoryAlertStore()
    pipeline = _pipeline([fake_collector_cls(garbage)], pipeline_config, store=store)

    result = pipeline.run("toronto")

    assert result.success is True
    assert result.collected == 3
    assert result.stored == 0
    assert store.alerts == []


def test_failing_source_is_skipped(fake_collector_cls, notice, pipeline_config):
    broken = fake_collector_cls([notice()], fail_regions={"toronto"}, name="Broken Source")
    working = fake_collector_cls([notice()], name="Working Source")
    store = MemoryAlertStore()

    result = _pipeline([broken, working], pipeline_config, store=store).run("toronto")

    assert result.success is True
    assert result.stored == 1


def test_naive_publish_dates_are_read_as_utc(fake_collector_cls, notice, pipeline_config):
    naive = RawRecord(
        source="Naive Source",
        title="Estate of the late Robert Brown",
        content=notice()["content"],
        published_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=1),
        region="toronto",
    )
    stale = RawRecord(
        source="Naive Source",
        title="Estate of the late Ada Stone",
        content=notice()["content"],
        published_at=datetime(2020, 1, 1),
        region="toronto",
    )
    working = fake_collector_cls([notice(source="Working Source")], name="Working Source")
    store = MemoryAlertStore()

    result = _pipeline(
        [RecordCollector([naive, stale], name="Naive Source"), working], pipeline_config, store=store
    ).run("toronto", days_back=7)

    assert result.success is True
    assert result.collected == 2
    assert sorted(alert.source for alert in store.alerts) == ["Naive Source", "Working Source"]


def test_source_with_unreadable_records_is_skipped(fake_collector_cls, notice, pipeline_config):
    garbled = RawRecord(source="Garbled Source", title="Estate", content=notice()["content"], region=42)
    working = fake_collector_cls([notice(source="Working Source")], name="Working Source")
    store = MemoryAlertStore()

    result = _pipeline(
        [RecordCollector([garbled], name="Garbled Source"), working], pipeline_config, store=store
    ).run("toronto", days_back=7)

    assert result.success is True
    assert result.collected == 1
    assert [alert.source for alert in store.alerts] == ["Working Source"]


def test_cycle_keeps_going_when_one_region_source_throws(fake_collector_cls, notice, pipeline_config, sleeps):
    collector = fake_collector_cls([notice()], fail_regions={"york"})
    store = MemoryAlertStore()
    pipeline = _pipeline([collector], pipeline_config, store=store, sleep=sleeps.append)

    cycle = pipeline.run_cycle(["toronto", "york", "peel"])

    assert cycle.success is True
    assert [r.region for r in cycle.results] == ["toronto", "york", "peel"]
    assert all(r.success for r in cycle.results)
    assert sorted(alert.region for alert in store.alerts) == ["peel", "toronto"]
    assert cycle.total_stored == 2
    assert collector.calls == ["toronto", "york", "peel"]
    assert sleeps == [pipeline_config.region_delay] * 2


def test_cycle_defaults_to_configured_regions(fake_collector_cls, pipeline_config):
    collector = fake_collector_cls([])
    _pipeline([collector], pipeline_config).run_cycle()
    assert collector.calls == ["gta", "toronto", "york"]


def test_collect_filters_region_date_and_duplicates(fake_collector_cls, notice, pipeline_config, sleeps):
    records = [
        notice(title="A"),
        notice(title="A"),  # duplicate
        notice(title="B", date=utcnow() - timedelta(days=60)),  # too old
        notice(title="C", date=None),  # undated, kept
        notice(title="D", region="Mississauga"),  # outside toronto
        notice(title="E", region="ontario"),
        notice(title="F", region="Etobicoke"),
    ]
    first = fake_collector_cls(records)
    second = fake_collector_cls([])
    pipeline = _pipeline([first, second], pipeline_config, sleep=sleeps.append)

    collected = pipeline.collect("toronto", days_back=30)

    assert [r.title for r in collected] == ["A", "C", "E", "F"]
    assert sleeps == [pipeline_config.source_delay]


def test_store_failure_loses_only_that_alert(fake_collector_cls, notice, pipeline_config, failing_store):
    records = [notice(title="Reject me"), notice(title="Keep me")]
    result = _pipeline([fake_collector_cls(records)], pipeline_config, store=failing_store).run("toronto")

    assert result.success is True
    assert result.processed == 2
    assert result.stored == 1
    assert [a.title for a in failing_store.alerts] == ["Keep me"]


def test_cache_failure_does_not_fail_the_run(fake_collector_cls, notice, pipeline_config):
    pipeline = _pipeline([fake_collector_cls([notice()])], pipeline_config, cache=BrokenCache())
    result = pipeline.run("toronto")
    assert result.success is True
    assert result.stored == 1


def test_build_pipeline_wires_no_cache_by_default():
    assert build_pipeline(dry_run=True).cache is None

    cache = MemoryCache()
    assert build_pipeline(dry_run=True, cache=cache).cache is cache


def test_fatal_error_reports_failure(fake_collector_cls, notice, pipeline_config):
    class ExplodingNormalizer:
        def normalize_batch(self, records):
            raise RuntimeError("normalizer exploded")

    pipeline = _pipeline(
        [fake_collector_cls([notice()])], pipeline_config, normalizer=ExplodingNormalizer()
    )
    result = pipeline.run("toronto")

    assert result.success is False
    assert result.error == "normalizer exploded"
    assert pipeline.stage == PipelineStage.IDLE


def test_stages_run_in_order(fake_collector_cls, notice, pipeline_config):
    seen = []
    pipeline = _pipeline([fake_collector_cls([notice()])], pipeline_config)
    original_enter = pipeline._enter

    def recording_enter(stage):
        seen.append(stage)
        original_enter(stage)

    pipeline._enter = recording_enter
    pipeline.run("toronto")

    assert seen == [
        PipelineStage.COLLECTING,
        PipelineStage.CLEANING,
        PipelineStage.EXTRACTING,
        PipelineStage.SCORING,
        PipelineStage.VALIDATING,
        PipelineStage.STORING,
        PipelineStage.ALERTING,
        PipelineStage.IDLE,
    ]


def test_record_without_address_is_not_persisted(fake_collector_cls, notice, pipeline_config):
    no_address = notice(content=(
        "Estate Trustee: Jane Smith, Phone: 416-555-1234. Immediate sale required. "
        "Miller Thomson LLP acting. Viewing by appointment only, please call ahead."
    ))
    store = MemoryAlertStore()
    result = _pipeline([fake_collector_cls([no_address])], pipeline_config, store=store).run("toronto")

    assert result.success is True
    assert store.alerts == []


@pytest.mark.parametrize(
    "address,city",
    [
        ("123 Main Street, Toronto, ON M5V 1A1", "Toronto"),
        ("123 Main Street Toronto ON M5V 1A1", None),
        (None, None),
    ],
)
def test_extract_city(address, city):
    assert extract_city(address) == city


def test_remove_duplicates_uses_title_and_content_prefix():
    base = "x" * 50
    records = [
        RawRecord(source="a", title="T", content=base + "one"),
        RawRecord(source="b", title="T", content=base + "two"),
        RawRecord(source="c", title="U", content=base + "one"),
    ]
    assert [r.source for r in remove_duplicates(records)] == ["a", "c"]
