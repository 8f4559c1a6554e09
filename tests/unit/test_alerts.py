"""Unit tests for agent_radar.alerts."""

import pytest

from agent_radar.alerts import (
    AlertDispatcher,
    EmailAlertNotifier,
    PreferenceUserMatcher,
    build_alert_payload,
)
from agent_radar.config import AppConfig, EmailConfig
from agent_radar.models import AlertRecord, Priority


def _alert(score: int, alert_id: str = "alert_1") -> AlertRecord:
    return AlertRecord(
        alert_id=alert_id,
        title="Estate of the late Margaret Smith",
        description="estate trustee: jane smith",
        address="123 Main Street, Toronto, ON M5V 1A1",
        city="Toronto",
        region="toronto",
        priority=Priority.HIGH,
        opportunity_score=score,
        source="test",
        estimated_value=1200000.0,
        metadata={
            "dates": ["March 20, 2026"],
            "extracted_entities": {"executors": ["Jane Smith"], "contact_info": ["416-555-1234"]},
        },
    )


def _email_config() -> EmailConfig:
    return EmailConfig(
        provider="smtp",
        smtp_host="localhost",
        smtp_port=25,
        smtp_user="",
        smtp_password="",
        sendgrid_api_key="",
        from_email="alerts@agentradar.app",
        from_name="AgentRadar",
    )


class FakeUserStore:
    def __init__(self, users=None, preferences=None):
        self.users = users or {}
        self.preferences = preferences or []

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_users_for_alert(self, region, score):
        return [user_id for user_id, min_score in self.preferences if score >= min_score]


def test_payload_shape():
    payload = build_alert_payload(_alert(92))

    assert payload["id"] == "estate-alert_1"
    assert payload["type"] == "estate_sale"
    assert payload["priority"] == "high"
    assert payload["opportunity_score"] == 92
    assert payload["address"] == "123 Main Street, Toronto, ON M5V 1A1"
    assert payload["metadata"] == {
        "executors": ["Jane Smith"],
        "estimated_value": 1200000.0,
        "contact_info": ["416-555-1234"],
        "timeline": ["March 20, 2026"],
    }


def test_dispatch_only_notifies_above_threshold(static_user_matcher_cls, recording_notifier):
    dispatcher = AlertDispatcher(static_user_matcher_cls(["u1", "u2"]), recording_notifier, threshold=85)

    sent = dispatcher.dispatch([_alert(85, "alert_at"), _alert(86, "alert_over"), _alert(40, "alert_low")])

    assert sent == 2
    assert [payload["alert_id"] for _, payload in recording_notifier.sent] == ["alert_over", "alert_over"]


def test_dispatch_without_notifier_sends_nothing(static_user_matcher_cls):
    dispatcher = AlertDispatcher(static_user_matcher_cls(["u1"]), None)
    assert dispatcher.dispatch([_alert(99)]) == 0


def test_dispatch_continues_after_a_failed_user(static_user_matcher_cls, recording_notifier_cls):
    notifier = recording_notifier_cls(fail_for={"u1"})
    dispatcher = AlertDispatcher(static_user_matcher_cls(["u1", "u2"]), notifier)

    assert dispatcher.dispatch([_alert(95)]) == 1
    assert notifier.sent[0][0] == "u2"


def test_preference_matcher_reads_store():
    store = FakeUserStore(preferences=[("u1", 80), ("u2", 99)])
    assert PreferenceUserMatcher(store).find_matching_users(_alert(90)) == ["u1"]


def test_email_message_renders_alert_details():
    notifier = EmailAlertNotifier(
        FakeUserStore(),
        email_config=_email_config(),
        app_config=AppConfig(dashboard_base_url="https://app.agentradar.ca"),
    )
    msg = notifier.build_message(build_alert_payload(_alert(92)), "agent@example.com")

    assert msg["To"] == "agent@example.com"
    assert msg["From"] == "AgentRadar <alerts@agentradar.app>"
    assert "123 Main Street" in msg["Subject"]

    text = msg.get_payload()[0].get_payload(decode=True).decode()
    assert "$1,200,000" in text
    assert "Jane Smith" in text
    assert "https://app.agentradar.ca/alerts/alert_1" in text


def test_email_notifier_uses_smtp_for_known_user(monkeypatch):
    store = FakeUserStore(users={"u1": {"id": "u1", "email": "agent@example.com"}})
    notifier = EmailAlertNotifier(store, email_config=_email_config(), app_config=AppConfig())
    delivered = []
    monkeypatch.setattr(notifier, "_send_via_smtp", lambda msg, to: delivered.append(to))

    notifier.send_user_alert("u1", build_alert_payload(_alert(92)))

    assert delivered == ["agent@example.com"]


def test_email_notifier_rejects_unknown_user():
    notifier = EmailAlertNotifier(FakeUserStore(), email_config=_email_config(), app_config=AppConfig())
    with pytest.raises(ValueError, match="ghost"):
        notifier.send_user_alert("ghost", build_alert_payload(_alert(92)))
