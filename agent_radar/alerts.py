"""
Alert notification module for AgentRadar.

Decides who hears about a high-value alert and hands it to a notification
sink. The pipeline only decides whether and to whom to notify; delivery is
the sink's job. Email delivery supports both SMTP and SendGrid.
"""

import smtplib
import logging
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from .config import AppConfig, EmailConfig, get_app_config, get_email_config
from .models import AlertRecord

logger = logging.getLogger(__name__)


# =============================================================================
# EMAIL TEMPLATES
# =============================================================================

ALERT_EMAIL_SUBJECT = "🏠 Estate Sale Opportunity: {address}"

ALERT_EMAIL_HTML = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #1a365d; color: white; padding: 20px; text-align: center; }}
        .content {{ padding: 20px; background: #f7fafc; }}
        .card {{ background: white; border-radius: 8px; padding: 20px; margin: 15px 0; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
        .score {{ font-size: 24px; font-weight: bold; color: #2b6cb0; }}
        .detail-row {{ display: flex; margin: 5px 0; }}
        .detail-label {{ font-weight: bold; width: 140px; }}
        .cta-button {{ display: inline-block; background: #38a169; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; font-weight: bold; margin: 15px 0; }}
        .footer {{ text-align: center; padding: 20px; color: #718096; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{title}</h1>
        </div>
        <div class="content">
            <div class="card">
                <div class="score">Opportunity score: {opportunity_score}/100</div>
                <div class="detail-row">
                    <span class="detail-label">Address:</span>
                    <span>{address}</span>
                </div>
                <div class="detail-row">
                    <span class="detail-label">Estimated value:</span>
                    <span>{value_display}</span>
                </div>
                <div class="detail-row">
                    <span class="detail-label">Executors:</span>
                    <span>{executors}</span>
                </div>
                <div class="detail-row">
                    <span class="detail-label">Contact:</span>
                    <span>{contact_info}</span>
                </div>
                <p>{message}</p>
                <a href="{link}" class="cta-button">View Opportunity →</a>
            </div>
        </div>
        <div class="footer">
            <p>You're receiving this because you set up estate sale alerts for this region.</p>
            <p>AgentRadar</p>
        </div>
    </div>
</body>
</html>
"""

ALERT_EMAIL_TEXT = """
{title}

Opportunity score: {opportunity_score}/100
Address: {address}
Estimated value: {value_display}
Executors: {executors}
Contact: {contact_info}

{message}

View opportunity: {link}

---
AgentRadar
"""


def build_alert_payload(alert: AlertRecord) -> dict:
    """Build the notification payload for a stored high-value alert."""
    entities = alert.metadata.get("extracted_entities", {})
    return {
        "id": f"estate-{alert.alert_id}",
        "type": "estate_sale",
        "title": "🏠 High-Value Estate Sale Opportunity",
        "message": (
            f"New estate sale opportunity identified with "
            f"{alert.opportunity_score}% match score"
        ),
        "alert_id": alert.alert_id,
        "address": alert.address,
        "region": alert.region,
        "priority": "high",
        "opportunity_score": alert.opportunity_score,
        "metadata": {
            "executors": entities.get("executors", []),
            "estimated_value": alert.estimated_value,
            "contact_info": entities.get("contact_info", []),
            "timeline": alert.metadata.get("dates", []),
        },
    }


# =============================================================================
# COLLABORATOR CONTRACTS
# =============================================================================

class UserMatcher(ABC):
    """Finds the users who should hear about an alert."""

    @abstractmethod
    def find_matching_users(self, alert: AlertRecord) -> list[str]:
        pass


class Notifier(ABC):
    """Delivers an alert payload to one user."""

    @abstractmethod
    def send_user_alert(self, user_id: str, payload: dict) -> None:
        pass


class NoUserMatcher(UserMatcher):
    """Matches nobody."""

    def find_matching_users(self, alert: AlertRecord) -> list[str]:
        return []


class PreferenceUserMatcher(UserMatcher):
    """
    Matches users by their saved alert preferences.

    Expects a store with get_users_for_alert(region, score), i.e.
    db.SupabaseAlertStore.
    """

    def __init__(self, store):
        self.store = store

    def find_matching_users(self, alert: AlertRecord) -> list[str]:
        return self.store.get_users_for_alert(alert.region, alert.opportunity_score)


class EmailAlertNotifier(Notifier):
    """
    Sends alert emails.

    Usage:
        notifier = EmailAlertNotifier(store)
        notifier.send_user_alert(user_id, payload)
    """

    def __init__(
        self,
        store,
        email_config: Optional[EmailConfig] = None,
        app_config: Optional[AppConfig] = None,
    ):
        """Initialize the notifier; store must provide get_user(user_id)."""
        self.store = store
        self.email_config = email_config or get_email_config()
        self.app_config = app_config or get_app_config()

    def send_user_alert(self, user_id: str, payload: dict) -> None:
        user = self.store.get_user(user_id)
        if not user or not user.get("email"):
            raise ValueError(f"No email address for user {user_id}")

        msg = self.build_message(payload, user["email"])

        # Send based on provider
        if self.email_config.provider == "sendgrid":
            self._send_via_sendgrid(msg, user["email"])
        else:
            self._send_via_smtp(msg, user["email"])

        logger.info(f"Sent alert {payload.get('alert_id')} to user {user_id}")

    def build_message(self, payload: dict, to_email: str) -> MIMEMultipart:
        """Render the text and HTML versions of the alert email."""
        metadata = payload.get("metadata", {})
        estimated_value = metadata.get("estimated_value")

        if self.app_config.dashboard_base_url:
            link = f"{self.app_config.dashboard_base_url}/alerts/{payload.get('alert_id')}"
        else:
            link = "#"

        template_vars = {
            "title": payload.get("title", "Estate Sale Opportunity"),
            "message": payload.get("message", ""),
            "address": payload.get("address") or "Address pending validation",
            "opportunity_score": payload.get("opportunity_score", 0),
            "value_display": f"${estimated_value:,.0f}" if estimated_value else "Not listed",
            "executors": ", ".join(metadata.get("executors", [])) or "Not listed",
            "contact_info": ", ".join(metadata.get("contact_info", [])) or "Not listed",
            "link": link,
        }

        msg = MIMEMultipart("alternative")
        msg["Subject"] = ALERT_EMAIL_SUBJECT.format(**template_vars)
        msg["From"] = f"{self.email_config.from_name} <{self.email_config.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(ALERT_EMAIL_TEXT.format(**template_vars), "plain"))
        msg.attach(MIMEText(ALERT_EMAIL_HTML.format(**template_vars), "html"))
        return msg

    def _send_via_smtp(self, msg: MIMEMultipart, to_email: str) -> None:
        """Send email via SMTP."""
        with smtplib.SMTP(self.email_config.smtp_host, self.email_config.smtp_port) as server:
            server.starttls()
            if self.email_config.smtp_user and self.email_config.smtp_password:
                server.login(self.email_config.smtp_user, self.email_config.smtp_password)
            server.send_message(msg)

    def _send_via_sendgrid(self, msg: MIMEMultipart, to_email: str) -> None:
        """Send email via SendGrid API."""
        try:
            import sendgrid
            from sendgrid.helpers.mail import Mail, Email, To
        except ImportError:
            logger.error("SendGrid package not installed. Run: pip install sendgrid")
            raise

        sg = sendgrid.SendGridAPIClient(api_key=self.email_config.sendgrid_api_key)

        # Extract content from MIMEMultipart
        html_content = None
        text_content = None
        for part in msg.walk():
            if part.get_content_type() == "text/html":
                html_content = part.get_payload(decode=True).decode()
            elif part.get_content_type() == "text/plain":
                text_content = part.get_payload(decode=True).decode()

        message = Mail(
            from_email=Email(self.email_config.from_email, self.email_config.from_name),
            to_emails=To(to_email),
            subject=msg["Subject"],
            html_content=html_content or text_content,
        )

        response = sg.send(message)

        if response.status_code not in (200, 201, 202):
            raise RuntimeError(f"SendGrid error: {response.status_code}")


# =============================================================================
# DISPATCH
# =============================================================================

class AlertDispatcher:
    """
    Notifies matching users about stored alerts above the high-value threshold.

    Usage:
        dispatcher = AlertDispatcher(user_matcher, notifier)
        sent = dispatcher.dispatch(stored_alerts)
    """

    def __init__(
        self,
        user_matcher: Optional[UserMatcher] = None,
        notifier: Optional[Notifier] = None,
        threshold: int = 85,
    ):
        self.user_matcher = user_matcher or NoUserMatcher()
        self.notifier = notifier
        self.threshold = threshold

    def is_high_value(self, alert: AlertRecord) -> bool:
        return alert.opportunity_score > self.threshold

    def dispatch(self, alerts: list[AlertRecord]) -> int:
        """
        Send notifications for high-value alerts.

        Returns:
            Number of notifications delivered
        """
        high_value = [alert for alert in alerts if self.is_high_value(alert)]
        if not high_value:
            return 0

        if self.notifier is None:
            logger.warning("No notifier configured, skipping alerts")
            return 0

        sent = 0
        for alert in high_value:
            try:
                users = self.user_matcher.find_matching_users(alert)
            except Exception as e:
                logger.error(f"User matching failed for alert {alert.alert_id}: {e}")
                continue

            payload = build_alert_payload(alert)
            for user_id in users:
                try:
                    self.notifier.send_user_alert(user_id, payload)
                    sent += 1
                except Exception as e:
                    logger.error(f"Failed to notify user {user_id} of alert {alert.alert_id}: {e}")
                    continue

            logger.info(f"Alert {alert.alert_id} sent to {len(users)} users ({alert.opportunity_score}%)")

        return sent
