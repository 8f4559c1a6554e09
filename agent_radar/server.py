"""
Alerts API Server for AgentRadar.

A small read-only Flask server that:
1. Lists stored estate sale alerts, highest score first
2. Returns a single alert by id
3. Answers health checks

Run this server alongside the scheduler so dashboards can read alerts.
"""

import logging
from typing import Optional
from flask import Flask, abort, jsonify, request

from .db import AlertStore, SupabaseAlertStore
from .models import Priority

logger = logging.getLogger(__name__)

MAX_LIMIT = 200


def create_app(store: AlertStore) -> Flask:
    """Build the Flask app around an alert store."""
    app = Flask(__name__)

    @app.route("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.route("/alerts")
    def list_alerts():
        """
        List alerts.

        Query params: region, priority (HIGH/MEDIUM/LOW), min_score, limit
        """
        region = request.args.get("region") or None
        priority = _parse_priority(request.args.get("priority"))
        min_score = _parse_int(request.args.get("min_score"), "min_score")
        limit = _parse_int(request.args.get("limit"), "limit") or 50
        limit = max(1, min(limit, MAX_LIMIT))

        alerts = store.list_alerts(region=region, priority=priority, min_score=min_score, limit=limit)
        return jsonify({
            "count": len(alerts),
            "alerts": [alert.to_dict() for alert in alerts],
        })

    @app.route("/alerts/<alert_id>")
    def get_alert(alert_id: str):
        """Return one alert, or 404."""
        alert = store.get_alert(alert_id)
        if not alert:
            logger.warning(f"Alert not found: {alert_id}")
            abort(404)
        return jsonify(alert.to_dict())

    return app


def _parse_priority(value: Optional[str]) -> Optional[Priority]:
    if not value:
        return None
    try:
        return Priority(value.upper())
    except ValueError:
        abort(400, description=f"Unknown priority: {value}")


def _parse_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        abort(400, description=f"{name} must be an integer")


def run_server(host: str = "0.0.0.0", port: int = 5000, debug: bool = False):
    """Run the Flask server against the Supabase alert store."""
    app = create_app(SupabaseAlertStore())
    app.run(host=host, port=port, debug=debug)


def main():
    """CLI entry point for the alerts server."""
    import argparse

    parser = argparse.ArgumentParser(description="AgentRadar Alerts API Server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logger.info(f"Starting alerts server on {args.host}:{args.port}")
    run_server(args.host, args.port, args.debug)


if __name__ == "__main__":
    main()
