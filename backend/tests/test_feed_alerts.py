"""Tests for feed alert evaluation."""
import logging
from unittest.mock import MagicMock

from sqlalchemy.exc import SQLAlchemyError

from feedwatch.models.feed_health import HealthStatus
from feedwatch.services.feed_alerts import FeedAlertService
from feedwatch.services.feed_health import FeedHealthService


def _fail(service, feed_key, times, error="HTTP 500"):
    for _ in range(times):
        service.record_outcome(feed_key, success=False, error_message=error)


class TestCheckAlerts:
    def test_no_alerts_for_healthy_feeds(self, db_session):
        FeedHealthService(db_session).ensure_records_exist(["tech", "ai"])
        assert FeedAlertService(db_session, alert_threshold=3).check_alerts() == []

    def test_consecutive_failure_alert_at_threshold(self, db_session, caplog):
        health = FeedHealthService(db_session, auto_disable_threshold=10)
        _fail(health, "tech", 3, error="connection reset")

        with caplog.at_level(logging.WARNING):
            alerts = FeedAlertService(db_session, alert_threshold=3).check_alerts()

        assert len(alerts) == 1
        assert alerts[0].type == "consecutive_failures"
        assert alerts[0].consecutive_failures == 3
        assert "connection reset" in alerts[0].message
        assert "[ALERT]" in caplog.text

    def test_below_threshold_no_alert(self, db_session):
        health = FeedHealthService(db_session)
        _fail(health, "tech", 2)
        assert FeedAlertService(db_session, alert_threshold=3).check_alerts() == []

    def test_disabled_feed_alert_includes_timestamp(self, db_session):
        health = FeedHealthService(db_session, auto_disable_threshold=4)
        _fail(health, "tech", 4)

        alerts = FeedAlertService(db_session, alert_threshold=3).check_alerts()

        # Disabled feeds get one alert, not the failure-streak alert as well
        assert len(alerts) == 1
        assert alerts[0].type == "disabled"
        assert "DISABLED" in alerts[0].message
        assert "auto-disabled at" in alerts[0].message

    def test_distinct_alerts_for_disabled_and_failing(self, db_session):
        health = FeedHealthService(db_session, auto_disable_threshold=10)
        _fail(health, "flaky", 3)
        health.get_or_create("manual")
        health.set_status("manual", HealthStatus.DISABLED)

        alerts = FeedAlertService(db_session, alert_threshold=3).check_alerts()
        by_feed = {a.feed_key: a.type for a in alerts}

        assert by_feed == {"flaky": "consecutive_failures", "manual": "disabled"}

    def test_null_last_error_does_not_throw(self, db_session):
        service = FeedHealthService(db_session)
        row = service.get_or_create("tech")
        row.consecutive_failures = 5
        row.last_error = None
        db_session.commit()

        alerts = FeedAlertService(db_session, alert_threshold=3).check_alerts()
        assert len(alerts) == 1
        assert "Last error: n/a" in alerts[0].message

    def test_read_failure_returns_empty(self):
        db = MagicMock()
        db.query.side_effect = SQLAlchemyError("connection refused")
        assert FeedAlertService(db, alert_threshold=3).check_alerts() == []


class TestCriticalFeeds:
    def test_only_failing_feeds(self, db_session):
        service = FeedHealthService(db_session)
        for key, status in [
            ("a", HealthStatus.FAILING),
            ("b", HealthStatus.DISABLED),
            ("c", HealthStatus.DEGRADED),
            ("d", HealthStatus.FAILING),
        ]:
            service.get_or_create(key)
            service.set_status(key, status)

        assert FeedAlertService(db_session).get_critical_feeds() == ["a", "d"]

    def test_read_failure_returns_empty(self):
        db = MagicMock()
        db.query.side_effect = SQLAlchemyError("connection refused")

        assert FeedAlertService(db, alert_threshold=3).get_critical_feeds() == []
        db.rollback.assert_called_once()


class TestAlertThreshold:
    def test_explicit_zero_threshold_is_kept(self, db_session):
        FeedHealthService(db_session).ensure_records_exist(["tech"])

        service = FeedAlertService(db_session, alert_threshold=0)
        assert service.alert_threshold == 0
        assert [a.feed_key for a in service.check_alerts()] == ["tech"]

    def test_default_from_settings(self, db_session):
        assert FeedAlertService(db_session).alert_threshold == 3
