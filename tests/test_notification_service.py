"""
tests/test_notification_service.py — Notification Outbox & Sinks
==================================================================
Rows written with the domain change, sink failures isolated per event,
read-state bookkeeping.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from heelo.database.models import NotificationKind
from heelo.services import interest_service, match_service, notification_service
from heelo.services.notification_service import (
    LoggingSink,
    MemorySink,
    NotificationEvent,
    PgNotifySink,
    publish_all,
)
from tests.conftest import make_profile


def _event(target: str = "t", kind=NotificationKind.HELLO_RECEIVED) -> NotificationEvent:
    return NotificationEvent(
        id="n-1",
        target_profile_id=target,
        kind=kind,
        related_profile_id="r",
        created_at=datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
    )


class TestSinks:
    def test_payload_is_json_friendly(self):
        payload = _event().to_payload()
        assert payload["kind"] == "hello_received"
        assert payload["created_at"] == "2026-03-01T12:00:00+00:00"

    def test_failing_sink_does_not_stop_other_events(self, caplog):
        sink = MagicMock()
        sink.publish.side_effect = [RuntimeError("push down"), None]

        with caplog.at_level(logging.ERROR):
            publish_all(sink, [_event("x"), _event("y")])

        assert sink.publish.call_count == 2
        assert "Notification sink failed" in caplog.text

    def test_failing_sink_keeps_committed_rows(self, db_engine):
        a = make_profile(db_engine, "A")
        b = make_profile(db_engine, "B")
        sink = MagicMock()
        sink.publish.side_effect = RuntimeError("push down")

        result = interest_service.record_action(db_engine, a.id, b.id, "hello", sink=sink)

        assert result.created is True
        rows = notification_service.list_notifications(db_engine, b.id)
        assert [n.kind for n in rows] == ["hello_received"]

    def test_default_sink_logs(self, caplog):
        with caplog.at_level(logging.INFO, logger="heelo.services.notification_service"):
            publish_all(None, [_event("someone")])
        assert "someone" in caplog.text

    def test_logging_sink_names_kind_and_target(self, caplog):
        with caplog.at_level(logging.INFO, logger="heelo.services.notification_service"):
            LoggingSink().publish(_event("target-42", NotificationKind.HELLO_ACCEPTED))
        assert "hello_accepted" in caplog.text
        assert "target-42" in caplog.text

    def test_pg_notify_sink_skips_other_dialects(self, db_engine, caplog):
        with caplog.at_level(logging.DEBUG, logger="heelo.services.notification_service"):
            PgNotifySink(db_engine, "heelo_events").publish(_event())
        assert "pg_notify unavailable on sqlite" in caplog.text

    def test_pg_notify_sink_sends_payload_on_postgres(self):
        engine = MagicMock()
        engine.dialect.name = "postgresql"
        conn = engine.connect.return_value.__enter__.return_value

        PgNotifySink(engine, "chan").publish(_event())

        stmt, params = conn.execute.call_args.args
        assert "pg_notify" in str(stmt)
        assert params["channel"] == "chan"
        assert '"hello_received"' in params["payload"]
        conn.commit.assert_called_once()


class TestInbox:
    @pytest.fixture
    def inbox(self, db_engine):
        """B receives two hellos; C accepts B's hello to C."""
        a = make_profile(db_engine, "A")
        b = make_profile(db_engine, "B")
        c = make_profile(db_engine, "C")
        interest_service.record_action(db_engine, a.id, b.id, "hello")
        interest_service.record_action(db_engine, c.id, b.id, "hello")
        hello = interest_service.record_action(db_engine, b.id, c.id, "hello").action
        match_service.accept_hello(db_engine, hello.id, c.id)
        return a, b, c

    def test_list_and_filter_by_kind(self, db_engine, inbox):
        _, b, c = inbox
        all_rows = notification_service.list_notifications(db_engine, b.id)
        assert sorted(n.kind for n in all_rows) == [
            "hello_accepted", "hello_received", "hello_received",
        ]
        accepted = notification_service.list_notifications(
            db_engine, b.id, kind=NotificationKind.HELLO_ACCEPTED
        )
        assert [n.related_profile_id for n in accepted] == [c.id]

    def test_unread_count_by_kind(self, db_engine, inbox):
        a, b, _ = inbox
        assert notification_service.unread_count(db_engine, b.id) == {
            "hello_received": 2,
            "hello_accepted": 1,
        }
        assert notification_service.unread_count(db_engine, a.id) == {
            "hello_received": 0,
            "hello_accepted": 0,
        }

    def test_mark_selected_then_all(self, db_engine, inbox):
        a, b, _ = inbox
        rows = notification_service.list_notifications(db_engine, b.id)
        first = rows[0].id

        assert notification_service.mark_notifications_read(db_engine, b.id, []) == 0
        assert notification_service.mark_notifications_read(db_engine, a.id, [first]) == 0
        assert notification_service.mark_notifications_read(db_engine, b.id, [first]) == 1
        assert notification_service.mark_notifications_read(db_engine, b.id) == 2
        assert notification_service.list_notifications(db_engine, b.id) == []
        assert len(notification_service.list_notifications(
            db_engine, b.id, unread_only=False
        )) == 3

    def test_memory_sink_filters_by_kind(self):
        sink = MemorySink()
        sink.publish(_event(kind=NotificationKind.HELLO_RECEIVED))
        sink.publish(_event(kind=NotificationKind.HELLO_ACCEPTED))
        assert len(sink.of_kind(NotificationKind.HELLO_ACCEPTED)) == 1
