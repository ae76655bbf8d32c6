"""
heelo.services.notification_service — Notification Outbox & Sinks
===================================================================

Notification rows are written in the *same* transaction as the domain
change that caused them, so a committed hello always has its
``hello_received`` row and a committed accept always has its
``hello_accepted`` row.  The rows are the outbox.

After commit, each new row is handed to a :class:`NotificationSink` for
downstream delivery (push, email, realtime).  A failing sink is logged
and never undoes the committed write; the transport can re-read unread
rows at any time.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import Engine, func, select, text, update
from sqlalchemy.orm import Session

from heelo.database.engine import get_session, utcnow
from heelo.database.models import Notification, NotificationKind

logger = logging.getLogger(__name__)

DEFAULT_NOTIFY_CHANNEL = "heelo_events"


# ---------------------------------------------------------------------------
# Event envelope handed to sinks
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class NotificationEvent:
    """Detached, immutable copy of a committed Notification row."""

    id: str
    target_profile_id: str
    kind: NotificationKind
    related_profile_id: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Notification) -> NotificationEvent:
        return cls(
            id=row.id,
            target_profile_id=row.target_profile_id,
            kind=NotificationKind(row.kind),
            related_profile_id=row.related_profile_id,
            created_at=row.created_at,
        )

    def to_payload(self) -> dict:
        payload = asdict(self)
        payload["kind"] = self.kind.value
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        return payload


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------
class NotificationSink(Protocol):
    """Accepts committed notifications for asynchronous delivery."""

    def publish(self, event: NotificationEvent) -> None: ...


class LoggingSink:
    """Default sink: records the event in the application log only."""

    def publish(self, event: NotificationEvent) -> None:
        logger.info(
            "Notification %s → %s (from %s)",
            event.kind.value, event.target_profile_id, event.related_profile_id,
        )


class MemorySink:
    """Collects events in a list.  Handy for tests and local tooling."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def publish(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: NotificationKind) -> list[NotificationEvent]:
        return [e for e in self.events if e.kind == kind]


class PgNotifySink:
    """Fan events out over PostgreSQL LISTEN/NOTIFY.

    The realtime transport LISTENs on *channel* and receives the event as
    a JSON payload.  On any other dialect the event is only logged.
    """

    def __init__(self, engine: Engine, channel: str = DEFAULT_NOTIFY_CHANNEL) -> None:
        self.engine = engine
        self.channel = channel

    def publish(self, event: NotificationEvent) -> None:
        if self.engine.dialect.name != "postgresql":
            logger.debug(
                "pg_notify unavailable on %s; dropping %s for %s",
                self.engine.dialect.name, event.kind.value, event.target_profile_id,
            )
            return
        raw = json.dumps(event.to_payload(), default=str)
        with self.engine.connect() as conn:
            conn.execute(
                text("SELECT pg_notify(:channel, :payload)"),
                {"channel": self.channel, "payload": raw},
            )
            conn.commit()


_default_sink: NotificationSink = LoggingSink()


def publish_all(sink: NotificationSink | None, events: Iterable[NotificationEvent]) -> None:
    """Hand committed events to *sink*, isolating failures per event."""
    target = sink or _default_sink
    for event in events:
        try:
            target.publish(event)
        except Exception:
            logger.exception(
                "Notification sink failed for %s → %s",
                event.kind.value, event.target_profile_id,
            )


# ---------------------------------------------------------------------------
# Writes (inside the caller's transaction)
# ---------------------------------------------------------------------------
def add_notification(
    session: Session,
    *,
    target_profile_id: str,
    kind: NotificationKind,
    related_profile_id: str,
) -> Notification:
    """Stage a Notification row in the current transaction."""
    row = Notification(
        target_profile_id=target_profile_id,
        kind=kind.value,
        related_profile_id=related_profile_id,
        is_read=False,
        created_at=utcnow(),
    )
    session.add(row)
    session.flush()
    return row


# ---------------------------------------------------------------------------
# Reads & read-state
# ---------------------------------------------------------------------------
def list_notifications(
    engine: Engine,
    profile_id: str,
    *,
    kind: NotificationKind | None = None,
    unread_only: bool = True,
) -> list[Notification]:
    """Notifications addressed to *profile_id*, newest first."""
    stmt = select(Notification).where(Notification.target_profile_id == profile_id)
    if kind is not None:
        stmt = stmt.where(Notification.kind == kind.value)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id)
    with get_session(engine) as session:
        return list(session.scalars(stmt).all())


def unread_count(engine: Engine, profile_id: str) -> dict[str, int]:
    """Unread notification counts for *profile_id*, keyed by kind."""
    with get_session(engine) as session:
        rows = session.execute(
            select(Notification.kind, func.count().label("cnt"))
            .where(
                Notification.target_profile_id == profile_id,
                Notification.is_read.is_(False),
            )
            .group_by(Notification.kind)
        ).all()
    counts = {kind.value: 0 for kind in NotificationKind}
    counts.update({row.kind: row.cnt for row in rows})
    return counts


def mark_notifications_read(
    engine: Engine,
    profile_id: str,
    notification_ids: list[str] | None = None,
) -> int:
    """Mark the target's unread notifications read.

    Only rows addressed to *profile_id* are touched, so ids belonging to
    someone else are silently skipped.  ``None`` marks all of them.
    Returns the number of rows updated.
    """
    stmt = (
        update(Notification)
        .where(
            Notification.target_profile_id == profile_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    if notification_ids is not None:
        if not notification_ids:
            return 0
        stmt = stmt.where(Notification.id.in_(notification_ids))
    with get_session(engine) as session:
        result = session.execute(stmt)
        return result.rowcount or 0
