"""
heelo.services.conversation_service — Threads, Messages & Greetings
====================================================================

Each match owns exactly one conversation thread, created on first need
(first message, or an accept).  ``conversation_threads.match_id`` is
UNIQUE, so concurrent ``ensure_thread`` calls converge on one row.

A thread holds at most one ``system`` message: the acceptance greeting.
The partial unique index ``uq_messages_thread_system`` enforces that, so
re-seeding returns the greeting that is already there.

The ``…_in_session`` helpers let :mod:`heelo.services.match_service`
accept a hello, form the match and seed the greeting in one transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, and_, or_, select, update
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.constants import SYSTEM_SENDER_ID
from heelo.database.engine import get_session, insert_or_get, utcnow
from heelo.database.models import ConversationThread, Match, Message, MessageKind
from heelo.errors import AuthorizationError, NotFoundError
from heelo.services.profile_service import require_profile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def _require_match(session: Session, match_id: str) -> Match:
    match = session.get(Match, match_id)
    if match is None:
        raise NotFoundError(f"Unknown match: {match_id}")
    return match


def _require_thread(session: Session, thread_id: str) -> tuple[ConversationThread, Match]:
    thread = session.get(ConversationThread, thread_id)
    if thread is None:
        raise NotFoundError(f"Unknown conversation thread: {thread_id}")
    return thread, _require_match(session, thread.match_id)


def _require_participant(match: Match, profile_id: str) -> None:
    if profile_id not in match.participants():
        raise AuthorizationError(f"{profile_id} is not a participant of match {match.id}")


def _find_thread(session: Session, match_id: str) -> ConversationThread | None:
    return session.scalar(
        select(ConversationThread).where(ConversationThread.match_id == match_id)
    )


def _find_system_message(session: Session, thread_id: str) -> Message | None:
    return session.scalar(
        select(Message).where(
            Message.thread_id == thread_id,
            Message.kind == MessageKind.SYSTEM.value,
        )
    )


# ---------------------------------------------------------------------------
# In-session building blocks
# ---------------------------------------------------------------------------
def ensure_thread_in_session(
    session: Session, match_id: str, *, attempts: int
) -> tuple[ConversationThread, bool]:
    _require_match(session, match_id)
    row = ConversationThread(match_id=match_id, created_at=utcnow())
    return insert_or_get(
        session, row, lambda s: _find_thread(s, match_id), attempts=attempts
    )


def seed_greeting_in_session(
    session: Session, match: Match, accepter_id: str, cfg: HeeloConfig
) -> tuple[Message, bool]:
    """Ensure the thread, then insert the greeting unless one exists."""
    _require_participant(match, accepter_id)
    accepter = require_profile(session, accepter_id)
    thread, _ = ensure_thread_in_session(
        session, match.id, attempts=cfg.insert_retry_limit
    )

    now = utcnow()
    row = Message(
        thread_id=thread.id,
        sender_id=SYSTEM_SENDER_ID,
        content=cfg.greeting_template.format(accepter=accepter.display_name),
        kind=MessageKind.SYSTEM.value,
        is_read=False,
        created_at=now,
    )
    greeting, created = insert_or_get(
        session,
        row,
        lambda s: _find_system_message(s, thread.id),
        attempts=cfg.insert_retry_limit,
    )
    if created:
        thread.last_message_at = now
        session.flush()
    return greeting, created


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def ensure_thread(
    engine: Engine, match_id: str, *, cfg: HeeloConfig | None = None
) -> ConversationThread:
    """Find or create the single thread for *match_id*.

    Raises
    ------
    NotFoundError
        If the match doesn't exist.
    """
    cfg = cfg or HeeloConfig()
    with get_session(engine) as session:
        thread, created = ensure_thread_in_session(
            session, match_id, attempts=cfg.insert_retry_limit
        )
    if created:
        logger.info("Thread %s opened for match %s", thread.id, match_id)
    return thread


def send_message(
    engine: Engine,
    thread_id: str,
    sender_id: str,
    content: str,
    kind: MessageKind | str = MessageKind.TEXT,
    *,
    cfg: HeeloConfig | None = None,
) -> Message:
    """Append a message to a thread and bump ``last_message_at``.

    Text messages must come from one of the two participants and carry
    non-blank content (stored stripped).  System messages must use the
    ``"system"`` sender; since a thread holds at most one, sending another
    returns the existing one.

    Raises
    ------
    NotFoundError
        If the thread doesn't exist.
    AuthorizationError
        If the sender may not post this kind of message here.
    ValueError
        If the content is blank or *kind* is unknown.
    """
    cfg = cfg or HeeloConfig()
    kind = MessageKind(kind)
    body = (content or "").strip()
    if not body:
        raise ValueError("Message content must not be empty")

    with get_session(engine) as session:
        thread, match = _require_thread(session, thread_id)
        if kind is MessageKind.SYSTEM:
            if sender_id != SYSTEM_SENDER_ID:
                raise AuthorizationError("System messages must use the system sender")
        else:
            _require_participant(match, sender_id)

        now = utcnow()
        row = Message(
            thread_id=thread.id,
            sender_id=sender_id,
            content=body,
            kind=kind.value,
            is_read=False,
            created_at=now,
        )
        if kind is MessageKind.SYSTEM:
            message, created = insert_or_get(
                session,
                row,
                lambda s: _find_system_message(s, thread.id),
                attempts=cfg.insert_retry_limit,
            )
        else:
            session.add(row)
            session.flush()
            message, created = row, True

        if created:
            thread.last_message_at = now
        return message


def seed_acceptance_greeting(
    engine: Engine,
    match: Match,
    accepter_id: str,
    *,
    cfg: HeeloConfig | None = None,
) -> Message:
    """Insert the one system greeting for *match*'s thread.

    Safe to call any number of times; later calls return the first greeting.
    """
    cfg = cfg or HeeloConfig()
    with get_session(engine) as session:
        live = _require_match(session, match.id)
        greeting, created = seed_greeting_in_session(session, live, accepter_id, cfg)
    if created:
        logger.info("Greeting seeded for match %s", match.id)
    return greeting


def mark_read(engine: Engine, thread_id: str, reader_id: str) -> int:
    """Mark every unread message *not* sent by *reader_id* as read.

    Returns the number of messages updated.
    """
    with get_session(engine) as session:
        _, match = _require_thread(session, thread_id)
        _require_participant(match, reader_id)
        result = session.execute(
            update(Message)
            .where(
                Message.thread_id == thread_id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
        )
        return result.rowcount or 0


def list_messages(engine: Engine, thread_id: str, reader_id: str) -> list[Message]:
    """Thread messages in chronological order (participants only)."""
    with get_session(engine) as session:
        _, match = _require_thread(session, thread_id)
        _require_participant(match, reader_id)
        return list(session.scalars(
            select(Message)
            .where(Message.thread_id == thread_id)
            .order_by(Message.created_at, Message.id)
        ).all())


def unread_senders(engine: Engine, profile_id: str) -> set[str]:
    """Counterparts who have sent *profile_id* text messages not yet read."""
    with get_session(engine) as session:
        rows = session.scalars(
            select(Message.sender_id)
            .join(ConversationThread, ConversationThread.id == Message.thread_id)
            .join(Match, Match.id == ConversationThread.match_id)
            .where(
                or_(Match.user_low_id == profile_id, Match.user_high_id == profile_id),
                and_(
                    Message.sender_id != profile_id,
                    Message.kind == MessageKind.TEXT.value,
                    Message.is_read.is_(False),
                ),
            )
            .distinct()
        ).all()
    return set(rows)
