"""
heelo.services.match_service — Mutual & Direct-Accept Matching
===============================================================

Two independent triggers converge on one primitive, :func:`_insert_match`:

* **Mutual** — both directed hellos exist → :func:`try_form_mutual_match`.
* **Direct accept** — the receiver accepts a hello → :func:`accept_hello`.
  Acceptance alone is enough; the accepter need not hello back.

The match row is keyed on :func:`~heelo.engine.pairs.canonical_pair` and
guarded by ``uq_matches_pair``.  However many callers race, from however
many processes, exactly one row is committed and every caller gets it.

Policy: an accept is the receiver's latest explicit intent.  It succeeds
even if the accepter earlier sent an ``ignore`` toward the sender, or
ignored this very hello.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, and_, func, or_, select, update
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.database.engine import get_session, insert_or_get, utcnow
from heelo.database.models import (
    ActionKind,
    ActionStatus,
    InterestAction,
    Match,
    MatchOrigin,
    NotificationKind,
)
from heelo.engine.pairs import canonical_pair
from heelo.errors import NotFoundError
from heelo.services.conversation_service import seed_greeting_in_session
from heelo.services.interest_service import load_hello_for_receiver
from heelo.services.notification_service import (
    NotificationEvent,
    NotificationSink,
    add_notification,
    publish_all,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared primitive
# ---------------------------------------------------------------------------
def _find_match(session: Session, low: str, high: str) -> Match | None:
    return session.scalar(
        select(Match).where(Match.user_low_id == low, Match.user_high_id == high)
    )


def _insert_match(
    session: Session, a: str, b: str, origin: MatchOrigin, *, attempts: int
) -> tuple[Match, bool]:
    """Insert the canonical match for (a, b) unless it already exists."""
    low, high = canonical_pair(a, b)
    row = Match(
        user_low_id=low,
        user_high_id=high,
        origin=origin.value,
        created_at=utcnow(),
    )
    return insert_or_get(
        session, row, lambda s: _find_match(s, low, high), attempts=attempts
    )


# ---------------------------------------------------------------------------
# Mutual detection
# ---------------------------------------------------------------------------
def try_form_mutual_match(
    engine: Engine,
    profile_a: str,
    profile_b: str,
    *,
    cfg: HeeloConfig | None = None,
) -> Match | None:
    """Return the pair's Match if both have sent each other a hello.

    Creates the match on first success; later calls, from either side,
    return the same row.  Returns ``None`` when interest isn't mutual.
    """
    cfg = cfg or HeeloConfig()
    low, high = canonical_pair(profile_a, profile_b)

    with get_session(engine) as session:
        hellos = session.scalar(
            select(func.count())
            .select_from(InterestAction)
            .where(
                InterestAction.kind == ActionKind.HELLO.value,
                or_(
                    and_(InterestAction.sender_id == low, InterestAction.receiver_id == high),
                    and_(InterestAction.sender_id == high, InterestAction.receiver_id == low),
                ),
            )
        ) or 0
        if hellos < 2:
            return None

        match, created = _insert_match(
            session, low, high, MatchOrigin.MUTUAL, attempts=cfg.insert_retry_limit
        )

    if created:
        logger.info("Mutual match %s formed: %s <-> %s", match.id, low, high)
    return match


# ---------------------------------------------------------------------------
# Direct accept
# ---------------------------------------------------------------------------
def accept_hello(
    engine: Engine,
    hello_id: str,
    accepter_id: str,
    *,
    sink: NotificationSink | None = None,
    cfg: HeeloConfig | None = None,
) -> Match:
    """Accept a hello addressed to *accepter_id* and return the Match.

    In one transaction: flip the hello to ``accepted`` (only if it isn't
    already), insert-or-get the match, notify the sender on the flip,
    and seed the acceptance greeting.  Retrying is safe: a repeat returns
    the same Match, sends no second notification and adds no second
    greeting.

    Raises
    ------
    NotFoundError
        If *hello_id* doesn't exist.
    AuthorizationError
        If it isn't a hello addressed to *accepter_id*.
    """
    cfg = cfg or HeeloConfig()
    staged = []

    with get_session(engine) as session:
        action = load_hello_for_receiver(session, hello_id, accepter_id)
        sender_id = action.sender_id

        # Conditional UPDATE: of two racing accepts, only one flips the row.
        result = session.execute(
            update(InterestAction)
            .where(
                InterestAction.id == hello_id,
                InterestAction.status != ActionStatus.ACCEPTED.value,
            )
            .values(status=ActionStatus.ACCEPTED.value, responded_at=utcnow())
        )
        transitioned = bool(result.rowcount)

        match, created = _insert_match(
            session, sender_id, accepter_id, MatchOrigin.ACCEPT,
            attempts=cfg.insert_retry_limit,
        )

        if transitioned:
            staged.append(add_notification(
                session,
                target_profile_id=sender_id,
                kind=NotificationKind.HELLO_ACCEPTED,
                related_profile_id=accepter_id,
            ))

        seed_greeting_in_session(session, match, accepter_id, cfg)

    if transitioned:
        logger.info(
            "Hello %s accepted by %s → match %s (%s)",
            hello_id, accepter_id, match.id, "new" if created else "existing",
        )
    else:
        logger.debug("Repeat accept of hello %s → match %s", hello_id, match.id)

    publish_all(sink, [NotificationEvent.from_row(n) for n in staged])
    return match


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_match(engine: Engine, match_id: str) -> Match:
    with get_session(engine) as session:
        match = session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Unknown match: {match_id}")
        return match


def get_match_for_pair(engine: Engine, profile_a: str, profile_b: str) -> Match | None:
    low, high = canonical_pair(profile_a, profile_b)
    with get_session(engine) as session:
        return _find_match(session, low, high)


def list_matches(engine: Engine, profile_id: str) -> list[Match]:
    """Every match *profile_id* belongs to, newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Match)
            .where(or_(Match.user_low_id == profile_id, Match.user_high_id == profile_id))
            .order_by(Match.created_at.desc(), Match.id)
        ).all())
