"""
heelo.services.interest_service — Hello / Ignore Ledger
========================================================

Records one directed action per ordered (sender, receiver) pair.  The
``uq_interest_actions_pair`` constraint decides which of two racing
submissions wins; the loser gets the winner's row back and
``created=False``.  A repeated action is a successful no-op: the first
action stands, whatever kind the repeat carries.

A newly created hello stages a ``hello_received`` notification in the
same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.database.engine import get_session, insert_or_get, utcnow
from heelo.database.models import (
    ActionKind,
    ActionStatus,
    InterestAction,
    NotificationKind,
)
from heelo.errors import AuthorizationError, NotFoundError
from heelo.services.notification_service import (
    NotificationEvent,
    NotificationSink,
    add_notification,
    publish_all,
)
from heelo.services.profile_service import require_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecordResult:
    """Outcome of :func:`record_action`.

    ``created`` is False when an action for the pair already existed;
    callers use it to decide whether a mutual-match check is worthwhile.
    """

    action: InterestAction
    created: bool


def find_action(session: Session, sender_id: str, receiver_id: str) -> InterestAction | None:
    return session.scalar(
        select(InterestAction).where(
            InterestAction.sender_id == sender_id,
            InterestAction.receiver_id == receiver_id,
        )
    )


def record_action(
    engine: Engine,
    sender_id: str,
    receiver_id: str,
    kind: ActionKind | str,
    *,
    sink: NotificationSink | None = None,
    cfg: HeeloConfig | None = None,
) -> RecordResult:
    """Persist a hello or ignore from *sender_id* toward *receiver_id*.

    Raises
    ------
    ValueError
        If the ids are equal or *kind* is not ``hello`` / ``ignore``.
    UnknownProfileError
        If either profile doesn't exist.
    """
    cfg = cfg or HeeloConfig()
    kind = ActionKind(kind)
    if sender_id == receiver_id:
        raise ValueError("A profile cannot send an interest action to itself")

    staged = []
    with get_session(engine) as session:
        require_profile(session, sender_id)
        require_profile(session, receiver_id)

        row = InterestAction(
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=kind.value,
            status=(
                ActionStatus.PENDING.value if kind is ActionKind.HELLO
                else ActionStatus.IGNORED.value
            ),
            created_at=utcnow(),
        )
        action, created = insert_or_get(
            session,
            row,
            lambda s: find_action(s, sender_id, receiver_id),
            attempts=cfg.insert_retry_limit,
        )

        if created and kind is ActionKind.HELLO:
            staged.append(add_notification(
                session,
                target_profile_id=receiver_id,
                kind=NotificationKind.HELLO_RECEIVED,
                related_profile_id=sender_id,
            ))

    if created:
        logger.info("%s recorded: %s → %s", kind.value, sender_id, receiver_id)
    else:
        logger.debug(
            "Duplicate %s suppressed: %s → %s (existing %s)",
            kind.value, sender_id, receiver_id, action.kind,
        )

    publish_all(sink, [NotificationEvent.from_row(n) for n in staged])
    return RecordResult(action=action, created=created)


def list_pending_hellos(engine: Engine, receiver_id: str) -> list[InterestAction]:
    """Hellos awaiting *receiver_id*'s response, newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(InterestAction)
            .where(
                InterestAction.receiver_id == receiver_id,
                InterestAction.kind == ActionKind.HELLO.value,
                InterestAction.status == ActionStatus.PENDING.value,
            )
            .order_by(InterestAction.created_at.desc(), InterestAction.id)
        ).all())


def load_hello_for_receiver(
    session: Session, hello_id: str, receiver_id: str
) -> InterestAction:
    """Load a hello and check it targets *receiver_id*.

    Raises
    ------
    NotFoundError
        If no action has that id.
    AuthorizationError
        If it isn't a hello addressed to *receiver_id*.
    """
    action = session.get(InterestAction, hello_id)
    if action is None:
        raise NotFoundError(f"Unknown interest action: {hello_id}")
    if action.receiver_id != receiver_id or action.kind != ActionKind.HELLO.value:
        raise AuthorizationError(
            f"Interest action {hello_id} is not a hello addressed to {receiver_id}"
        )
    return action


def ignore_hello(engine: Engine, hello_id: str, receiver_id: str) -> InterestAction:
    """Decline a pending hello.

    Only a pending hello moves to ``ignored``; repeating the call, or
    ignoring a hello that was already accepted, returns it unchanged.
    """
    with get_session(engine) as session:
        action = load_hello_for_receiver(session, hello_id, receiver_id)
        result = session.execute(
            update(InterestAction)
            .where(
                InterestAction.id == hello_id,
                InterestAction.status == ActionStatus.PENDING.value,
            )
            .values(status=ActionStatus.IGNORED.value, responded_at=utcnow())
        )
        if result.rowcount:
            logger.info("Hello %s ignored by %s", hello_id, receiver_id)
        session.refresh(action)
        return action
