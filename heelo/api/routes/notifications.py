"""
heelo.api.routes.notifications — Notification inbox
====================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from heelo.api.deps import EngineDep, ProfileIdDep
from heelo.api.serializers import notification_dict
from heelo.database.models import NotificationKind
from heelo.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


class MarkRead(BaseModel):
    ids: list[str] | None = None  # None → all unread


@router.get("")
def my_notifications(
    engine: EngineDep,
    me: ProfileIdDep,
    kind: NotificationKind | None = None,
    unread_only: bool = True,
):
    rows = notification_service.list_notifications(
        engine, me, kind=kind, unread_only=unread_only
    )
    return {"notifications": [notification_dict(n) for n in rows]}


@router.get("/count")
def my_unread_count(engine: EngineDep, me: ProfileIdDep):
    counts = notification_service.unread_count(engine, me)
    return {"total": sum(counts.values()), "by_kind": counts}


@router.post("/read")
def mark_read(body: MarkRead, engine: EngineDep, me: ProfileIdDep):
    return {"updated": notification_service.mark_notifications_read(engine, me, body.ids)}
