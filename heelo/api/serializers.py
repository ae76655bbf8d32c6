"""
heelo.api.serializers — ORM row → JSON dict helpers
====================================================
"""

from __future__ import annotations

from datetime import datetime

from heelo.database.models import (
    ConversationThread,
    InterestAction,
    Match,
    Message,
    Notification,
    Profile,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def profile_dict(p: Profile) -> dict:
    return {
        "id": p.id,
        "display_name": p.display_name,
        "age": p.age,
        "gender": p.gender,
        "bio": p.bio,
        "photo_refs": list(p.photo_refs or []),
        "location_category": p.location_category,
        "location_value": p.location_value,
        "clan_family_id": p.clan_family_id,
        "subclan_id": p.subclan_id,
        "is_complete": p.is_complete,
    }


def action_dict(a: InterestAction) -> dict:
    return {
        "id": a.id,
        "sender_id": a.sender_id,
        "receiver_id": a.receiver_id,
        "kind": a.kind,
        "status": a.status,
        "created_at": _iso(a.created_at),
        "responded_at": _iso(a.responded_at),
    }


def match_dict(m: Match, viewer_id: str | None = None) -> dict:
    body = {
        "id": m.id,
        "user_low_id": m.user_low_id,
        "user_high_id": m.user_high_id,
        "origin": m.origin,
        "created_at": _iso(m.created_at),
    }
    if viewer_id is not None:
        body["other_profile_id"] = m.other(viewer_id)
    return body


def thread_dict(t: ConversationThread) -> dict:
    return {
        "id": t.id,
        "match_id": t.match_id,
        "created_at": _iso(t.created_at),
        "last_message_at": _iso(t.last_message_at),
    }


def message_dict(msg: Message) -> dict:
    return {
        "id": msg.id,
        "thread_id": msg.thread_id,
        "sender_id": msg.sender_id,
        "content": msg.content,
        "kind": msg.kind,
        "is_read": msg.is_read,
        "created_at": _iso(msg.created_at),
    }


def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "kind": n.kind,
        "related_profile_id": n.related_profile_id,
        "is_read": n.is_read,
        "created_at": _iso(n.created_at),
    }
