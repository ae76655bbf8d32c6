"""
heelo.api.routes.chat — Matches, threads & messages
====================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from heelo.api.deps import ConfigDep, EngineDep, ProfileIdDep
from heelo.api.serializers import match_dict, message_dict, thread_dict
from heelo.errors import AuthorizationError
from heelo.services import conversation_service, match_service

router = APIRouter(tags=["chat"])


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------
@router.get("/matches")
def my_matches(engine: EngineDep, me: ProfileIdDep):
    return {"matches": [match_dict(m, me) for m in match_service.list_matches(engine, me)]}


@router.post("/matches/{match_id}/thread")
def open_thread(match_id: str, engine: EngineDep, cfg: ConfigDep, me: ProfileIdDep):
    """Find or create the match's conversation thread."""
    match = match_service.get_match(engine, match_id)
    if me not in match.participants():
        raise AuthorizationError(f"{me} is not a participant of match {match_id}")
    return thread_dict(conversation_service.ensure_thread(engine, match_id, cfg=cfg))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
@router.get("/threads/{thread_id}/messages")
def read_messages(thread_id: str, engine: EngineDep, me: ProfileIdDep):
    rows = conversation_service.list_messages(engine, thread_id, me)
    return {"messages": [message_dict(m) for m in rows]}


@router.post("/threads/{thread_id}/messages")
def post_message(
    thread_id: str,
    body: MessageCreate,
    engine: EngineDep,
    cfg: ConfigDep,
    me: ProfileIdDep,
):
    msg = conversation_service.send_message(engine, thread_id, me, body.content, cfg=cfg)
    return message_dict(msg)


@router.post("/threads/{thread_id}/read")
def read_thread(thread_id: str, engine: EngineDep, me: ProfileIdDep):
    return {"updated": conversation_service.mark_read(engine, thread_id, me)}


@router.get("/messages/unread-senders")
def unread_message_senders(engine: EngineDep, me: ProfileIdDep):
    return {"senders": sorted(conversation_service.unread_senders(engine, me))}
