"""
heelo.api.routes.interests — Hello / ignore, inbox, accept
===========================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from heelo.api.deps import ConfigDep, EngineDep, ProfileIdDep, SinkDep
from heelo.api.serializers import action_dict, match_dict
from heelo.database.models import ActionKind
from heelo.services import interest_service, match_service

router = APIRouter(prefix="/interests", tags=["interests"])


class InterestCreate(BaseModel):
    receiver_id: str
    kind: ActionKind


@router.post("")
def send_interest(
    body: InterestCreate,
    engine: EngineDep,
    cfg: ConfigDep,
    sink: SinkDep,
    me: ProfileIdDep,
):
    """Record a swipe.  A newly created hello is checked for mutuality."""
    result = interest_service.record_action(
        engine, me, body.receiver_id, body.kind, sink=sink, cfg=cfg
    )
    match = None
    if result.created and body.kind is ActionKind.HELLO:
        match = match_service.try_form_mutual_match(
            engine, me, body.receiver_id, cfg=cfg
        )
    return {
        "action": action_dict(result.action),
        "created": result.created,
        "match": match_dict(match, me) if match else None,
    }


@router.get("/pending")
def pending_hellos(engine: EngineDep, me: ProfileIdDep):
    """Hellos waiting for the caller to accept or ignore."""
    rows = interest_service.list_pending_hellos(engine, me)
    return {"hellos": [action_dict(a) for a in rows]}


@router.post("/{hello_id}/accept")
def accept(
    hello_id: str,
    engine: EngineDep,
    cfg: ConfigDep,
    sink: SinkDep,
    me: ProfileIdDep,
):
    match = match_service.accept_hello(engine, hello_id, me, sink=sink, cfg=cfg)
    return {"match": match_dict(match, me)}


@router.post("/{hello_id}/ignore")
def ignore(hello_id: str, engine: EngineDep, me: ProfileIdDep):
    return action_dict(interest_service.ignore_hello(engine, hello_id, me))
