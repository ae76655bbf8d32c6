"""
heelo.api.routes.profiles — Profile create / read / edit
=========================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from heelo.api.deps import ConfigDep, EngineDep, ProfileIdDep
from heelo.api.serializers import profile_dict
from heelo.database.models import Gender
from heelo.services import profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProfileCreate(BaseModel):
    identity_id: str = Field(min_length=1, max_length=128)
    display_name: str = Field(min_length=1, max_length=100)
    age: int


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    age: int | None = None
    gender: Gender | None = None
    bio: str | None = None
    photo_refs: list[str] | None = None
    location_category: str | None = None
    location_value: str | None = None
    clan_family_id: int | None = None
    subclan_id: int | None = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("")
def create_profile(body: ProfileCreate, engine: EngineDep, cfg: ConfigDep):
    """Create the caller's profile on first login (idempotent per identity)."""
    profile, created = profile_service.get_or_create_profile(
        engine,
        identity_id=body.identity_id,
        display_name=body.display_name,
        age=body.age,
        cfg=cfg,
    )
    return {"profile": profile_dict(profile), "created": created}


@router.get("/{profile_id}")
def read_profile(profile_id: str, engine: EngineDep):
    return profile_dict(profile_service.get_profile(engine, profile_id))


@router.patch("/me")
def edit_my_profile(
    body: ProfileUpdate, engine: EngineDep, cfg: ConfigDep, me: ProfileIdDep
):
    """Apply the fields that were sent; omitted fields are left alone."""
    fields = body.model_dump(exclude_unset=True)
    profile = profile_service.update_profile(engine, me, actor_id=me, cfg=cfg, **fields)
    return profile_dict(profile)
