"""
heelo.api.routes.discovery — Candidate pages
=============================================

Callers without ``X-Profile-Id`` get the anonymous preview feed.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from heelo.api.deps import ConfigDep, EngineDep, get_optional_profile_id
from heelo.api.serializers import profile_dict
from heelo.engine.filters import DiscoveryFilters
from heelo.services import discovery_service

router = APIRouter(tags=["discovery"])


@router.get("/discovery")
def discover(
    engine: EngineDep,
    cfg: ConfigDep,
    viewer_id: Annotated[str | None, Depends(get_optional_profile_id)],
    age_min: int | None = None,
    age_max: int | None = None,
    clan_family_id: int | None = None,
    subclan_id: int | None = None,
    location_category: str | None = None,
    location_value: str | None = None,
    page_size: int | None = Query(None, ge=1),
    after: str | None = None,
):
    """Next page of candidates plus the cursor for the page after it."""
    filters = DiscoveryFilters(
        age_min=age_min if age_min is not None else cfg.default_age_min,
        age_max=age_max if age_max is not None else cfg.default_age_max,
        clan_family_id=clan_family_id,
        subclan_id=subclan_id,
        location_category=location_category or None,
        location_value=location_value or None,
    )
    rows = discovery_service.next_candidates(
        engine, viewer_id, filters, page_size, after=after, cfg=cfg
    )
    return {
        "profiles": [profile_dict(p) for p in rows],
        "next_cursor": rows[-1].id if rows else None,
    }
