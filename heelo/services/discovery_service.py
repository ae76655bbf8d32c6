"""
heelo.services.discovery_service — Candidate Selection
=======================================================

Computes the next page of profiles a viewer may be shown.  Read-only.

Exclusions for a signed-in viewer:
  1. the viewer's own profile
  2. anyone the viewer has acted on, or who has acted on the viewer
     (hello *or* ignore, either direction) — a profile is shown at most once
  3. incomplete profiles

Anonymous preview (``viewer_id=None``) skips the history check but also
requires a non-blank bio.

Pages are ordered by ``Profile.id`` and continued with a keyset cursor
(``after`` = last id seen), so a page never repeats a profile even while
other users keep acting.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, and_, exists, func, or_, select

from heelo.config import HeeloConfig
from heelo.database.engine import get_session
from heelo.database.models import InterestAction, Profile, Subclan
from heelo.engine.filters import DiscoveryFilters
from heelo.services.profile_service import require_profile

logger = logging.getLogger(__name__)


def _page_size(requested: int | None, cfg: HeeloConfig) -> int:
    size = requested if requested is not None else cfg.default_page_size
    return max(1, min(size, cfg.max_page_size))


def next_candidates(
    engine: Engine,
    viewer_id: str | None,
    filters: DiscoveryFilters | None = None,
    page_size: int | None = None,
    *,
    after: str | None = None,
    cfg: HeeloConfig | None = None,
) -> list[Profile]:
    """Return up to *page_size* eligible profiles, ordered by id.

    Raises
    ------
    InvalidFilterError
        If *filters* is an invalid combination.
    UnknownProfileError
        If *viewer_id* is given but doesn't exist.
    """
    cfg = cfg or HeeloConfig()
    if filters is None:
        filters = DiscoveryFilters(age_min=cfg.default_age_min, age_max=cfg.default_age_max)
    filters.validate()
    limit = _page_size(page_size, cfg)

    stmt = select(Profile).where(
        Profile.is_complete.is_(True),
        Profile.age.between(filters.age_min, filters.age_max),
    )

    with get_session(engine) as session:
        if viewer_id is None:
            stmt = stmt.where(
                Profile.bio.is_not(None),
                func.length(func.trim(Profile.bio)) > 0,
            )
        else:
            require_profile(session, viewer_id)
            acted = exists().where(
                or_(
                    and_(
                        InterestAction.sender_id == viewer_id,
                        InterestAction.receiver_id == Profile.id,
                    ),
                    and_(
                        InterestAction.receiver_id == viewer_id,
                        InterestAction.sender_id == Profile.id,
                    ),
                )
            )
            stmt = stmt.where(Profile.id != viewer_id, ~acted)

        if filters.clan_family_id is not None:
            stmt = stmt.where(Profile.clan_family_id == filters.clan_family_id)
            if filters.subclan_id is not None:
                subclan = session.get(Subclan, filters.subclan_id)
                if subclan is not None and subclan.clan_family_id == filters.clan_family_id:
                    stmt = stmt.where(Profile.subclan_id == filters.subclan_id)
                else:
                    logger.debug(
                        "Ignoring subclan %s: not in clan family %s",
                        filters.subclan_id, filters.clan_family_id,
                    )

        if filters.location_category is not None:
            stmt = stmt.where(Profile.location_category == filters.location_category)
        if filters.location_value:
            stmt = stmt.where(
                func.lower(Profile.location_value) == filters.location_value.strip().lower()
            )

        if after is not None:
            stmt = stmt.where(Profile.id > after)

        rows = session.scalars(stmt.order_by(Profile.id).limit(limit)).all()

    logger.debug(
        "Discovery for %s returned %d candidates", viewer_id or "<preview>", len(rows)
    )
    return list(rows)
