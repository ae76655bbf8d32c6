"""
heelo.services.profile_service — Profile Lifecycle
===================================================

A profile is created once per identity on first login and then edited
only by its owner.  ``is_complete`` is recomputed on every write so
discovery can filter on a stored column.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.constants import (
    EDITABLE_PROFILE_FIELDS,
    MAXIMUM_AGE,
    MINIMUM_AGE,
    PROFILE_PHOTO_COUNT,
)
from heelo.database.engine import get_session, insert_or_get, utcnow
from heelo.database.models import ClanFamily, Gender, LocationCategory, Profile, Subclan
from heelo.engine.completeness import is_known_location, is_profile_complete
from heelo.errors import AuthorizationError, UnknownProfileError

logger = logging.getLogger(__name__)


def require_profile(session: Session, profile_id: str) -> Profile:
    """Load a profile or raise :class:`UnknownProfileError`."""
    profile = session.get(Profile, profile_id)
    if profile is None:
        raise UnknownProfileError(profile_id)
    return profile


def get_profile(engine: Engine, profile_id: str) -> Profile:
    with get_session(engine) as session:
        return require_profile(session, profile_id)


def _validate_fields(
    session: Session,
    profile: Profile,
    fields: dict[str, Any],
    location_catalogue: dict[str, list[str]],
) -> None:
    """Check an update against the profile it will produce.

    Raises ``ValueError`` on the first problem found.
    """
    unknown = set(fields) - EDITABLE_PROFILE_FIELDS
    if unknown:
        raise ValueError(f"Fields not editable: {sorted(unknown)}")

    if "display_name" in fields and not fields["display_name"]:
        raise ValueError("display_name must not be empty")

    age = fields.get("age", profile.age)
    if age is None or not MINIMUM_AGE <= int(age) <= MAXIMUM_AGE:
        raise ValueError(f"age must be between {MINIMUM_AGE} and {MAXIMUM_AGE}")

    gender = fields.get("gender", profile.gender)
    if gender is not None and gender not in {g.value for g in Gender}:
        raise ValueError(f"Unknown gender {gender!r}")

    category = fields.get("location_category", profile.location_category)
    if category is not None and category not in {c.value for c in LocationCategory}:
        raise ValueError(f"Unknown location_category {category!r}")
    value = fields.get("location_value", profile.location_value)
    if value is not None and category is None:
        raise ValueError("location_value needs a location_category")
    if category is not None and value is not None and not is_known_location(
        category, value, location_catalogue
    ):
        raise ValueError(f"{value!r} is not a valid {category} location")

    photos = fields.get("photo_refs", profile.photo_refs) or []
    if not isinstance(photos, list) or len(photos) > PROFILE_PHOTO_COUNT:
        raise ValueError(f"photo_refs must be a list of at most {PROFILE_PHOTO_COUNT} refs")

    family_id = fields.get("clan_family_id", profile.clan_family_id)
    subclan_id = fields.get("subclan_id", profile.subclan_id)
    if family_id is not None and session.get(ClanFamily, family_id) is None:
        raise ValueError(f"Unknown clan family {family_id}")
    if subclan_id is not None:
        subclan = session.get(Subclan, subclan_id)
        if subclan is None:
            raise ValueError(f"Unknown subclan {subclan_id}")
        if subclan.clan_family_id != family_id:
            raise ValueError(
                f"Subclan {subclan_id} does not belong to clan family {family_id}"
            )


def get_or_create_profile(
    engine: Engine,
    *,
    identity_id: str,
    display_name: str,
    age: int,
    cfg: HeeloConfig | None = None,
) -> tuple[Profile, bool]:
    """Fetch or insert the profile for *identity_id*.

    Returns ``(profile, created)``.  Concurrent first logins for the same
    identity converge on one row via the ``identity_id`` unique constraint.
    """
    cfg = cfg or HeeloConfig()
    if not display_name or not display_name.strip():
        raise ValueError("display_name must not be empty")
    if not MINIMUM_AGE <= age <= MAXIMUM_AGE:
        raise ValueError(f"age must be between {MINIMUM_AGE} and {MAXIMUM_AGE}")

    now = utcnow()
    with get_session(engine) as session:
        row = Profile(
            identity_id=identity_id,
            display_name=display_name.strip(),
            age=age,
            photo_refs=[],
            is_complete=False,
            created_at=now,
            updated_at=now,
        )
        profile, created = insert_or_get(
            session,
            row,
            lambda s: s.scalar(select(Profile).where(Profile.identity_id == identity_id)),
            attempts=cfg.insert_retry_limit,
        )
    if created:
        logger.info("Profile %s created for identity %s", profile.id, identity_id)
    return profile, created


def update_profile(
    engine: Engine,
    profile_id: str,
    *,
    actor_id: str,
    cfg: HeeloConfig | None = None,
    **fields: Any,
) -> Profile:
    """Apply owner edits and recompute ``is_complete``.

    Raises
    ------
    UnknownProfileError
        If *profile_id* doesn't exist.
    AuthorizationError
        If *actor_id* is not the owner.
    ValueError
        If the edit would leave the profile invalid.
    """
    cfg = cfg or HeeloConfig()
    if actor_id != profile_id:
        raise AuthorizationError("Profiles can only be edited by their owner")

    with get_session(engine) as session:
        profile = require_profile(session, profile_id)
        if "display_name" in fields and fields["display_name"] is not None:
            fields["display_name"] = fields["display_name"].strip()
        _validate_fields(session, profile, fields, cfg.location_catalogue)

        for key, value in fields.items():
            setattr(profile, key, value)
        was_complete = profile.is_complete
        profile.is_complete = is_profile_complete(profile, cfg.location_catalogue)
        profile.updated_at = utcnow()
        session.flush()

        if profile.is_complete and not was_complete:
            logger.info("Profile %s is now complete", profile_id)
        return profile
