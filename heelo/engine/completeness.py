"""
heelo.engine.completeness — Profile Completeness Predicates
============================================================

A profile is shown in discovery only once it is complete.  Anonymous
preview visitors get a stricter bar: the bio must be filled in too.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from heelo.config import DEFAULT_LOCATION_CATALOGUE
from heelo.constants import MAXIMUM_AGE, MINIMUM_AGE, PROFILE_PHOTO_COUNT
from heelo.database.models import Gender

if TYPE_CHECKING:
    from heelo.database.models import Profile


def _filled(value: str | None) -> bool:
    return bool(value and value.strip())


def has_valid_photos(photo_refs: list | None) -> bool:
    """Exactly :data:`PROFILE_PHOTO_COUNT` non-blank references."""
    if not photo_refs or len(photo_refs) != PROFILE_PHOTO_COUNT:
        return False
    return all(isinstance(ref, str) and _filled(ref) for ref in photo_refs)


def is_known_location(
    category: str | None,
    value: str | None,
    catalogue: dict[str, list[str]] | None = None,
) -> bool:
    """True when *value* is one of the choices listed under *category*."""
    catalogue = DEFAULT_LOCATION_CATALOGUE if catalogue is None else catalogue
    return value in catalogue.get(category or "", ())


def is_profile_complete(
    profile: Profile,
    location_catalogue: dict[str, list[str]] | None = None,
) -> bool:
    """Everything the profile wizard requires; the bio is optional."""
    return (
        _filled(profile.display_name)
        and profile.age is not None
        and MINIMUM_AGE <= profile.age <= MAXIMUM_AGE
        and profile.gender in {g.value for g in Gender}
        and profile.clan_family_id is not None
        and profile.subclan_id is not None
        and is_known_location(
            profile.location_category, profile.location_value, location_catalogue
        )
        and has_valid_photos(profile.photo_refs)
    )


def is_preview_ready(
    profile: Profile,
    location_catalogue: dict[str, list[str]] | None = None,
) -> bool:
    """Complete *and* carries a bio — the bar for anonymous preview."""
    return is_profile_complete(profile, location_catalogue) and _filled(profile.bio)
