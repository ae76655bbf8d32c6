"""
heelo.constants — Shared Constants
===================================

Single source of truth for sentinels and limits used across services
and the API layer.
"""

from __future__ import annotations

# Sender id stamped on bootstrap messages written by the core itself
SYSTEM_SENDER_ID = "system"

# A complete profile carries exactly this many photos
PROFILE_PHOTO_COUNT = 4

MINIMUM_AGE = 18
MAXIMUM_AGE = 100

# Profile columns the owner may change through update_profile
EDITABLE_PROFILE_FIELDS: frozenset[str] = frozenset({
    "display_name", "age", "gender", "bio", "photo_refs",
    "location_category", "location_value",
    "clan_family_id", "subclan_id",
})

# Header set by the upstream gateway with the acting profile id
PROFILE_ID_HEADER = "X-Profile-Id"
