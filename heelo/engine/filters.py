"""
heelo.engine.filters — Discovery Filter Record
===============================================

The viewer's preference knobs for :func:`heelo.services.discovery_service.next_candidates`.
Validation is pure; whether a subclan belongs to the chosen clan family
needs the database and is resolved by the discovery service.
"""

from __future__ import annotations

from dataclasses import dataclass

from heelo.constants import MAXIMUM_AGE, MINIMUM_AGE
from heelo.database.models import LocationCategory
from heelo.errors import InvalidFilterError

__all__ = ["DiscoveryFilters"]


@dataclass(frozen=True, slots=True)
class DiscoveryFilters:
    """Recognised discovery options.  Unset options do not filter."""

    age_min: int = MINIMUM_AGE
    age_max: int = 60
    clan_family_id: int | None = None
    subclan_id: int | None = None
    location_category: str | None = None
    location_value: str | None = None

    def validate(self) -> DiscoveryFilters:
        """Return ``self`` if the combination is usable.

        Raises
        ------
        InvalidFilterError
            On an inverted or out-of-range age window, or an unknown
            location category.
        """
        if self.age_min < MINIMUM_AGE:
            raise InvalidFilterError(f"age_min must be at least {MINIMUM_AGE}")
        if self.age_max > MAXIMUM_AGE:
            raise InvalidFilterError(f"age_max must be at most {MAXIMUM_AGE}")
        if self.age_min > self.age_max:
            raise InvalidFilterError(
                f"age_min ({self.age_min}) is greater than age_max ({self.age_max})"
            )
        if self.location_category is not None:
            valid = {c.value for c in LocationCategory}
            if self.location_category not in valid:
                raise InvalidFilterError(
                    f"Unknown location_category {self.location_category!r}. "
                    f"Must be one of: {sorted(valid)}"
                )
        return self
