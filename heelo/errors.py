"""
heelo.errors — Domain Error Taxonomy
=====================================

Every error the services raise derives from :class:`HeeloError`.
Duplicate hellos, double accepts, re-ensured threads and re-seeded
greetings are *not* errors: they return the existing row.
"""

from __future__ import annotations


class HeeloError(Exception):
    """Base class for all domain errors."""


class InvalidFilterError(HeeloError):
    """A discovery filter combination is invalid (e.g. age_min > age_max)."""


class UnknownProfileError(HeeloError):
    """A referenced profile id does not exist."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Unknown profile: {profile_id}")
        self.profile_id = profile_id


class NotFoundError(HeeloError):
    """A referenced match, thread or interest action does not exist."""


class AuthorizationError(HeeloError):
    """The actor is acting on a record it does not own or is not targeted by."""


class ConflictError(HeeloError):
    """An atomic insert-if-absent exhausted its retry budget.

    Raised when the insert collided with a unique constraint but the
    winning row could not be re-read.  Callers may retry the whole call.
    """
