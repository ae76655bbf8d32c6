"""
heelo.engine.pairs — Canonical Pair Ordering
=============================================

An undirected relationship between two profiles is stored once, keyed on
``(low, high)``.  Every caller must derive that key the same way, so this
is the only place it is computed.  Ids are lower-case UUID strings, so
plain ``str`` comparison is a total order that agrees with the database's
``user_low_id < user_high_id`` check.
"""

from __future__ import annotations

__all__ = ["canonical_pair"]


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    """Return ``(low, high)`` for two distinct profile ids.

    >>> canonical_pair("b", "a")
    ('a', 'b')

    Raises
    ------
    ValueError
        If *a* and *b* are the same id — a profile cannot pair with itself.
    """
    if a == b:
        raise ValueError(f"A pair needs two distinct profiles, got {a!r} twice")
    return (a, b) if a < b else (b, a)
