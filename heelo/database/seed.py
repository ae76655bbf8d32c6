"""
heelo.database.seed — Clan-Family Reference Data Seeder
========================================================

Profiles point at ``clan_families`` / ``subclans``; those rows must exist
before anyone can finish their profile.  The catalogue is a plain mapping
of clan family name → subclan names, normally read from ``config.yaml``.

Idempotent — only inserts names that don't already exist.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from heelo.database.models import ClanFamily, Subclan

logger = logging.getLogger(__name__)


def seed_reference_data(engine: Engine, catalogue: dict[str, list[str]]) -> int:
    """Insert missing clan families and subclans.  Returns rows inserted."""
    session = Session(engine)
    inserted = 0
    try:
        for family_name, subclan_names in catalogue.items():
            family = session.scalar(
                select(ClanFamily).where(ClanFamily.name == family_name)
            )
            if family is None:
                family = ClanFamily(name=family_name)
                session.add(family)
                session.flush()
                inserted += 1

            existing = set(session.scalars(
                select(Subclan.name).where(Subclan.clan_family_id == family.id)
            ).all())
            for name in subclan_names:
                if name not in existing:
                    session.add(Subclan(clan_family_id=family.id, name=name))
                    inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d clan reference rows.", inserted)
    return inserted
