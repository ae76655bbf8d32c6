"""
Heelo — Mutual-Interest Matching & Conversation Core
=====================================================
Profile discovery, one-directional "hello"/"ignore" actions, race-safe
match formation, and conversation bootstrap for a dating application.
Every "exactly one row" rule is enforced by the database, so any number
of independent processes can share one store.

Package layout::

    heelo/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared sentinels and limits
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, sessions, insert-or-get
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Clan-family reference data seeder
    ├── engine/
    │   ├── pairs.py       # Canonical pair ordering
    │   ├── filters.py     # DiscoveryFilters + validation
    │   └── completeness.py # Profile completeness predicates
    ├── services/
    │   ├── profile_service.py       # Profile create/update
    │   ├── discovery_service.py     # Candidate selection
    │   ├── interest_service.py      # Hello / ignore ledger
    │   ├── match_service.py         # Mutual + direct-accept matching
    │   ├── conversation_service.py  # Threads, messages, greetings
    │   └── notification_service.py  # Notification rows + sinks
    └── api/
        ├── main.py        # FastAPI app + error → status mapping
        ├── deps.py        # Engine / config / acting-profile dependencies
        ├── serializers.py # ORM row → JSON dicts
        └── routes/        # Thin HTTP bindings over the services
"""

__version__ = "0.1.0"
