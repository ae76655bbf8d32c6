"""
heelo.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for tuning values that are not secrets (discovery
page sizes, age defaults, greeting text, insert retry budget).  Secrets
and connection strings come from the environment (``.env``).

Usage::

    from heelo.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.default_page_size)     # 10
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_GREETING = "You matched! {accepter} accepted your hello. Say hi 👋"

# location_category → the values a profile may pick under it
DEFAULT_LOCATION_CATALOGUE: dict[str, list[str]] = {
    "home_region": [
        "Mogadishu", "Hargeisa", "Kismayo", "Berbera", "Marka", "Baidoa",
        "Galkayo", "Bosaso", "Garowe", "Burao", "Erigavo", "Las Anod",
        "Beledweyne", "Jowhar", "Afgoye", "Wajid", "Luuq", "Bardera",
        "Dhusamareb", "Garbahaarrey",
    ],
    "diaspora": [
        "United States", "United Kingdom", "Canada", "Australia", "Sweden",
        "Norway", "Denmark", "Finland", "Netherlands", "Germany", "Italy",
        "France", "Switzerland", "Belgium", "Austria", "United Arab Emirates",
        "Saudi Arabia", "Qatar", "Kuwait", "Turkey", "Egypt", "Kenya",
        "Ethiopia", "Uganda", "Tanzania", "South Africa", "Malaysia", "Other",
    ],
}


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HeeloConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    app_name: str = "Heelo"

    # Discovery
    default_page_size: int = 10
    max_page_size: int = 50
    default_age_min: int = 18
    default_age_max: int = 60

    # Conversation bootstrap
    greeting_template: str = DEFAULT_GREETING

    # Atomic insert-if-absent attempts before ConflictError
    insert_retry_limit: int = 3

    # PG channel used by PgNotifySink
    notify_channel: str = "heelo_events"

    # Clan family name → subclan names, seeded by init_db
    clan_catalogue: dict[str, list[str]] = field(default_factory=dict)

    # Location category → allowed location values
    location_catalogue: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_LOCATION_CATALOGUE.items()}
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> HeeloConfig:
    """Read *path* and return a :class:`HeeloConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to the
        ``HEELO_CONFIG`` environment variable, then ``config.yaml`` in the
        current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    """
    config_path = Path(path or os.getenv("HEELO_CONFIG", "config.yaml"))
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = HeeloConfig()
    return HeeloConfig(
        app_name=raw.get("app_name", defaults.app_name),
        default_page_size=int(raw.get("default_page_size", defaults.default_page_size)),
        max_page_size=int(raw.get("max_page_size", defaults.max_page_size)),
        default_age_min=int(raw.get("default_age_min", defaults.default_age_min)),
        default_age_max=int(raw.get("default_age_max", defaults.default_age_max)),
        greeting_template=raw.get("greeting_template", defaults.greeting_template),
        insert_retry_limit=int(raw.get("insert_retry_limit", defaults.insert_retry_limit)),
        notify_channel=raw.get("notify_channel", defaults.notify_channel),
        clan_catalogue={
            str(family): [str(name) for name in (subclans or [])]
            for family, subclans in (raw.get("clan_catalogue") or {}).items()
        },
        location_catalogue={
            str(category): [str(value) for value in (values or [])]
            for category, values in raw["location_catalogue"].items()
        } if raw.get("location_catalogue") else defaults.location_catalogue,
    )
