"""
heelo.api.deps — FastAPI dependency injection
==============================================

The acting profile arrives in the ``X-Profile-Id`` header, set by the
upstream gateway after it has authenticated the caller.  This layer
trusts that header and never handles tokens itself.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import Engine

from heelo.config import HeeloConfig, load_config
from heelo.constants import PROFILE_ID_HEADER
from heelo.database.engine import create_db_engine
from heelo.services.notification_service import NotificationSink, PgNotifySink

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> HeeloConfig:
    try:
        return load_config()
    except FileNotFoundError:
        logger.warning("config.yaml not found; using built-in defaults")
        return HeeloConfig()


def get_sink(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[HeeloConfig, Depends(get_config)],
) -> NotificationSink:
    return PgNotifySink(engine, cfg.notify_channel)


def get_current_profile_id(
    profile_id: Annotated[str | None, Header(alias=PROFILE_ID_HEADER)] = None,
) -> str:
    """Return the acting profile id.  Raises 401 if the header is missing."""
    if not profile_id or not profile_id.strip():
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, f"Missing {PROFILE_ID_HEADER}")
    return profile_id.strip()


def get_optional_profile_id(
    profile_id: Annotated[str | None, Header(alias=PROFILE_ID_HEADER)] = None,
) -> str | None:
    """Like :func:`get_current_profile_id` but anonymous callers get ``None``."""
    if not profile_id or not profile_id.strip():
        return None
    return profile_id.strip()


EngineDep = Annotated[Engine, Depends(get_engine)]
ConfigDep = Annotated[HeeloConfig, Depends(get_config)]
SinkDep = Annotated[NotificationSink, Depends(get_sink)]
ProfileIdDep = Annotated[str, Depends(get_current_profile_id)]
