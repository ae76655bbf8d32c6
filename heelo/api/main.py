"""
heelo.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn heelo.api.main:app --reload --port 8000

or through the ``heelo-api`` console script.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from heelo import __version__  # noqa: E402
from heelo.api.deps import get_config, get_engine  # noqa: E402
from heelo.api.routes.chat import router as chat_router  # noqa: E402
from heelo.api.routes.discovery import router as discovery_router  # noqa: E402
from heelo.api.routes.interests import router as interests_router  # noqa: E402
from heelo.api.routes.notifications import router as notifications_router  # noqa: E402
from heelo.api.routes.profiles import router as profiles_router  # noqa: E402
from heelo.database.engine import init_db  # noqa: E402
from heelo.errors import (  # noqa: E402
    AuthorizationError,
    ConflictError,
    InvalidFilterError,
    NotFoundError,
    UnknownProfileError,
)

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — verify tables and seed clan data."""
    engine = get_engine()
    cfg = get_config()
    init_db(engine, cfg.clan_catalogue)
    logger.info("%s API started — engine ready (%s)", cfg.app_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.app_name)


app = FastAPI(
    title="Heelo API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(profiles_router, prefix="/api")
app.include_router(discovery_router, prefix="/api")
app.include_router(interests_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")


# ---------------------------------------------------------------------------
# Domain errors → HTTP status
# ---------------------------------------------------------------------------
def _error(code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.exception_handler(InvalidFilterError)
@app.exception_handler(ValueError)
async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(AuthorizationError)
async def _forbidden(request: Request, exc: AuthorizationError) -> JSONResponse:
    return _error(status.HTTP_403_FORBIDDEN, exc)


@app.exception_handler(UnknownProfileError)
@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(ConflictError)
async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    logger.warning("Insert conflict on %s: %s", request.url.path, exc)
    return _error(status.HTTP_409_CONFLICT, exc)


@app.get("/api/health")
def health():
    return {"status": "ok"}


def run() -> None:
    """Console-script entry point: configure logging and serve."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    uvicorn.run(
        "heelo.api.main:app",
        host=os.getenv("HEELO_HOST", "127.0.0.1"),
        port=int(os.getenv("HEELO_PORT", "8000")),
    )
