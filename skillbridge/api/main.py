"""
skillbridge.api.main — FastAPI application entry point
========================================================

Run with::

    uvicorn skillbridge.api.main:app --reload --port 8000
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

from skillbridge import __version__  # noqa: E402
from skillbridge.api.deps import get_cache, get_engine  # noqa: E402
from skillbridge.api.routes.activities import router as activities_router  # noqa: E402
from skillbridge.api.routes.admin import router as admin_router  # noqa: E402
from skillbridge.api.routes.connections import router as connections_router  # noqa: E402
from skillbridge.api.routes.engagement import router as engagement_router  # noqa: E402
from skillbridge.api.routes.groups import router as groups_router  # noqa: E402
from skillbridge.api.routes.matches import router as matches_router  # noqa: E402
from skillbridge.api.routes.profiles import router as profiles_router  # noqa: E402
from skillbridge.database.engine import init_db, run_db  # noqa: E402
from skillbridge.errors import (  # noqa: E402
    DuplicateRequest,
    EngagementError,
    NotAuthorized,
    NotFound,
    StaleState,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[EngagementError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DuplicateRequest: status.HTTP_409_CONFLICT,
    NotAuthorized: status.HTTP_403_FORBIDDEN,
    StaleState: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
}


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
    """Startup/shutdown lifecycle — create tables, seed, warm the cache."""
    engine = get_engine()
    await run_db(init_db, engine)
    await run_db(get_cache)
    logger.info("SkillBridge API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("SkillBridge API shutting down")


app = FastAPI(
    title="SkillBridge Engagement API",
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


@app.exception_handler(EngagementError)
async def engagement_error_handler(request: Request, exc: EngagementError) -> JSONResponse:
    code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


# Mount routers
app.include_router(profiles_router, prefix="/api")
app.include_router(matches_router, prefix="/api")
app.include_router(connections_router, prefix="/api")
app.include_router(engagement_router, prefix="/api")
app.include_router(activities_router, prefix="/api")
app.include_router(groups_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
