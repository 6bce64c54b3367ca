"""
HOPPER Backend - FastAPI Application

Main application entry point with middleware, routers, and exception
handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hopper.config import settings
from hopper.database import init_db, close_db
from hopper.exceptions import HopperError
from hopper.routers import (
    rides,
    memberships,
    profiles,
    referrals,
    leaderboards,
)

logger = logging.getLogger("hopper")


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Configure logging, open connections for the configured backend, close them on exit."""
    setup_logging()
    await init_db()
    logger.info(
        f"HOPPER backend started (storage={settings.storage_backend}, "
        f"realtime={'on' if settings.realtime_enabled else 'off'})"
    )

    yield

    await close_db()
    logger.info("HOPPER backend stopped")


app = FastAPI(
    title="HOPPER API",
    description="""
    Campus ride-sharing backend.

    ## Features
    - Hopper creation with match checks against existing rides
    - Join requests with host approval and atomic seat reservation
    - Trust score, referrals, badges and leaderboards

    ## Identity
    Requests carry the caller's verified user id in the `X-User-Id` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(HopperError)
async def hopper_exception_handler(request: Request, exc: HopperError):
    """Domain errors are scoped to one user action and shown to the user as-is."""
    logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything that is not a HopperError is a bug; log it and hide the details."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong. Please try again."},
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(rides.router, prefix=f"{settings.api_v1_str}/rides", tags=["Rides"])
app.include_router(memberships.router, prefix=settings.api_v1_str, tags=["Memberships"])
app.include_router(profiles.router, prefix=f"{settings.api_v1_str}/profiles", tags=["Profiles"])
app.include_router(referrals.router, prefix=f"{settings.api_v1_str}/referrals", tags=["Referrals"])
app.include_router(
    leaderboards.router, prefix=f"{settings.api_v1_str}/leaderboards", tags=["Leaderboards"]
)


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check."""
    return {"status": "healthy", "version": "1.0.0"}
