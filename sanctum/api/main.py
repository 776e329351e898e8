"""
sanctum.api.main — FastAPI application entry point
===================================================

Run with::

    uvicorn sanctum.api.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from sanctum.api.deps import get_config  # noqa: E402
from sanctum.api.routes.admin import router as admin_router  # noqa: E402
from sanctum.api.routes.anointing import router as anointing_router  # noqa: E402
from sanctum.api.routes.governance import router as governance_router  # noqa: E402
from sanctum.api.routes.leaderboards import router as leaderboards_router  # noqa: E402
from sanctum.api.routes.members import router as members_router  # noqa: E402
from sanctum.api.routes.prophecies import router as prophecies_router  # noqa: E402
from sanctum.api.routes.rituals import router as rituals_router  # noqa: E402
from sanctum.api.routes.tokens import router as tokens_router  # noqa: E402
from sanctum.database.engine import create_db_engine  # noqa: E402
from sanctum.database.seed import seed_demo_data  # noqa: E402
from sanctum.services.registry import build_services  # noqa: E402
from sanctum.services.scheduler import PeriodicJobs  # noqa: E402
from sanctum.services.store import SanctumStore  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]
    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — build the store, seed, start background jobs."""
    cfg = get_config()
    store = SanctumStore(create_db_engine())
    services = build_services(store)
    app.state.services = services

    if cfg.seed_demo_data:
        seed_demo_data(services)

    jobs = PeriodicJobs(services, cfg)
    if cfg.scheduler_enabled:
        jobs.start(asyncio.get_running_loop())

    logger.info("%s API started — store ready (%s)", cfg.community_name, store.engine.url)
    yield
    jobs.stop()
    logger.info("%s API shutting down", cfg.community_name)


app = FastAPI(
    title="Sanctum API",
    version="0.1.0",
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
app.include_router(members_router, prefix="/api")
app.include_router(anointing_router, prefix="/api")
app.include_router(governance_router, prefix="/api")
app.include_router(rituals_router, prefix="/api")
app.include_router(tokens_router, prefix="/api")
app.include_router(prophecies_router, prefix="/api")
app.include_router(leaderboards_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
