"""Site Jobcards FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobcards.config import settings

# ── Logging ───────────────────────────────────────────────────────────────────
# Ensure jobcards.* loggers are visible in container output.
logging.basicConfig(
    level=logging.DEBUG if settings.jobcards_debug else logging.INFO,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
)
# Quiet down noisy third-party loggers
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    from jobcards.db.session import init_db
    from jobcards.tasks.workers import start_scheduler

    await init_db()
    start_scheduler()

    yield

    from jobcards.db.session import close_db
    from jobcards.tasks.workers import stop_scheduler

    stop_scheduler()
    await close_db()


app = FastAPI(
    title="Site Jobcards",
    description="Jobcard portal: projects, WBS, jobcards and HSE checklists",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ui_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routes
from jobcards.api.routes import admin, auth, hse, jobcards, projects, wbs  # noqa: E402

app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(wbs.router, prefix="/api", tags=["WBS"])
app.include_router(jobcards.router, prefix="/api", tags=["Jobcards"])
app.include_router(hse.router, prefix="/api", tags=["HSE"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": "0.1.0", "env": settings.jobcards_env}
