import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.dev_jobs import SweepScheduler
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLitePostRepo
from src.api.deps import get_clock, get_rules, get_settings
from src.api.errors import upstream_error_handler
from src.components.scheduler import SweepInput, SweepOutput, run_sweep
from src.domain.errors import UpstreamStoreError

logging.basicConfig(
    level=os.environ.get("BLOG_LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and migrate on startup (fail-fast)
    try:
        rules = get_rules()
        logger.info("Rules loaded from %s", settings.rules_path)
    except (FileNotFoundError, ValueError):
        logger.critical("Rules load failed", exc_info=True)
        raise

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))

    scheduler: SweepScheduler | None = None
    if settings.sweep_enabled:
        posts = SQLitePostRepo(settings.db_path)
        clock = get_clock()
        batch = SweepInput(batch_size=rules.scheduling.sweep_batch_size)

        async def sweep() -> SweepOutput:
            return await run_sweep(batch, posts=posts, clock=clock)

        scheduler = SweepScheduler(sweep, rules.scheduling.sweep_interval_seconds)
        scheduler.start()
    app.state.sweep_scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(
    title="Blog Engine API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_exception_handler(UpstreamStoreError, upstream_error_handler)  # type: ignore[arg-type]

# --- Routers ---
from src.api.routes import admin, comments, images, posts, storage, tags  # noqa: E402

app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
app.include_router(images.router, prefix="/api", tags=["Images"])
app.include_router(tags.router, prefix="/api", tags=["Tags"])
app.include_router(comments.router, prefix="/api", tags=["Comments"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(storage.router, prefix="/storage/v1/object/public", tags=["Storage Public"])


# CORS (Allow Frontend)
origins = [
    origin.strip()
    for origin in os.environ.get(
        "BLOG_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
