"""FastAPI application factory and entry point.

Run with:
    uvicorn jukebox.main:app --host 0.0.0.0 --port 3000
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from jukebox import __version__
from jukebox.api.exception_handlers import register_exception_handlers
from jukebox.api.routers import api_router, realtime
from jukebox.config import Settings, get_settings
from jukebox.infrastructure.lifecycle import lifespan
from jukebox.infrastructure.observability import RequestLoggingMiddleware


# Hey future me, the settings go onto app.state BEFORE lifespan runs so lifespan and the
# Last.fm routes see the same object. Tests pass their own Settings (in-memory DB, tmp
# covers dir) and never touch the environment.
def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Backend for a dual CD changer jukebox",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    app.include_router(api_router, prefix="/api")
    app.include_router(realtime.router)

    # check_dir=False: the covers directory is created at startup (ensure_directories)
    app.mount(
        "/covers",
        StaticFiles(directory=settings.storage.covers_path, check_dir=False),
        name="covers",
    )

    return app


app = create_app()
