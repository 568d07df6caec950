"""API router initialization."""

# Hey future me, this is the API router aggregator. main.py mounts it under /api, so the
# device endpoints end up at /api/esp32/poll, /api/esp32/ack and /api/state - those paths
# are burned into the firmware, don't move them. The WebSocket lives in realtime.py and is
# mounted at the root (/ws), not here.

from fastapi import APIRouter

from jukebox.api.routers import control, device, discs, enrichment, lastfm, stats

api_router = APIRouter()

api_router.include_router(device.router, tags=["Device"])
api_router.include_router(control.router, prefix="/control", tags=["Control"])
api_router.include_router(discs.router, tags=["Discs"])
api_router.include_router(enrichment.router, tags=["Enrichment"])
api_router.include_router(stats.router, tags=["Stats"])
api_router.include_router(lastfm.router, prefix="/lastfm", tags=["Last.fm"])

__all__ = ["api_router"]
