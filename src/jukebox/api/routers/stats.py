"""Listening statistics endpoint for the stats page."""

from typing import Any

from fastapi import APIRouter, Depends

from jukebox.api.dependencies import get_catalog
from jukebox.application.services import CatalogService

router = APIRouter()


@router.get("/stats")
async def get_stats(
    catalog: CatalogService = Depends(get_catalog),
) -> dict[str, Any]:
    """Disc counts, total plays, top albums/tracks and recently played discs."""
    return await catalog.get_stats()
