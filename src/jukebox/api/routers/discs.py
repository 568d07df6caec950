"""Disc catalog endpoints and the current playback projection."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from jukebox.api.dependencies import get_catalog, get_playback
from jukebox.api.schemas import (
    DiscListResponse,
    DiscResponse,
    DiscUpsertRequest,
    DiscWithTracksResponse,
)
from jukebox.application.services import CatalogService, PlaybackStateMachine
from jukebox.application.services.catalog import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/discs")
async def list_discs(
    player: int | None = Query(default=None, ge=1, le=2, description="Player unit"),
    search: str | None = Query(default=None, description="Artist/album substring"),
    sort: str = Query(
        default="position",
        description="position, artist, album, lastPlayed or playCount",
    ),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    catalog: CatalogService = Depends(get_catalog),
) -> DiscListResponse:
    """List discs with album play counts."""
    discs, total = await catalog.list_discs(
        player=player, search=search, sort=sort, limit=limit, offset=offset
    )
    return DiscListResponse(
        discs=[DiscResponse.from_entity(d) for d in discs], total=total
    )


# Hey future me - this GET may call MusicBrainz (auto-enrich) and take a few seconds the
# first time a hand-entered disc is opened. Failures there never fail this request.
@router.get("/discs/{player}/{position}")
async def get_disc(
    player: int,
    position: int,
    catalog: CatalogService = Depends(get_catalog),
) -> DiscWithTracksResponse:
    """One disc with its tracks and per-track play counts."""
    disc = await catalog.get_disc(player, position)
    return DiscWithTracksResponse.from_entity(disc)


@router.post("/discs/{player}/{position}")
async def upsert_disc(
    player: int,
    position: int,
    body: DiscUpsertRequest,
    catalog: CatalogService = Depends(get_catalog),
) -> DiscWithTracksResponse:
    """Create or edit a disc; a supplied track list replaces the stored one."""
    disc = await catalog.upsert_disc(
        player, position, body.disc_fields(), body.track_entities()
    )
    return DiscWithTracksResponse.from_entity(disc)


@router.get("/current")
async def get_current(
    playback: PlaybackStateMachine = Depends(get_playback),
) -> dict[str, Any]:
    """Current playback state joined with disc and track metadata."""
    snapshot = await playback.get_state()
    return snapshot.to_dict()
