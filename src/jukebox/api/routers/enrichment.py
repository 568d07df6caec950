"""MusicBrainz enrichment and match-fixer endpoints."""

from fastapi import APIRouter, Body, Depends, Query

from jukebox.api.dependencies import get_catalog, get_enrichment
from jukebox.api.schemas import DiscWithTracksResponse, EnrichRequest, ReleaseSuggestion
from jukebox.application.services import CatalogService, EnrichmentService

router = APIRouter()


@router.post("/enrich/{player}/{position}")
async def enrich_disc(
    player: int,
    position: int,
    body: EnrichRequest | None = Body(default=None),
    catalog: CatalogService = Depends(get_catalog),
) -> DiscWithTracksResponse:
    """(Re-)enrich a disc, optionally from an explicitly chosen release.

    Unlike auto-enrichment, failures are reported (404 no match, 502 upstream).
    """
    request = body or EnrichRequest()
    disc = await catalog.enrich_disc(
        player,
        position,
        release_id=request.musicbrainz_id,
        medium_position=request.medium_position,
    )
    return DiscWithTracksResponse.from_entity(disc)


@router.get("/search/musicbrainz")
async def search_musicbrainz(
    artist: str = Query(..., min_length=1),
    album: str = Query(..., min_length=1),
    enrichment: EnrichmentService = Depends(get_enrichment),
) -> list[ReleaseSuggestion]:
    """Candidate releases for the match fixer."""
    suggestions = await enrichment.search_suggestions(artist, album)
    return [ReleaseSuggestion.model_validate(s) for s in suggestions]


@router.get("/musicbrainz/release/{mbid}")
async def lookup_release(
    mbid: str,
    enrichment: EnrichmentService = Depends(get_enrichment),
) -> ReleaseSuggestion:
    """A single release by MBID, in suggestion shape."""
    suggestion = await enrichment.lookup_release(mbid)
    return ReleaseSuggestion.model_validate(suggestion)
