"""API schemas for MusicBrainz enrichment and the match fixer."""

from pydantic import BaseModel, ConfigDict, Field


class EnrichRequest(BaseModel):
    """Optional release pick for an explicit enrichment."""

    model_config = ConfigDict(populate_by_name=True)

    musicbrainz_id: str | None = Field(
        default=None, alias="musicbrainzId", description="Release MBID to use"
    )
    medium_position: int = Field(
        default=1, ge=1, alias="mediumPosition", description="Disc of a multi-disc release"
    )


class ReleaseSuggestion(BaseModel):
    """One candidate release in the match fixer."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    artist: str
    date: str
    country: str
    label: str
    format: str
    media_count: int = Field(alias="mediaCount")
    cover_art_url: str = Field(alias="coverArtUrl")
