"""API schemas for the Last.fm account link."""

from pydantic import BaseModel, ConfigDict, Field


class LastfmStatusResponse(BaseModel):
    configured: bool = Field(description="API key and secret are set")
    authenticated: bool = Field(description="A session key is active")
    username: str | None = None


class LastfmAuthUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(
        alias="authUrl", description="Last.fm page where the user grants access"
    )
