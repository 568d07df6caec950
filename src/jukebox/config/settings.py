"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./data/jukebox.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_pre_ping: bool = Field(default=True, description="Test connections")


class MusicBrainzSettings(BaseSettings):
    """MusicBrainz client settings.

    Hey future me - MusicBrainz rejects requests without a proper User-Agent,
    so app_name/app_version/contact all end up in the header.
    """

    model_config = SettingsConfigDict(
        env_prefix="MUSICBRAINZ_", env_file=".env", extra="ignore"
    )

    app_name: str = Field(default="CDJukebox")
    app_version: str = Field(default="1.0.0")
    contact: str = Field(default="https://github.com/dsamojlenko/sony-cx355-display")


class LastfmSettings(BaseSettings):
    """Last.fm scrobbling settings."""

    model_config = SettingsConfigDict(
        env_prefix="LASTFM_", env_file=".env", extra="ignore"
    )

    api_key: str = Field(default="", description="Last.fm API key")
    api_secret: str = Field(default="", description="Last.fm shared secret")
    session_key: str = Field(
        default="", description="Pre-authorized session key (skips web auth)"
    )
    callback_url: str = Field(
        default="http://localhost:3000/api/lastfm/callback",
        description="Where Last.fm redirects after the user grants access",
    )
    post_auth_redirect: str = Field(
        default="/settings", description="UI page to land on after auth"
    )

    @property
    def is_configured(self) -> bool:
        """Check whether API credentials are present."""
        return bool(self.api_key and self.api_secret)


class PlaybackSettings(BaseSettings):
    """Command queue and scrobble timing settings."""

    model_config = SettingsConfigDict(
        env_prefix="PLAYBACK_", env_file=".env", extra="ignore"
    )

    command_retention_seconds: int = Field(
        default=3600, ge=1, description="Keep acknowledged commands this long"
    )
    command_cleanup_interval: int = Field(
        default=60, ge=1, description="Seconds between command queue cleanups"
    )
    scrobble_max_delay: float = Field(
        default=240.0, gt=0, description="Upper bound for the scrobble delay"
    )
    default_track_duration: float = Field(
        default=180.0, gt=0, description="Assumed duration for unknown tracks"
    )
    auto_enrich_on_fetch: bool = Field(
        default=True,
        description="Enrich a disc from MusicBrainz the first time it is opened",
    )


class StorageSettings(BaseSettings):
    """Filesystem locations."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_", env_file=".env", extra="ignore"
    )

    covers_path: Path = Field(
        default=Path("./public/covers"), description="Downloaded cover art"
    )


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore"
    )

    log_json_format: bool = Field(default=False)


class Settings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = Field(default="CD Jukebox")
    log_level: str = Field(default="INFO")
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    lastfm: LastfmSettings = Field(default_factory=LastfmSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the log level name."""
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for other/in-memory databases."""
        url = self.database.url
        if "sqlite" not in url:
            return None
        _, _, path = url.partition(":///")
        if not path or path.startswith(":memory:"):
            return None
        return Path(path)

    def ensure_directories(self) -> None:
        """Create storage directories that must exist at startup."""
        self.storage.covers_path.mkdir(parents=True, exist_ok=True)
        db_path = self._get_sqlite_db_path()
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)


# Hey future me - cached so every Depends(get_settings) sees the same object.
# Tests that need different values call get_settings.cache_clear().
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
