"""HTTP clients for MusicBrainz, Cover Art Archive and Last.fm."""

from .coverartarchive_client import CoverArtArchiveClient
from .lastfm_client import LastfmClient
from .musicbrainz_client import MusicBrainzClient

__all__ = ["CoverArtArchiveClient", "LastfmClient", "MusicBrainzClient"]
