"""Tests for the Cover Art Archive client."""

from unittest.mock import MagicMock

import httpx
import pytest

from jukebox.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)


def _response(status_code: int, content: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=response
        )
    return response


@pytest.fixture
def cover_client() -> CoverArtArchiveClient:
    return CoverArtArchiveClient(user_agent="TestApp/1.0")


class TestCoverArtArchiveClient:
    async def test_download_front_cover(
        self, cover_client: CoverArtArchiveClient, mocker: MagicMock
    ) -> None:
        request = mocker.patch.object(
            cover_client, "_rate_limited_request", return_value=_response(200, b"jpeg")
        )

        assert await cover_client.download_front_cover("mbid-1") == b"jpeg"
        request.assert_awaited_once_with("GET", "/release/mbid-1/front-500")

    async def test_missing_cover_returns_none(
        self, cover_client: CoverArtArchiveClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            cover_client, "_rate_limited_request", return_value=_response(404)
        )

        assert await cover_client.download_front_cover("mbid-1") is None

    async def test_server_error_propagates(
        self, cover_client: CoverArtArchiveClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            cover_client, "_rate_limited_request", return_value=_response(502)
        )

        with pytest.raises(httpx.HTTPStatusError):
            await cover_client.download_front_cover("mbid-1")

    def test_thumbnail_url(self) -> None:
        assert (
            CoverArtArchiveClient.thumbnail_url("mbid-1")
            == "https://coverartarchive.org/release/mbid-1/front-250"
        )

    async def test_client_follows_redirects(
        self, cover_client: CoverArtArchiveClient
    ) -> None:
        client = await cover_client._get_client()
        try:
            assert client.follow_redirects is True
            assert client.headers["User-Agent"] == "TestApp/1.0"
        finally:
            await cover_client.close()
