"""Tests for the upstream result wrapper."""

import httpx
import pytest

from jukebox.domain.exceptions import ConfigurationError, ExternalServiceError
from jukebox.domain.ports import UpstreamResult, call_upstream


async def _ok() -> str:
    return "done"


async def _network_down() -> None:
    raise httpx.ConnectError("connection refused")


async def _api_error() -> None:
    raise ExternalServiceError("Last.fm error 9: Invalid session key", service="lastfm")


async def _not_linked() -> None:
    raise ConfigurationError("Not authenticated with Last.fm")


async def _bug() -> None:
    raise KeyError("boom")


class TestCallUpstream:
    async def test_success_wraps_value(self) -> None:
        result = await call_upstream("test.ok", _ok())
        assert result == UpstreamResult.ok("done")
        assert result.success
        assert result.error is None

    async def test_network_error_becomes_failed_result(self) -> None:
        result = await call_upstream("test.network", _network_down())
        assert not result.success
        assert "connection refused" in (result.error or "")

    async def test_api_error_becomes_failed_result(self) -> None:
        result = await call_upstream("test.api", _api_error())
        assert not result.success
        assert "Invalid session key" in (result.error or "")

    async def test_configuration_error_becomes_failed_result(self) -> None:
        result = await call_upstream("test.config", _not_linked())
        assert not result.success
        assert result.error == "Not authenticated with Last.fm"

    async def test_programming_errors_propagate(self) -> None:
        with pytest.raises(KeyError):
            await call_upstream("test.bug", _bug())
