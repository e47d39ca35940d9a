"""Unit tests for the tool freshness check (create_react_app.version_check)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from create_react_app.config import Config
from create_react_app.version_check import (
    OutdatedToolError,
    check_for_latest_version,
    ensure_latest,
    fetch_latest_from_registry,
)


def _mock_client(status: int = 200, payload=None, error: Exception | None = None) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.status_code = status
    mock_response.json.return_value = payload if payload is not None else {}

    mock_client = AsyncMock()
    if error is not None:
        mock_client.get = AsyncMock(side_effect=error)
    else:
        mock_client.get = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestFetchLatestFromRegistry:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_latest_tag(self):
        mock_client = _mock_client(payload={"latest": "5.0.1", "next": "5.1.0-next.1"})
        with patch("httpx.AsyncClient", return_value=mock_client):
            assert await fetch_latest_from_registry(Config()) == "5.0.1"
        mock_client.get.assert_awaited_once_with(Config().registry.dist_tags_url)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_200(self):
        with patch("httpx.AsyncClient", return_value=_mock_client(status=503)):
            assert await fetch_latest_from_registry(Config()) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [["5.0.1"], "captive portal"])
    async def test_non_object_payload(self, payload):
        mock_client = _mock_client(payload=payload)
        with patch("httpx.AsyncClient", return_value=mock_client):
            assert await fetch_latest_from_registry(Config()) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error(self):
        mock_client = _mock_client(error=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient", return_value=mock_client):
            assert await fetch_latest_from_registry(Config()) is None


class TestCheckForLatestVersion:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falls_back_to_npm_view(self):
        query = AsyncMock(return_value="5.0.1")
        with patch("create_react_app.version_check.fetch_latest_from_registry", AsyncMock(return_value=None)), \
                patch("create_react_app.version_check.query_command", query):
            assert await check_for_latest_version(Config()) == "5.0.1"
        assert query.call_args.args[0] == ["npm", "view", "create-react-app", "version"]


class TestEnsureLatest:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_current(self):
        with patch("create_react_app.version_check.check_for_latest_version", AsyncMock(return_value="5.0.1")):
            assert await ensure_latest(Config(tool_version="5.0.1")) == "5.0.1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_outdated(self):
        with patch("create_react_app.version_check.check_for_latest_version", AsyncMock(return_value="5.0.1")):
            with pytest.raises(OutdatedToolError) as exc_info:
                await ensure_latest(Config(tool_version="4.0.3"))
        assert exc_info.value.latest == "5.0.1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_latest_continues(self):
        with patch("create_react_app.version_check.check_for_latest_version", AsyncMock(return_value=None)):
            assert await ensure_latest(Config(tool_version="4.0.3")) is None
