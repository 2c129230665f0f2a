"""
Unit tests for the best-effort persona forwarder.

Tests cover the request shape, timeouts, and that every failure mode is
swallowed and reported through the return value only.
"""

import json
from typing import List

import httpx
import pytest

from smolchat.config.settings import Settings
from smolchat.services.forwarder import PersonaForwarder


@pytest.fixture
def forward_settings(test_settings: Settings) -> Settings:
    return test_settings.model_copy(
        update={"persona_forward_enabled": True, "persona_forward_url": "http://profile.test"}
    )


async def _started(settings: Settings, handler) -> PersonaForwarder:
    forwarder = PersonaForwarder(settings, transport=httpx.MockTransport(handler))
    await forwarder.startup()
    return forwarder


class TestForward:
    """Test PersonaForwarder.forward."""

    async def test_posts_text_payload(self, forward_settings: Settings) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        forwarder = await _started(forward_settings, handler)
        try:
            assert await forwarder.forward("Ana Li (Engineer, R&D).") is True
        finally:
            await forwarder.shutdown()

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "http://profile.test/ai/profile/persona"
        assert json.loads(seen[0].content) == {"text": "Ana Li (Engineer, R&D)."}

    async def test_error_status_is_swallowed(self, forward_settings: Settings) -> None:
        forwarder = await _started(forward_settings, lambda request: httpx.Response(503, text="down"))
        try:
            assert await forwarder.forward("persona") is False
        finally:
            await forwarder.shutdown()

    async def test_connection_error_is_swallowed(self, forward_settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        forwarder = await _started(forward_settings, handler)
        try:
            assert await forwarder.forward("persona") is False
        finally:
            await forwarder.shutdown()

    async def test_timeout_is_swallowed(self, forward_settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow sink", request=request)

        forwarder = await _started(forward_settings, handler)
        try:
            assert await forwarder.forward("persona") is False
        finally:
            await forwarder.shutdown()

    @pytest.mark.parametrize("error", [httpx.InvalidURL("bad host"), RuntimeError("transport bug")])
    async def test_unexpected_errors_are_swallowed(self, forward_settings: Settings, error: Exception) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        forwarder = await _started(forward_settings, handler)
        try:
            assert await forwarder.forward("persona") is False
        finally:
            await forwarder.shutdown()

    async def test_forward_before_startup_is_noop(self, forward_settings: Settings) -> None:
        forwarder = PersonaForwarder(forward_settings)

        assert await forwarder.forward("persona") is False


class TestLifecycle:
    """Test client construction."""

    async def test_timeouts_configured(self, forward_settings: Settings) -> None:
        forwarder = PersonaForwarder(forward_settings)
        await forwarder.startup()
        try:
            timeout = forwarder._client.timeout
            assert timeout.connect == 5.0
            assert timeout.read == 10.0
        finally:
            await forwarder.shutdown()

        assert not forwarder.is_ready

    async def test_disabled_forwarder_creates_no_client(self, test_settings: Settings) -> None:
        forwarder = PersonaForwarder(test_settings)

        await forwarder.startup()

        assert not forwarder.enabled
        assert not forwarder.is_ready
