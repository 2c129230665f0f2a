"""Best-effort forward of generated personas to the downstream profile service."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import httpx

from smolchat.config.settings import Settings
from smolchat.observability.metrics import record_external_call

logger = logging.getLogger(__name__)


class PersonaForwarder:
    """POST ``{"text": persona}`` to the configured sink; failures are only logged."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._settings.persona_forward_enabled

    async def startup(self) -> None:
        """Initialise the HTTP client."""

        if not self.enabled:
            logger.info("Persona forwarding disabled")
            return

        timeout = httpx.Timeout(
            self._settings.persona_forward_read_timeout,
            connect=self._settings.persona_forward_connect_timeout,
        )
        self._client = httpx.AsyncClient(
            base_url=self._settings.persona_forward_url,
            timeout=timeout,
            transport=self._transport,
        )
        logger.info("Initialised persona forward client for %s", self._settings.persona_forward_url)

    async def shutdown(self) -> None:
        """Close the HTTP client."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    @property
    def is_ready(self) -> bool:
        return self._client is not None

    async def forward(self, persona: str) -> bool:
        """Send ``persona`` downstream. Returns whether the sink accepted it."""

        if self._client is None:
            logger.debug("Persona forward skipped: client not initialised")
            return False

        start = time.perf_counter()
        try:
            response = await self._client.post(
                self._settings.persona_forward_path,
                json={"text": persona},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Persona forward rejected: status=%d, body=%s",
                exc.response.status_code,
                exc.response.text[:500],
            )
            record_external_call("persona_forward", time.perf_counter() - start, success=False)
            return False
        except httpx.HTTPError as exc:
            logger.warning("Persona forward failed: %s", exc)
            record_external_call("persona_forward", time.perf_counter() - start, success=False)
            return False
        except Exception:
            logger.exception("Unexpected error forwarding persona")
            record_external_call("persona_forward", time.perf_counter() - start, success=False)
            return False

        record_external_call("persona_forward", time.perf_counter() - start, success=True)
        logger.info("Persona forwarded (status=%d)", response.status_code)
        return True
