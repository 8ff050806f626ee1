"""Fire-and-forget POSTs for page-unload time."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from helpdesk_realtime.adapters.api_request_logger import log_api_request
from helpdesk_realtime.domain.contracts.beacon_sender import BeaconSenderProtocol

logger = logging.getLogger(__name__)


class AiohttpBeaconSender(BeaconSenderProtocol):
    """Queues a ``text/plain`` JSON POST and never waits for it.

    Like a browser beacon the request carries no headers worth relying on, so
    the token travels in the body.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession,
        token: str | None = None,
        timeout_seconds: float = 5,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self.token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._pending: set[asyncio.Task[None]] = set()

    def send_beacon(self, path: str, payload: dict[str, Any]) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Cannot send beacon to {path}: no running event loop")
            return False
        if self._session.closed:
            logger.warning(f"Cannot send beacon to {path}: HTTP session closed")
            return False

        body = {**payload, "token": self.token} if self.token else dict(payload)
        task = loop.create_task(self._post(f"{self._base_url}{path}", body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def flush(self) -> None:
        """Give queued beacons a chance to go out before shutdown."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _post(self, url: str, body: dict[str, Any]) -> None:
        log_api_request("POST", url, payload=body)
        try:
            async with self._session.post(
                url,
                data=json.dumps(body),
                headers={"Content-Type": "text/plain;charset=UTF-8"},
                timeout=self._timeout,
            ) as response:
                logger.debug(f"Beacon to {url} answered {response.status}")
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"Beacon to {url} was not delivered: {e}")
