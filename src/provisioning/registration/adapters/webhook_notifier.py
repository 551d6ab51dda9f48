"""HTTP webhook adapter for registration outcomes.

POSTs one JSON event per registration outcome:

    {"type": "RegistrationAck", "hardwareId": "DEV-1", "newRegistration": true}
    {"type": "InvalidSpecification", "hardwareId": "DEV-1"}
    {"type": "SiteTokenRequired", "hardwareId": "DEV-1"}

Usage:
    async with WebhookRegistrationNotifier("https://hooks.example.com/reg") as notifier:
        await notifier.send_registration_ack("DEV-1", True)
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from ...exceptions import NotificationError
from ..domain.entities import OutcomeType
from ..domain.ports import IRegistrationNotifier

logger = logging.getLogger(__name__)


class WebhookRegistrationNotifier(IRegistrationNotifier):
    """Delivers registration outcomes to an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the notifier.

        Args:
            url: Endpoint receiving outcome events
            api_key: Optional value for the X-API-Key header
            timeout_seconds: Total timeout per delivery
            session: Existing session to use (not closed by this notifier)
        """
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "WebhookRegistrationNotifier":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the HTTP session if none was injected."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
            self._owns_session = True

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    async def send_registration_ack(self, hardware_id: str, new_registration: bool) -> None:
        await self._post(
            {
                "type": OutcomeType.ACK.value,
                "hardwareId": hardware_id,
                "newRegistration": new_registration,
            }
        )

    async def send_invalid_specification(self, hardware_id: str) -> None:
        await self._post(
            {"type": OutcomeType.INVALID_SPECIFICATION.value, "hardwareId": hardware_id}
        )

    async def send_site_token_required(self, hardware_id: str) -> None:
        await self._post(
            {"type": OutcomeType.SITE_TOKEN_REQUIRED.value, "hardwareId": hardware_id}
        )

    async def _post(self, event: dict[str, Any]) -> None:
        if not self._session:
            raise RuntimeError(
                "WebhookRegistrationNotifier must be opened before use: "
                "async with WebhookRegistrationNotifier(...) as notifier:"
            )

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key

        try:
            async with self._session.post(self.url, json=event, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise NotificationError(
                        f"Webhook rejected {event['type']} for {event['hardwareId']}",
                        status_code=response.status,
                        details={"response_body": body[:500]},
                    )

        except asyncio.TimeoutError as e:
            raise NotificationError(
                f"Webhook delivery timed out after {self.timeout_seconds}s",
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NotificationError(
                f"Webhook delivery failed: {e}",
                cause=e,
            )

        logger.debug(f"Delivered {event['type']} for {event['hardwareId']}")
