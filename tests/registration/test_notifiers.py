"""Tests for registration outcome notifiers.

The webhook notifier is tested against a fake aiohttp session rather
than a real HTTP endpoint.
"""

import asyncio
import logging

import aiohttp
import pytest

from src.provisioning.exceptions import NotificationError
from src.provisioning.registration.adapters import (
    LoggingRegistrationNotifier,
    WebhookRegistrationNotifier,
)


class FakeResponse:
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Records posted events and replies with a fixed status."""

    def __init__(self, status: int = 204, body: str = "", raise_error: Exception | None = None):
        self.status = status
        self.body = body
        self.raise_error = raise_error
        self.posts: list[dict] = []
        self.closed = False

    def post(self, url, json=None, headers=None):
        if self.raise_error:
            raise self.raise_error
        self.posts.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(self.status, self.body)

    async def close(self):
        self.closed = True


URL = "https://hooks.example.com/registration"


class TestWebhookRegistrationNotifier:
    async def test_ack_event(self):
        session = FakeSession()
        notifier = WebhookRegistrationNotifier(URL, session=session)

        await notifier.send_registration_ack("DEV-1", True)

        assert session.posts == [
            {
                "url": URL,
                "json": {"type": "RegistrationAck", "hardwareId": "DEV-1", "newRegistration": True},
                "headers": {"Content-Type": "application/json"},
            }
        ]

    async def test_invalid_specification_event(self):
        session = FakeSession()
        notifier = WebhookRegistrationNotifier(URL, session=session)

        await notifier.send_invalid_specification("DEV-1")

        assert session.posts[0]["json"] == {"type": "InvalidSpecification", "hardwareId": "DEV-1"}

    async def test_site_token_required_event(self):
        session = FakeSession()
        notifier = WebhookRegistrationNotifier(URL, session=session)

        await notifier.send_site_token_required("DEV-1")

        assert session.posts[0]["json"] == {"type": "SiteTokenRequired", "hardwareId": "DEV-1"}

    async def test_api_key_header(self):
        session = FakeSession()
        notifier = WebhookRegistrationNotifier(URL, api_key="secret", session=session)

        await notifier.send_site_token_required("DEV-1")

        assert session.posts[0]["headers"]["X-API-Key"] == "secret"

    async def test_error_status_raises(self):
        session = FakeSession(status=500, body="broken")
        notifier = WebhookRegistrationNotifier(URL, session=session)

        with pytest.raises(NotificationError) as exc_info:
            await notifier.send_registration_ack("DEV-1", False)

        assert exc_info.value.status_code == 500
        assert exc_info.value.details["response_body"] == "broken"

    async def test_client_error_raises(self):
        session = FakeSession(raise_error=aiohttp.ClientConnectionError("refused"))
        notifier = WebhookRegistrationNotifier(URL, session=session)

        with pytest.raises(NotificationError) as exc_info:
            await notifier.send_invalid_specification("DEV-1")

        assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)

    async def test_timeout_raises(self):
        session = FakeSession(raise_error=asyncio.TimeoutError())
        notifier = WebhookRegistrationNotifier(URL, session=session)

        with pytest.raises(NotificationError):
            await notifier.send_invalid_specification("DEV-1")

    async def test_unopened_notifier(self):
        notifier = WebhookRegistrationNotifier(URL)

        with pytest.raises(RuntimeError):
            await notifier.send_site_token_required("DEV-1")

    async def test_injected_session_not_closed(self):
        session = FakeSession()

        async with WebhookRegistrationNotifier(URL, session=session):
            pass

        assert session.closed is False

    async def test_owned_session_lifecycle(self):
        notifier = WebhookRegistrationNotifier(URL)

        async with notifier:
            assert notifier._session is not None

        assert notifier._session is None


class TestLoggingRegistrationNotifier:
    async def test_logs_each_outcome(self, caplog):
        notifier = LoggingRegistrationNotifier()

        with caplog.at_level(logging.INFO):
            await notifier.send_registration_ack("DEV-1", True)
            await notifier.send_invalid_specification("DEV-2")
            await notifier.send_site_token_required("DEV-3")

        assert "Registration ack for DEV-1 (new=True)" in caplog.text
        assert "Invalid specification for DEV-2" in caplog.text
        assert "Site token required for DEV-3" in caplog.text
