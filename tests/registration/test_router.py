"""Tests for the registration API router and dependency wiring."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException

from src.provisioning.exceptions import ConfigurationError
from src.provisioning.registration.adapters import (
    InMemoryDeviceManagement,
    LoggingRegistrationNotifier,
    WebhookRegistrationNotifier,
)
from src.provisioning.registration.api import dependencies
from src.provisioning.registration.api.dependencies import (
    close_registration,
    get_optional_db_pool,
    get_optional_registration_manager,
    get_registration_manager,
    init_registration,
)
from src.provisioning.registration.api.router import router
from src.provisioning.registration.domain.entities import RegistrationConfig
from src.provisioning.registration.use_cases import RegistrationManager


@pytest.fixture
def backend():
    backend = InMemoryDeviceManagement()
    backend.add_specification("SPEC-A")
    backend.add_site("SITE-1")
    return backend


@pytest_asyncio.fixture
async def manager(backend):
    manager = RegistrationManager(
        backend,
        LoggingRegistrationNotifier(),
        RegistrationConfig(auto_assign_site=True),
    )
    await manager.start()
    return manager


def build_app(manager, pool=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_registration_manager] = lambda: manager
    app.dependency_overrides[get_optional_registration_manager] = lambda: manager
    app.dependency_overrides[get_optional_db_pool] = lambda: pool
    return app


@pytest_asyncio.fixture
async def client(manager, monkeypatch):
    monkeypatch.setenv("DISABLE_AUTH", "true")
    transport = httpx.ASGITransport(app=build_app(manager))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestRegisterDevice:
    async def test_new_device(self, client, backend):
        response = await client.post(
            "/api/registration/devices",
            json={
                "hardware_id": "DEV-1",
                "specification_token": "SPEC-A",
                "metadata": {"fw": "1.2"},
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "outcome": "RegistrationAck",
            "hardware_id": "DEV-1",
            "is_new_registration": True,
            "device_created": True,
            "assignment_created": True,
        }
        assert backend.devices["DEV-1"].metadata == {"fw": "1.2"}

    async def test_invalid_specification(self, client, backend):
        response = await client.post(
            "/api/registration/devices",
            json={"hardware_id": "DEV-1", "specification_token": "SPEC-X"},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "InvalidSpecification"
        assert backend.devices == {}

    async def test_blank_hardware_id(self, client):
        response = await client.post(
            "/api/registration/devices",
            json={"hardware_id": "  ", "specification_token": "SPEC-A"},
        )

        assert response.status_code == 422

    async def test_backend_failure_returns_502(self, monkeypatch):
        monkeypatch.setenv("DISABLE_AUTH", "true")
        failing = AsyncMock()
        failing.get_device_by_hardware_id.side_effect = RuntimeError("db down")
        manager = RegistrationManager(failing, LoggingRegistrationNotifier())
        await manager.start()

        transport = httpx.ASGITransport(app=build_app(manager))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/registration/devices",
                json={"hardware_id": "DEV-1", "specification_token": "SPEC-A"},
            )

        assert response.status_code == 502
        assert "db down" not in response.text


class TestAuthentication:
    @pytest_asyncio.fixture
    async def secured_client(self, manager, monkeypatch):
        monkeypatch.delenv("DISABLE_AUTH", raising=False)
        monkeypatch.setenv("API_KEY", "secret")
        transport = httpx.ASGITransport(app=build_app(manager))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    async def test_missing_key(self, secured_client):
        response = await secured_client.post(
            "/api/registration/devices",
            json={"hardware_id": "DEV-1", "specification_token": "SPEC-A"},
        )

        assert response.status_code == 401

    async def test_wrong_key(self, secured_client):
        response = await secured_client.get(
            "/api/registration/config", headers={"X-API-Key": "wrong"}
        )

        assert response.status_code == 401

    async def test_valid_key(self, secured_client):
        response = await secured_client.get(
            "/api/registration/config", headers={"X-API-Key": "secret"}
        )

        assert response.status_code == 200

    async def test_health_is_public(self, secured_client):
        response = await secured_client.get("/api/registration/health")

        assert response.status_code == 200


class TestConfigAndHealth:
    async def test_config_shows_resolved_site(self, client):
        response = await client.get("/api/registration/config")

        assert response.json() == {
            "allow_new_devices": True,
            "auto_assign_site": True,
            "auto_assign_site_token": "SITE-1",
            "serialize_by_hardware_id": False,
        }

    async def test_health(self, client):
        response = await client.get("/api/registration/health")

        assert response.json() == {
            "status": "healthy",
            "started": True,
            "backend": "InMemoryDeviceManagement",
            "database": None,
        }

    async def test_health_includes_database(self, manager):
        conn = MagicMock()
        conn.fetchval = AsyncMock(return_value=1)
        pool = MagicMock()
        pool.acquire = AsyncMock(return_value=conn)
        pool.release = AsyncMock()
        pool.get_size.return_value = 5
        pool.get_idle_size.return_value = 3

        transport = httpx.ASGITransport(app=build_app(manager, pool))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/registration/health")

        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == {
            "healthy": True,
            "pool_size": 5,
            "pool_free": 3,
            "pool_used": 2,
        }
        pool.release.assert_awaited_once_with(conn)

    async def test_unreachable_database_is_unavailable(self, manager):
        pool = MagicMock()
        pool.acquire = AsyncMock(side_effect=OSError("connection refused"))

        transport = httpx.ASGITransport(app=build_app(manager, pool))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/registration/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "unavailable"
        assert body["started"] is True
        assert body["database"]["healthy"] is False
        assert "connection refused" in body["database"]["error"]


class TestLifecycle:
    """Tests for init_registration / close_registration."""

    @pytest_asyncio.fixture(autouse=True)
    async def reset(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("REGISTRATION_WEBHOOK_URL", raising=False)
        yield
        await close_registration()

    async def test_init_with_injected_adapters(self, backend):
        manager = await init_registration(
            device_management=backend,
            notifier=LoggingRegistrationNotifier(),
            config=RegistrationConfig(auto_assign_site=True),
        )

        assert get_registration_manager() is manager
        assert manager.auto_assign_site_token == "SITE-1"

    async def test_init_defaults_to_in_memory_backend(self):
        manager = await init_registration(config=RegistrationConfig())

        assert isinstance(manager.backend, InMemoryDeviceManagement)
        assert isinstance(manager.notifier, LoggingRegistrationNotifier)

    async def test_failed_start_leaves_service_unavailable(self):
        with pytest.raises(ConfigurationError):
            await init_registration(
                device_management=InMemoryDeviceManagement(),
                config=RegistrationConfig(auto_assign_site=True),
            )

        assert dependencies._manager is None
        with pytest.raises(HTTPException) as exc_info:
            get_registration_manager()
        assert exc_info.value.status_code == 503

    async def test_close_stops_manager(self, backend):
        manager = await init_registration(device_management=backend, config=RegistrationConfig())

        await close_registration()

        assert manager.is_started is False
        assert get_optional_registration_manager() is None

    async def test_failed_start_keeps_injected_notifier_open(self):
        async with WebhookRegistrationNotifier("http://hooks.test/registration") as notifier:
            with pytest.raises(ConfigurationError):
                await init_registration(
                    device_management=InMemoryDeviceManagement(),
                    notifier=notifier,
                    config=RegistrationConfig(auto_assign_site=True),
                )

            assert notifier._session is not None
            assert not notifier._session.closed

    async def test_close_keeps_injected_notifier_open(self, backend):
        async with WebhookRegistrationNotifier("http://hooks.test/registration") as notifier:
            await init_registration(
                device_management=backend,
                notifier=notifier,
                config=RegistrationConfig(),
            )

            await close_registration()

            assert notifier._session is not None
            assert not notifier._session.closed

    async def test_close_releases_webhook_built_from_environment(self, backend, monkeypatch):
        monkeypatch.setenv("REGISTRATION_WEBHOOK_URL", "http://hooks.test/registration")
        manager = await init_registration(device_management=backend, config=RegistrationConfig())
        notifier = manager.notifier
        assert isinstance(notifier, WebhookRegistrationNotifier)

        await close_registration()

        assert notifier._session is None
