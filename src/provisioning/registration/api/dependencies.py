"""FastAPI dependency injection for the registration API.

Lifecycle Management:
- Database pool: created at startup when DATABASE_URL is set
- Notifier: webhook when REGISTRATION_WEBHOOK_URL is set, log otherwise
- RegistrationManager: built and started at startup, stopped at shutdown

Security:
- API key authentication required for registration endpoints
- Set API_KEY environment variable, or DISABLE_AUTH=true for development
"""

import logging
import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ...database import close_pool, create_pool
from ..adapters import (
    InMemoryDeviceManagement,
    LoggingRegistrationNotifier,
    PostgresDeviceManagement,
    WebhookRegistrationNotifier,
)
from ..config import get_database_url, get_webhook_url, load_registration_config
from ..domain.entities import RegistrationConfig
from ..domain.ports import IDeviceManagement, IRegistrationNotifier
from ..use_cases import RegistrationManager

logger = logging.getLogger(__name__)

# ========== API Key Authentication ==========

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """Verify the API key from the request header.

    Security model:
    - If DISABLE_AUTH=true (dev mode): authentication is disabled
    - Otherwise: API_KEY is required (fail-closed)

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    if os.getenv("DISABLE_AUTH", "").lower() == "true":
        return True

    expected_key = os.getenv("API_KEY", "")

    if not expected_key:
        logger.error(
            "API_KEY not set - rejecting request. "
            "Set API_KEY environment variable or DISABLE_AUTH=true for development."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: API_KEY not set",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


# ========== Global State ==========

_db_pool = None
# Only notifiers built here from REGISTRATION_WEBHOOK_URL; injected ones stay with the caller
_owned_notifier: Optional[WebhookRegistrationNotifier] = None
_manager: Optional[RegistrationManager] = None


async def init_registration(
    device_management: Optional[IDeviceManagement] = None,
    notifier: Optional[IRegistrationNotifier] = None,
    config: Optional[RegistrationConfig] = None,
) -> RegistrationManager:
    """Build and start the registration manager.

    Adapters not passed in are chosen from the environment. Adapters passed
    in remain owned by the caller and are never closed here.

    Raises:
        ConfigurationError: If auto-assignment configuration is invalid
    """
    global _db_pool, _owned_notifier, _manager

    if device_management is None:
        database_url = get_database_url()
        if database_url:
            _db_pool = await create_pool(database_url)
            device_management = PostgresDeviceManagement(_db_pool)
        else:
            logger.warning("DATABASE_URL not set - using in-memory device backend")
            device_management = InMemoryDeviceManagement()

    if notifier is None:
        webhook_url = get_webhook_url()
        if webhook_url:
            webhook = WebhookRegistrationNotifier(
                webhook_url,
                api_key=os.getenv("REGISTRATION_WEBHOOK_API_KEY") or None,
            )
            await webhook.open()
            _owned_notifier = webhook
            notifier = webhook
        else:
            notifier = LoggingRegistrationNotifier()

    manager = RegistrationManager(
        device_management=device_management,
        notifier=notifier,
        config=config or load_registration_config(),
    )
    try:
        await manager.start()
    except Exception:
        await close_registration()
        raise

    _manager = manager
    return manager


async def close_registration() -> None:
    """Stop the manager and release what init_registration built itself."""
    global _db_pool, _owned_notifier, _manager

    if _manager:
        await _manager.stop()
        _manager = None

    if _owned_notifier:
        await _owned_notifier.close()
        _owned_notifier = None

    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


# ========== Dependency Functions ==========


def get_registration_manager() -> RegistrationManager:
    """Get the started registration manager."""
    if _manager is None or not _manager.is_started:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registration service is not started",
        )
    return _manager


def get_optional_registration_manager() -> Optional[RegistrationManager]:
    return _manager


def get_optional_db_pool():
    """Pool created from DATABASE_URL, or None for injected/in-memory backends."""
    return _db_pool
