"""Environment configuration for the registration service.

Environment Variables:
    REGISTRATION_ALLOW_NEW_DEVICES: Allow unknown devices (default: true, not enforced)
    REGISTRATION_AUTO_ASSIGN_SITE: Auto-assign unassigned devices (default: false)
    REGISTRATION_AUTO_ASSIGN_SITE_TOKEN: Default site (default: first site found)
    REGISTRATION_SERIALIZE_BY_HARDWARE_ID: Per-device request serialization (default: false)
    REGISTRATION_WEBHOOK_URL: Deliver outcomes to this URL (default: log only)
    DATABASE_URL: PostgreSQL backend (default: in-memory backend)
"""

import os
from typing import Optional

from dotenv import load_dotenv

from .domain.entities import RegistrationConfig

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_registration_config() -> RegistrationConfig:
    """Build RegistrationConfig from environment variables."""
    return RegistrationConfig(
        allow_new_devices=_env_flag("REGISTRATION_ALLOW_NEW_DEVICES", "true"),
        auto_assign_site=_env_flag("REGISTRATION_AUTO_ASSIGN_SITE", "false"),
        auto_assign_site_token=_env_optional("REGISTRATION_AUTO_ASSIGN_SITE_TOKEN"),
        serialize_by_hardware_id=_env_flag("REGISTRATION_SERIALIZE_BY_HARDWARE_ID", "false"),
    )


def get_database_url() -> Optional[str]:
    return _env_optional("DATABASE_URL")


def get_webhook_url() -> Optional[str]:
    return _env_optional("REGISTRATION_WEBHOOK_URL")
