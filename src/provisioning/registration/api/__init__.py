"""API layer for device registration.

Provides FastAPI router and schemas for the registration endpoints.
"""

from .router import router
from .schemas import (
    HealthResponse,
    RegistrationConfigResponse,
    RegistrationRequestDTO,
    RegistrationResponse,
)

__all__ = [
    "router",
    "HealthResponse",
    "RegistrationConfigResponse",
    "RegistrationRequestDTO",
    "RegistrationResponse",
]
