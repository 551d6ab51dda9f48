"""Device Registration Module.

Decides, for every device announcing itself, whether it is new or known,
whether its declared specification is valid, and whether it is bound to
a site, then sends exactly one outcome notification.

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
    domain/     - Pure domain entities and port interfaces
    use_cases/  - RegistrationManager
    adapters/   - PostgreSQL, in-memory, webhook and logging implementations
    api/        - FastAPI router
"""

from .domain.entities import (
    Device,
    OutcomeType,
    RegistrationConfig,
    RegistrationOutcome,
    RegistrationRequest,
)
from .domain.ports import IDeviceManagement, IRegistrationNotifier
from .use_cases import RegistrationManager

__all__ = [
    "Device",
    "OutcomeType",
    "RegistrationConfig",
    "RegistrationOutcome",
    "RegistrationRequest",
    "IDeviceManagement",
    "IRegistrationNotifier",
    "RegistrationManager",
]
