"""Domain layer for device registration.

Contains:
- Entities: Core business objects
- Ports: Interface definitions for infrastructure adapters
"""

from .entities import (
    ON_DEMAND_REGISTRATION_COMMENT,
    AssignmentType,
    Device,
    DeviceAssignment,
    DeviceAssignmentCreateRequest,
    DeviceCreateRequest,
    DeviceSpecification,
    OutcomeType,
    RegistrationConfig,
    RegistrationOutcome,
    RegistrationRequest,
    SearchCriteria,
    SearchResults,
    Site,
)
from .ports import IDeviceManagement, IRegistrationNotifier

__all__ = [
    # Entities
    "ON_DEMAND_REGISTRATION_COMMENT",
    "AssignmentType",
    "Device",
    "DeviceAssignment",
    "DeviceAssignmentCreateRequest",
    "DeviceCreateRequest",
    "DeviceSpecification",
    "OutcomeType",
    "RegistrationConfig",
    "RegistrationOutcome",
    "RegistrationRequest",
    "SearchCriteria",
    "SearchResults",
    "Site",
    # Ports
    "IDeviceManagement",
    "IRegistrationNotifier",
]
