"""Domain entities for device registration.

These are pure data structures with no infrastructure dependencies.
The device-management backend owns and persists devices, sites and
assignments; the registration workflow only reads and creates them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# Comment attached to every device created by the registration workflow
ON_DEMAND_REGISTRATION_COMMENT = "Device created by on-demand registration."


class AssignmentType(str, Enum):
    """Nature of the binding between a device and a site."""

    UNASSOCIATED = "Unassociated"
    ASSOCIATED = "Associated"


class OutcomeType(str, Enum):
    """The three notifications a registration request can produce."""

    ACK = "RegistrationAck"
    INVALID_SPECIFICATION = "InvalidSpecification"
    SITE_TOKEN_REQUIRED = "SiteTokenRequired"


@dataclass
class RegistrationRequest:
    """A device announcing itself to the system."""

    hardware_id: str
    specification_token: str
    site_token: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.hardware_id or not self.hardware_id.strip():
            raise ValueError("hardware_id is required")


@dataclass
class Device:
    """Domain entity representing a registered device."""

    hardware_id: str
    specification_token: str
    assignment_token: Optional[str] = None
    comments: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def is_assigned(self) -> bool:
        """Check if device is bound to a site."""
        return self.assignment_token is not None


@dataclass
class DeviceSpecification:
    """Declared hardware type of a device. Only existence matters here."""

    token: str
    name: Optional[str] = None


@dataclass
class Site:
    """Operational site devices can be assigned to."""

    token: str
    name: Optional[str] = None


@dataclass
class DeviceAssignment:
    """Binding of a device to a site."""

    token: str
    site_token: str
    device_hardware_id: str
    assignment_type: AssignmentType = AssignmentType.UNASSOCIATED
    created_at: Optional[datetime] = None


@dataclass
class DeviceCreateRequest:
    """Payload for creating a device in the backend."""

    hardware_id: str
    specification_token: str
    comments: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    def add_or_replace_metadata(self, key: str, value: str) -> None:
        self.metadata[key] = value


@dataclass
class DeviceAssignmentCreateRequest:
    """Payload for creating a device assignment in the backend."""

    site_token: str
    device_hardware_id: str
    assignment_type: AssignmentType = AssignmentType.UNASSOCIATED


@dataclass
class SearchCriteria:
    """Paging criteria. Page numbers are 1-based."""

    page_number: int = 1
    page_size: int = 100

    def __post_init__(self):
        if self.page_number < 1:
            raise ValueError("page_number must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size


@dataclass
class SearchResults(Generic[T]):
    """One page of results plus the total number of matches."""

    results: list[T] = field(default_factory=list)
    num_results: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.results


@dataclass(frozen=True)
class RegistrationConfig:
    """Registration policy, fixed for the lifetime of the service.

    Attributes:
        allow_new_devices: Exposed for callers but not enforced by the
            registration workflow
        auto_assign_site: Assign unassigned devices to a default site
        auto_assign_site_token: Default site; resolved at start if unset
        serialize_by_hardware_id: Process requests for the same hardware id
            one at a time within this process
    """

    allow_new_devices: bool = True
    auto_assign_site: bool = False
    auto_assign_site_token: Optional[str] = None
    serialize_by_hardware_id: bool = False


@dataclass
class RegistrationOutcome:
    """Result of handling one registration request.

    Mirrors the single notification sent for the request.
    """

    outcome: OutcomeType
    hardware_id: str
    is_new_registration: bool = False
    device_created: bool = False
    assignment_created: bool = False

    @property
    def is_ack(self) -> bool:
        return self.outcome == OutcomeType.ACK
