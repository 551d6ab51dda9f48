"""Port interfaces for device registration.

These are abstract interfaces (ports) that define how the registration
workflow interacts with external systems. Concrete implementations
(adapters) are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .entities import (
    Device,
    DeviceAssignment,
    DeviceAssignmentCreateRequest,
    DeviceCreateRequest,
    DeviceSpecification,
    SearchCriteria,
    SearchResults,
    Site,
)


class IDeviceManagement(ABC):
    """Port for the device-management backend.

    Implementations might use PostgreSQL, in-memory storage, a remote API, etc.
    Implementations must enforce uniqueness of hardware ids on create.
    """

    @abstractmethod
    async def get_device_by_hardware_id(self, hardware_id: str) -> Optional[Device]:
        """Find a device by hardware id.

        Args:
            hardware_id: Hardware identifier

        Returns:
            Device if found, None otherwise
        """
        ...

    @abstractmethod
    async def get_device_specification_by_token(
        self, token: str
    ) -> Optional[DeviceSpecification]:
        """Find a device specification by token.

        Args:
            token: Specification token

        Returns:
            DeviceSpecification if found, None otherwise
        """
        ...

    @abstractmethod
    async def create_device(self, request: DeviceCreateRequest) -> Device:
        """Create a new device.

        Args:
            request: Device creation payload

        Returns:
            The created Device

        Raises:
            DeviceConflictError: If the hardware id is already registered
        """
        ...

    @abstractmethod
    async def get_site_by_token(self, token: str) -> Optional[Site]:
        """Find a site by token.

        Args:
            token: Site token

        Returns:
            Site if found, None otherwise
        """
        ...

    @abstractmethod
    async def list_sites(self, criteria: SearchCriteria) -> SearchResults[Site]:
        """List sites one page at a time.

        Args:
            criteria: Page number and page size

        Returns:
            SearchResults containing the requested page
        """
        ...

    @abstractmethod
    async def create_device_assignment(
        self, request: DeviceAssignmentCreateRequest
    ) -> DeviceAssignment:
        """Assign a device to a site.

        The device's assignment token is updated to the new assignment.

        Args:
            request: Assignment creation payload

        Returns:
            The created DeviceAssignment
        """
        ...


class IRegistrationNotifier(ABC):
    """Port for delivering registration outcomes back to devices.

    Each transport (HTTP callback, log, message broker, ...) provides
    its own implementation.
    """

    @abstractmethod
    async def send_registration_ack(self, hardware_id: str, new_registration: bool) -> None:
        """Acknowledge a successful registration.

        Args:
            hardware_id: Hardware identifier of the device
            new_registration: True if the device was created by this request
        """
        ...

    @abstractmethod
    async def send_invalid_specification(self, hardware_id: str) -> None:
        """Report an unknown specification or one not matching the device."""
        ...

    @abstractmethod
    async def send_site_token_required(self, hardware_id: str) -> None:
        """Report that a site token must be supplied (no auto-assignment)."""
        ...
