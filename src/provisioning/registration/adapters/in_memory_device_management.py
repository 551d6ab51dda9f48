"""In-memory adapter for the device-management backend.

Used when no DATABASE_URL is configured and in tests. Enforces the same
hardware-id uniqueness as the PostgreSQL adapter.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from ...exceptions import DeviceConflictError, DeviceManagementError
from ..domain.entities import (
    Device,
    DeviceAssignment,
    DeviceAssignmentCreateRequest,
    DeviceCreateRequest,
    DeviceSpecification,
    SearchCriteria,
    SearchResults,
    Site,
)
from ..domain.ports import IDeviceManagement

logger = logging.getLogger(__name__)


class InMemoryDeviceManagement(IDeviceManagement):
    """Dict-backed implementation of IDeviceManagement.

    Sites are listed in insertion order.
    """

    def __init__(self):
        self.devices: dict[str, Device] = {}
        self.specifications: dict[str, DeviceSpecification] = {}
        self.sites: dict[str, Site] = {}
        self.assignments: dict[str, DeviceAssignment] = {}

    # ========== Seeding ==========

    def add_specification(self, token: str, name: Optional[str] = None) -> DeviceSpecification:
        spec = DeviceSpecification(token=token, name=name)
        self.specifications[token] = spec
        return spec

    def add_site(self, token: str, name: Optional[str] = None) -> Site:
        site = Site(token=token, name=name)
        self.sites[token] = site
        return site

    def add_device(self, device: Device) -> Device:
        self.devices[device.hardware_id] = device
        return device

    # ========== IDeviceManagement ==========

    async def get_device_by_hardware_id(self, hardware_id: str) -> Optional[Device]:
        return self.devices.get(hardware_id)

    async def get_device_specification_by_token(
        self, token: str
    ) -> Optional[DeviceSpecification]:
        return self.specifications.get(token)

    async def create_device(self, request: DeviceCreateRequest) -> Device:
        if request.hardware_id in self.devices:
            raise DeviceConflictError(request.hardware_id)

        device = Device(
            hardware_id=request.hardware_id,
            specification_token=request.specification_token,
            comments=request.comments,
            metadata=dict(request.metadata),
            created_at=datetime.now(timezone.utc),
        )
        self.devices[device.hardware_id] = device
        logger.debug(f"Stored device {device.hardware_id}")
        return device

    async def get_site_by_token(self, token: str) -> Optional[Site]:
        return self.sites.get(token)

    async def list_sites(self, criteria: SearchCriteria) -> SearchResults[Site]:
        sites = list(self.sites.values())
        page = sites[criteria.offset:criteria.offset + criteria.page_size]
        return SearchResults(results=page, num_results=len(sites))

    async def create_device_assignment(
        self, request: DeviceAssignmentCreateRequest
    ) -> DeviceAssignment:
        device = self.devices.get(request.device_hardware_id)
        if device is None:
            raise DeviceManagementError(
                f"Device '{request.device_hardware_id}' not found for assignment",
                recoverable=False,
            )
        if request.site_token not in self.sites:
            raise DeviceManagementError(
                f"Site '{request.site_token}' not found for assignment",
                recoverable=False,
            )

        assignment = DeviceAssignment(
            token=str(uuid4()),
            site_token=request.site_token,
            device_hardware_id=request.device_hardware_id,
            assignment_type=request.assignment_type,
            created_at=datetime.now(timezone.utc),
        )
        self.assignments[assignment.token] = assignment
        device.assignment_token = assignment.token
        return assignment
