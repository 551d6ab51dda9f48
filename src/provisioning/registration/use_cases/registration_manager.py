"""Registration Manager - Orchestrates the device registration workflow.

Decides, for every device announcing itself, whether it is new or known,
whether its declared specification is valid, and whether it is bound to a
site. Exactly one outcome notification is sent per request.

Workflow (handle_registration):
1. Look up the device and the requested specification (via IDeviceManagement)
2. Unknown device: reject an unknown specification, otherwise create it
3. Known device: reject a specification token that differs from the stored one
4. Unassigned device: require a site token, or auto-assign to the default site
5. Acknowledge the registration (via IRegistrationNotifier)

Concurrency:
    Lookup and create are not atomic. Two concurrent requests for the same
    unseen hardware id can both try to create the device; the backend must
    reject the second with DeviceConflictError, which surfaces here as a
    RegistrationError. Set RegistrationConfig.serialize_by_hardware_id to
    serialize requests per hardware id within one process.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ...exceptions import ConfigurationError, RegistrationError
from ..domain.entities import (
    ON_DEMAND_REGISTRATION_COMMENT,
    AssignmentType,
    DeviceAssignmentCreateRequest,
    DeviceCreateRequest,
    OutcomeType,
    RegistrationConfig,
    RegistrationOutcome,
    RegistrationRequest,
    SearchCriteria,
)
from ..domain.ports import IDeviceManagement, IRegistrationNotifier

logger = logging.getLogger(__name__)


class HardwareIdLocks:
    """Registry of asyncio locks keyed by hardware id.

    Locks are created on first use and discarded once no request holds
    or waits on them.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, hardware_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(hardware_id, asyncio.Lock())
        self._waiters[hardware_id] = self._waiters.get(hardware_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[hardware_id] -= 1
            if self._waiters[hardware_id] == 0:
                del self._waiters[hardware_id]
                del self._locks[hardware_id]


class RegistrationManager:
    """Handles device registration requests.

    Depends only on port interfaces. The configuration is immutable; the
    auto-assign site token is resolved once by start() and never changes
    afterwards.

    Example:
        manager = RegistrationManager(
            device_management=PostgresDeviceManagement(pool),
            notifier=LoggingRegistrationNotifier(),
            config=RegistrationConfig(auto_assign_site=True),
        )
        await manager.start()
        outcome = await manager.handle_registration(request)
    """

    def __init__(
        self,
        device_management: IDeviceManagement,
        notifier: IRegistrationNotifier,
        config: Optional[RegistrationConfig] = None,
    ):
        """Initialize the manager with its dependencies.

        Args:
            device_management: Port for device, specification and site data
            notifier: Port for sending registration outcomes
            config: Registration policy (defaults to RegistrationConfig())
        """
        self.backend = device_management
        self.notifier = notifier
        self.config = config or RegistrationConfig()

        self._auto_assign_site_token: Optional[str] = self.config.auto_assign_site_token
        self._started = False
        self._locks = HardwareIdLocks()

    # ========== Configuration Accessors ==========

    @property
    def allow_new_devices(self) -> bool:
        return self.config.allow_new_devices

    @property
    def auto_assign_site(self) -> bool:
        return self.config.auto_assign_site

    @property
    def auto_assign_site_token(self) -> Optional[str]:
        """Site token used for auto-assignment (resolved after start)."""
        return self._auto_assign_site_token

    @property
    def is_started(self) -> bool:
        return self._started

    # ========== Lifecycle ==========

    async def start(self) -> None:
        """Validate auto-assignment configuration against the site catalog.

        Raises:
            ConfigurationError: If auto-assign is enabled and no site exists,
                or the configured site token does not resolve
        """
        if self._started:
            logger.warning("Device registration manager already started")
            return

        logger.info("Device registration manager starting.")

        if self.auto_assign_site:
            if self._auto_assign_site_token is None:
                self._auto_assign_site_token = await self._resolve_default_site()
                logger.info(
                    f"Auto-assign site token resolved to {self._auto_assign_site_token}"
                )
            else:
                await self._verify_configured_site(self._auto_assign_site_token)

        self._started = True
        logger.info(
            f"Device registration manager started "
            f"(auto_assign_site={self.auto_assign_site}, "
            f"site_token={self._auto_assign_site_token})"
        )

    async def stop(self) -> None:
        """Stop accepting registrations. No resources are held."""
        logger.info("Device registration manager stopping.")
        self._started = False

    async def _resolve_default_site(self) -> str:
        try:
            sites = await self.backend.list_sites(SearchCriteria(page_number=1, page_size=1))
        except Exception as e:
            raise ConfigurationError(
                f"Unable to list sites for auto-assignment: {e}",
                cause=e,
            )

        if sites.is_empty:
            raise ConfigurationError(
                "Registration manager configured for auto-assign site, but no sites were found."
            )
        return sites.results[0].token

    async def _verify_configured_site(self, site_token: str) -> None:
        try:
            site = await self.backend.get_site_by_token(site_token)
        except Exception as e:
            raise ConfigurationError(
                f"Unable to verify auto-assign site '{site_token}': {e}",
                cause=e,
            )

        if site is None:
            raise ConfigurationError(
                "Registration manager auto assignment site token is invalid.",
                details={"site_token": site_token},
            )

    # ========== Registration ==========

    async def handle_registration(self, request: RegistrationRequest) -> RegistrationOutcome:
        """Handle a device registration request.

        Args:
            request: The registration request

        Returns:
            RegistrationOutcome describing the notification that was sent

        Raises:
            RegistrationError: If the manager is not started, or any backend
                or notification call fails
        """
        hardware_id = request.hardware_id

        if not self._started:
            raise RegistrationError(
                "Registration manager is not started",
                hardware_id=hardware_id,
            )

        if self.config.serialize_by_hardware_id:
            async with self._locks.hold(hardware_id):
                return await self._handle(request)
        return await self._handle(request)

    async def _handle(self, request: RegistrationRequest) -> RegistrationOutcome:
        hardware_id = request.hardware_id
        try:
            return await self._register(request)
        except RegistrationError:
            raise
        except Exception as e:
            logger.error(f"Registration failed for device {hardware_id}: {e}")
            raise RegistrationError(
                f"Registration failed for device {hardware_id}: {e}",
                hardware_id=hardware_id,
                cause=e,
            )

    async def _register(self, request: RegistrationRequest) -> RegistrationOutcome:
        logger.debug("Handling device registration request.")
        hardware_id = request.hardware_id

        device = await self.backend.get_device_by_hardware_id(hardware_id)
        specification = await self.backend.get_device_specification_by_token(
            request.specification_token
        )

        device_created = False
        if device is None:
            logger.debug("Creating new device as part of registration.")
            if specification is None:
                return await self._invalid_specification(request)

            device = await self.backend.create_device(self._build_device_create(request))
            device_created = True
            logger.info(f"Created device {hardware_id} ({request.specification_token})")

        elif device.specification_token != request.specification_token:
            return await self._invalid_specification(request)

        assignment_created = False
        if device.assignment_token is None:
            if not self.auto_assign_site:
                logger.warning(f"Device {hardware_id} is unassigned and auto-assign is disabled")
                await self.notifier.send_site_token_required(hardware_id)
                return RegistrationOutcome(
                    outcome=OutcomeType.SITE_TOKEN_REQUIRED,
                    hardware_id=hardware_id,
                    device_created=device_created,
                )

            logger.debug("Handling unassigned device for registration.")
            await self.backend.create_device_assignment(
                DeviceAssignmentCreateRequest(
                    site_token=self._auto_assign_site_token,
                    device_hardware_id=device.hardware_id,
                    assignment_type=AssignmentType.UNASSOCIATED,
                )
            )
            assignment_created = True
            logger.info(
                f"Assigned device {hardware_id} to site {self._auto_assign_site_token}"
            )

        await self.notifier.send_registration_ack(hardware_id, device_created)
        return RegistrationOutcome(
            outcome=OutcomeType.ACK,
            hardware_id=hardware_id,
            is_new_registration=device_created,
            device_created=device_created,
            assignment_created=assignment_created,
        )

    async def _invalid_specification(self, request: RegistrationRequest) -> RegistrationOutcome:
        logger.warning(
            f"Rejecting device {request.hardware_id}: "
            f"invalid specification {request.specification_token!r}"
        )
        await self.notifier.send_invalid_specification(request.hardware_id)
        return RegistrationOutcome(
            outcome=OutcomeType.INVALID_SPECIFICATION,
            hardware_id=request.hardware_id,
        )

    @staticmethod
    def _build_device_create(request: RegistrationRequest) -> DeviceCreateRequest:
        create = DeviceCreateRequest(
            hardware_id=request.hardware_id,
            specification_token=request.specification_token,
            comments=ON_DEMAND_REGISTRATION_COMMENT,
        )
        for key, value in request.metadata.items():
            create.add_or_replace_metadata(key, value)
        return create
