"""FastAPI router for device registration endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...database import check_database_health
from ...exceptions import RegistrationError
from ..domain.entities import RegistrationRequest
from ..use_cases import RegistrationManager
from .dependencies import (
    get_optional_db_pool,
    get_optional_registration_manager,
    get_registration_manager,
    verify_api_key,
)
from .schemas import (
    HealthResponse,
    RegistrationConfigResponse,
    RegistrationRequestDTO,
    RegistrationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/registration", tags=["Device Registration"])


@router.post("/devices", response_model=RegistrationResponse)
async def register_device(
    body: RegistrationRequestDTO,
    manager: RegistrationManager = Depends(get_registration_manager),
    _auth: bool = Depends(verify_api_key),
):
    """Register a device.

    Creates the device if it is unknown, validates its specification and
    ensures it is assigned to a site. The outcome is both returned and
    delivered through the configured notifier.
    """
    try:
        request = RegistrationRequest(
            hardware_id=body.hardware_id,
            specification_token=body.specification_token,
            site_token=body.site_token,
            metadata=body.metadata,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        outcome = await manager.handle_registration(request)
    except RegistrationError as e:
        logger.error(f"Registration request failed: {e}")
        raise HTTPException(
            status_code=502,
            detail=f"Registration failed for device {request.hardware_id}",
        )

    return RegistrationResponse(
        outcome=outcome.outcome.value,
        hardware_id=outcome.hardware_id,
        is_new_registration=outcome.is_new_registration,
        device_created=outcome.device_created,
        assignment_created=outcome.assignment_created,
    )


@router.get("/config", response_model=RegistrationConfigResponse)
async def get_config(
    manager: RegistrationManager = Depends(get_registration_manager),
    _auth: bool = Depends(verify_api_key),
):
    """Get the active registration policy, including the resolved site token."""
    return RegistrationConfigResponse(
        allow_new_devices=manager.allow_new_devices,
        auto_assign_site=manager.auto_assign_site,
        auto_assign_site_token=manager.auto_assign_site_token,
        serialize_by_hardware_id=manager.config.serialize_by_hardware_id,
    )


@router.get("/health", response_model=HealthResponse)
async def health(
    manager: Optional[RegistrationManager] = Depends(get_optional_registration_manager),
    pool=Depends(get_optional_db_pool),
):
    """Report whether the registration manager is accepting requests.

    When the service owns a PostgreSQL pool, its health is included and an
    unreachable database marks the service unavailable.
    """
    started = manager is not None and manager.is_started
    backend = type(manager.backend).__name__ if manager else "none"

    database = None
    if pool is not None:
        database = await check_database_health(pool)
        if not database["healthy"]:
            logger.warning(f"Database health check failed: {database.get('error')}")

    healthy = started and (database is None or database["healthy"])
    return HealthResponse(
        status="healthy" if healthy else "unavailable",
        started=started,
        backend=backend,
        database=database,
    )
