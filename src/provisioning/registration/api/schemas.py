"""Pydantic schemas for API request/response validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class RegistrationRequestDTO(BaseModel):
    """Registration request sent by (or on behalf of) a device."""

    hardware_id: str = Field(..., min_length=1, description="Unique hardware identifier")
    specification_token: str = Field(..., description="Declared device specification")
    site_token: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class RegistrationResponse(BaseModel):
    """Outcome of a registration request."""

    outcome: str = Field(..., description="RegistrationAck, InvalidSpecification or SiteTokenRequired")
    hardware_id: str
    is_new_registration: bool = False
    device_created: bool = False
    assignment_created: bool = False


class RegistrationConfigResponse(BaseModel):
    """Active registration policy."""

    allow_new_devices: bool
    auto_assign_site: bool
    auto_assign_site_token: Optional[str] = None
    serialize_by_hardware_id: bool = False


class HealthResponse(BaseModel):
    """Registration service health."""

    status: str
    started: bool
    backend: str
    database: Optional[dict[str, Any]] = None
