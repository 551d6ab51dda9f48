"""PostgreSQL adapter for the device-management backend.

This adapter implements IDeviceManagement using asyncpg against the
tables defined in db/registration_schema.sql.
"""

import json
import logging
from typing import Optional
from uuid import uuid4

import asyncpg

from ...database import convert_db_exception, database_connection, database_transaction
from ...exceptions import DeviceConflictError, DeviceManagementError
from ..domain.entities import (
    AssignmentType,
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


class PostgresDeviceManagement(IDeviceManagement):
    """PostgreSQL implementation of IDeviceManagement."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def get_device_by_hardware_id(self, hardware_id: str) -> Optional[Device]:
        """Find a device by hardware id."""
        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(
                    """
                    SELECT
                        hardware_id,
                        specification_token,
                        assignment_token,
                        comments,
                        metadata,
                        created_at
                    FROM devices
                    WHERE hardware_id = $1
                    """,
                    hardware_id,
                )
        except Exception as e:
            raise convert_db_exception(e)

        if row is None:
            return None
        return self._row_to_device(row)

    async def get_device_specification_by_token(
        self, token: str
    ) -> Optional[DeviceSpecification]:
        """Find a device specification by token."""
        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(
                    "SELECT token, name FROM device_specifications WHERE token = $1",
                    token,
                )
        except Exception as e:
            raise convert_db_exception(e)

        if row is None:
            return None
        return DeviceSpecification(token=row["token"], name=row["name"])

    async def create_device(self, request: DeviceCreateRequest) -> Device:
        """Insert a device. A duplicate hardware id raises DeviceConflictError."""
        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO devices (hardware_id, specification_token, comments, metadata)
                VALUES ($1, $2, $3, $4::jsonb)
                ON CONFLICT (hardware_id) DO NOTHING
                RETURNING
                    hardware_id,
                    specification_token,
                    assignment_token,
                    comments,
                    metadata,
                    created_at
                """,
                request.hardware_id,
                request.specification_token,
                request.comments,
                json.dumps(request.metadata),
            )
            if row is None:
                raise DeviceConflictError(request.hardware_id)

        logger.debug(f"Inserted device {request.hardware_id}")
        return self._row_to_device(row)

    async def get_site_by_token(self, token: str) -> Optional[Site]:
        """Find a site by token."""
        try:
            async with database_connection(self.pool) as conn:
                row = await conn.fetchrow(
                    "SELECT token, name FROM sites WHERE token = $1",
                    token,
                )
        except Exception as e:
            raise convert_db_exception(e)

        if row is None:
            return None
        return Site(token=row["token"], name=row["name"])

    async def list_sites(self, criteria: SearchCriteria) -> SearchResults[Site]:
        """List sites ordered by creation time."""
        try:
            async with database_connection(self.pool) as conn:
                total = await conn.fetchval("SELECT COUNT(*) FROM sites")
                rows = await conn.fetch(
                    """
                    SELECT token, name
                    FROM sites
                    ORDER BY created_at, token
                    LIMIT $1 OFFSET $2
                    """,
                    criteria.page_size,
                    criteria.offset,
                )
        except Exception as e:
            raise convert_db_exception(e)

        return SearchResults(
            results=[Site(token=row["token"], name=row["name"]) for row in rows],
            num_results=total or 0,
        )

    async def create_device_assignment(
        self, request: DeviceAssignmentCreateRequest
    ) -> DeviceAssignment:
        """Insert an assignment and point the device at it, in one transaction."""
        token = str(uuid4())

        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO device_assignments
                    (token, site_token, device_hardware_id, assignment_type)
                VALUES ($1, $2, $3, $4)
                RETURNING token, site_token, device_hardware_id, assignment_type, created_at
                """,
                token,
                request.site_token,
                request.device_hardware_id,
                request.assignment_type.value,
            )
            status = await conn.execute(
                "UPDATE devices SET assignment_token = $1 WHERE hardware_id = $2",
                token,
                request.device_hardware_id,
            )
            if status == "UPDATE 0":
                raise DeviceManagementError(
                    f"Device '{request.device_hardware_id}' not found for assignment",
                    recoverable=False,
                )

        logger.debug(
            f"Assigned device {request.device_hardware_id} to site {request.site_token}"
        )
        return DeviceAssignment(
            token=row["token"],
            site_token=row["site_token"],
            device_hardware_id=row["device_hardware_id"],
            assignment_type=AssignmentType(row["assignment_type"]),
            created_at=row["created_at"],
        )

    def _row_to_device(self, row: asyncpg.Record) -> Device:
        """Convert database row to Device."""
        metadata_json = row["metadata"]
        metadata = {}
        if metadata_json:
            if isinstance(metadata_json, dict):
                metadata = metadata_json
            elif isinstance(metadata_json, str):
                metadata = json.loads(metadata_json)

        return Device(
            hardware_id=row["hardware_id"],
            specification_token=row["specification_token"],
            assignment_token=row["assignment_token"],
            comments=row["comments"],
            metadata=metadata,
            created_at=row["created_at"],
        )
