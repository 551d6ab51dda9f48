#!/usr/bin/env python3
"""Exception Hierarchy for the Device Provisioning Service.

This module provides a structured exception hierarchy for handling errors
raised while registering devices, talking to the device-management backend,
and delivering registration outcomes.

Design Principles:
    - All exceptions inherit from ProvisioningError base class
    - Exceptions preserve context (original error, timestamps, details)
    - Exceptions are categorized by recoverability

Exception Hierarchy:
    ProvisioningError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── RegistrationError (per-request failure)
    ├── DeviceManagementError (backend failure)
    │   ├── DeviceConflictError
    │   └── DatabaseError
    │       ├── ConnectionPoolError
    │       ├── TransactionError
    │       └── IntegrityError
    └── NotificationError (outcome delivery failed)
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class ProvisioningError(Exception):
    """Base exception for all provisioning errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REGISTRATION_ERROR")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(ProvisioningError):
    """Raised when configuration is missing or invalid.

    Raised at service start, e.g. when auto-assignment is enabled but no
    usable site exists. These errors require fixing configuration before retry.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            recoverable=False,
            **kwargs,
        )


# ============================================
# Registration Errors
# ============================================

class RegistrationError(ProvisioningError):
    """Raised when a single registration request cannot be processed.

    Wraps backend and notification failures. Not retried internally; the
    caller decides on retry or dead-lettering.

    Attributes:
        hardware_id: Hardware identifier of the request that failed
    """

    def __init__(
        self,
        message: str,
        hardware_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if hardware_id:
            details["hardware_id"] = hardware_id
        kwargs.setdefault("recoverable", False)
        super().__init__(
            message,
            code="REGISTRATION_ERROR",
            details=details,
            **kwargs,
        )
        self.hardware_id = hardware_id


# ============================================
# Backend Errors
# ============================================

class DeviceManagementError(ProvisioningError):
    """Base class for device-management backend failures."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class DeviceConflictError(DeviceManagementError):
    """Raised when a device with the same hardware id already exists.

    Two concurrent registrations for an unseen device can both try to create
    it; the backend rejects the second one with this error.
    """

    def __init__(
        self,
        hardware_id: str,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["hardware_id"] = hardware_id
        super().__init__(
            f"Device '{hardware_id}' already exists",
            code="DEVICE_CONFLICT",
            details=details,
            **kwargs,
        )
        self.hardware_id = hardware_id


class DatabaseError(DeviceManagementError):
    """Base class for database-related errors."""


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool is exhausted or unavailable."""

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraint is violated."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,  # Usually need to fix data
            **kwargs,
        )


# ============================================
# Notification Errors
# ============================================

class NotificationError(ProvisioningError):
    """Raised when a registration outcome cannot be delivered.

    Attributes:
        status_code: HTTP status returned by the receiver, if any
    """

    def __init__(
        self,
        message: str = "Failed to deliver registration outcome",
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code:
            details["status_code"] = status_code
        kwargs.setdefault("recoverable", True)
        super().__init__(
            message,
            code="NOTIFICATION_ERROR",
            details=details,
            **kwargs,
        )
        self.status_code = status_code


# ============================================
# Exports
# ============================================

__all__ = [
    # Base
    "ProvisioningError",
    # Configuration
    "ConfigurationError",
    # Registration
    "RegistrationError",
    # Backend
    "DeviceManagementError",
    "DeviceConflictError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
    # Notification
    "NotificationError",
]
