#!/usr/bin/env python3
"""Unit tests for the provisioning exception hierarchy."""
from src.provisioning.exceptions import (
    ConfigurationError,
    DatabaseError,
    DeviceConflictError,
    DeviceManagementError,
    IntegrityError,
    NotificationError,
    ProvisioningError,
    RegistrationError,
)


class TestProvisioningError:
    def test_str_includes_code_and_details(self):
        error = ProvisioningError("Something failed", code="X", details={"a": 1})

        assert str(error) == "[X] Something failed (a=1)"

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = ProvisioningError("wrapped", cause=cause)

        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_to_dict(self):
        data = RegistrationError("failed", hardware_id="DEV-1").to_dict()

        assert data["error_type"] == "RegistrationError"
        assert data["code"] == "REGISTRATION_ERROR"
        assert data["details"] == {"hardware_id": "DEV-1"}
        assert data["recoverable"] is False


class TestHierarchy:
    def test_configuration_error(self):
        error = ConfigurationError("no site", details={"site_token": "SITE-9"})

        assert isinstance(error, ProvisioningError)
        assert error.recoverable is False
        assert error.code == "CONFIGURATION_ERROR"
        assert error.details == {"site_token": "SITE-9"}

    def test_device_conflict(self):
        error = DeviceConflictError("DEV-1")

        assert isinstance(error, DeviceManagementError)
        assert error.code == "DEVICE_CONFLICT"
        assert error.recoverable is True
        assert "DEV-1" in error.message

    def test_integrity_error_not_recoverable(self):
        error = IntegrityError(constraint="unique")

        assert isinstance(error, DatabaseError)
        assert error.recoverable is False

    def test_notification_error(self):
        error = NotificationError(status_code=502)

        assert error.details["status_code"] == 502
        assert error.recoverable is True
