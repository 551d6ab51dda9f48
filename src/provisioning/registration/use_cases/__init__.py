"""Use cases layer - Business logic orchestration for device registration.

Use cases depend only on ports, not concrete implementations.
"""

from .registration_manager import HardwareIdLocks, RegistrationManager

__all__ = [
    "HardwareIdLocks",
    "RegistrationManager",
]
