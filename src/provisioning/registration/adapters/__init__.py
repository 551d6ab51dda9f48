"""Infrastructure adapters for device registration.

These adapters implement the port interfaces defined in the domain layer,
connecting the registration workflow to PostgreSQL, HTTP webhooks and logs.
"""

from .in_memory_device_management import InMemoryDeviceManagement
from .logging_notifier import LoggingRegistrationNotifier
from .postgres_device_management import PostgresDeviceManagement
from .webhook_notifier import WebhookRegistrationNotifier

__all__ = [
    "InMemoryDeviceManagement",
    "PostgresDeviceManagement",
    "LoggingRegistrationNotifier",
    "WebhookRegistrationNotifier",
]
