"""Logging adapter for registration outcomes.

Default notifier when no webhook is configured.
"""

import logging

from ..domain.ports import IRegistrationNotifier

logger = logging.getLogger(__name__)


class LoggingRegistrationNotifier(IRegistrationNotifier):
    """Writes each registration outcome to the log."""

    async def send_registration_ack(self, hardware_id: str, new_registration: bool) -> None:
        logger.info(f"Registration ack for {hardware_id} (new={new_registration})")

    async def send_invalid_specification(self, hardware_id: str) -> None:
        logger.warning(f"Invalid specification for {hardware_id}")

    async def send_site_token_required(self, hardware_id: str) -> None:
        logger.warning(f"Site token required for {hardware_id}")
