#!/usr/bin/env python3
"""Device Registration CLI.

Command-line access to the registration workflow against the configured
PostgreSQL backend. Useful for validating auto-assignment configuration
and for registering a device by hand.

Environment Variables:
    - DATABASE_URL: PostgreSQL connection string (required)
    - REGISTRATION_AUTO_ASSIGN_SITE, REGISTRATION_AUTO_ASSIGN_SITE_TOKEN,
      REGISTRATION_ALLOW_NEW_DEVICES: registration policy
    - REGISTRATION_WEBHOOK_URL: deliver outcomes to a webhook (default: log)

Example Usage:
    $ python main.py check                                   # Validate configuration
    $ python main.py register DEV-1 --spec SPEC-A            # Register a device
    $ python main.py register DEV-1 --spec SPEC-A --meta fw=1.2 --meta hw=rev-b
"""
import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.provisioning.exceptions import ConfigurationError, RegistrationError
from src.provisioning.registration.api.dependencies import (
    close_registration,
    init_registration,
)
from src.provisioning.registration.config import get_database_url
from src.provisioning.registration.domain.entities import RegistrationRequest


def parse_metadata(pairs: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE pairs into a metadata dict."""
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid metadata {pair!r}, expected KEY=VALUE")
        metadata[key] = value
    return metadata


async def run(args: argparse.Namespace) -> int:
    if not get_database_url():
        print("[Main] DATABASE_URL is required")
        return 2

    try:
        manager = await init_registration()
    except ConfigurationError as e:
        print(f"[Main] Configuration invalid: {e.message}")
        return 1

    try:
        print(
            f"[Main] Registration manager started "
            f"(auto_assign_site={manager.auto_assign_site}, "
            f"site_token={manager.auto_assign_site_token})"
        )
        if args.command == "check":
            return 0

        request = RegistrationRequest(
            hardware_id=args.hardware_id,
            specification_token=args.spec,
            site_token=args.site,
            metadata=parse_metadata(args.meta),
        )
        try:
            outcome = await manager.handle_registration(request)
        except RegistrationError as e:
            print(f"[Main] Registration failed: {e}")
            return 1

        print(f"[Main] {outcome.outcome.value} for {outcome.hardware_id}")
        print(f"  New registration:   {outcome.is_new_registration}")
        print(f"  Device created:     {outcome.device_created}")
        print(f"  Assignment created: {outcome.assignment_created}")
        return 0 if outcome.is_ack else 1

    finally:
        await close_registration()


def main():
    parser = argparse.ArgumentParser(
        description="Register devices and validate registration configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py check                               # Validate auto-assign configuration
  python main.py register DEV-1 --spec SPEC-A        # Register a device
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Start the registration manager and exit")

    register = subparsers.add_parser("register", help="Register one device")
    register.add_argument("hardware_id", help="Hardware identifier")
    register.add_argument("--spec", required=True, help="Specification token")
    register.add_argument("--site", help="Site token")
    register.add_argument(
        "--meta",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Device metadata (repeatable)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "register":
        try:
            parse_metadata(args.meta)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
