#!/usr/bin/env python3
"""
Script to register a new application for the KeyAuth API.

Usage:
    python scripts/create_application.py --name "My App" --owner techdavisk007
    python scripts/create_application.py --name "My App"  # Owner defaults to the main admin
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path to import keyauth modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from keyauth.config import settings
from keyauth.database import Database
from keyauth.core.exceptions import BusinessRejection
from keyauth.models.application import Application
from keyauth.services.application_service import ApplicationService


async def create_application(database: Database, name: str, owner: str) -> Application:
    """
    Register an application through the same path as the ``create_app`` action.

    Args:
        database: Connected store handle
        name: Application name
        owner: Identity recorded as the creator

    Returns:
        Created Application
    """
    return await database.run(ApplicationService.create_application, name, owner)


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Register a new application for the KeyAuth API"
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Application name (required, must be unique)"
    )
    parser.add_argument(
        "--owner",
        default=settings.MAIN_ADMIN_ID,
        help="User id recorded as the creator (defaults to the main admin)"
    )

    args = parser.parse_args()

    database = Database()
    if not await database.connect():
        print("Error: database connection failed", file=sys.stderr)
        sys.exit(1)

    try:
        application = await create_application(database, args.name, args.owner)
    except BusinessRejection as e:
        print(f"Error creating application: {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        await database.dispose()

    print("\n" + "=" * 70)
    print("APPLICATION CREATED SUCCESSFULLY")
    print("=" * 70)
    print(f"ID: {application.id}")
    print(f"Name: {application.name}")
    print(f"Owner: {application.created_by}")
    print(f"Created: {application.created_at}")
    print("\n" + "-" * 70)
    print(f"API Key: {application.api_key}")
    print("-" * 70)
    print('\nPass it as "api" in create_key and validate_key requests.')
    print("=" * 70 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
