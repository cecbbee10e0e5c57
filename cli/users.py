#!/usr/bin/env python3

import asyncio
import sys
from logger import get_logger

logger = get_logger()


def cmd_create(args, services):
    """Create a user."""
    try:
        user = asyncio.run(services.users.create(args.email, args.display_name))
    except Exception as e:
        logger.error(f"Error creating user: {e}")
        sys.exit(1)

    logger.info(f"✓ User created with ID: {user.id}")


def setup_parser(subparsers):
    """Setup users subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser("users", help="Manage users")
    users_subparsers = parser.add_subparsers(
        title="subcommands", dest="subcommand", required=True
    )

    create_parser = users_subparsers.add_parser("create", help="Create a user")
    create_parser.add_argument("email", help="Email address (unique)")
    create_parser.add_argument("--display-name", default=None, help="Display name")
    create_parser.set_defaults(func=cmd_create)
