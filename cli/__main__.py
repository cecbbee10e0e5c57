#!/usr/bin/env python3
"""
Ledgerly CLI - command-line interface for categories and transaction categorization.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    users        Manage users
    categories   Manage a user's categories
    transactions Categorize and review transactions
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli users create me@example.com
    python -m cli categories create --user-id 1 Groceries
    python -m cli transactions categorize --user-id 1
    python -m cli transactions suggest --user-id 1 --limit 20
"""

import sys
import argparse
from cli import categories, migrate, transactions, users
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Ledgerly - Automatic transaction categorization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    # Register each command's subparser
    users.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    transactions.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            # Migrate commands need db_manager for raw database operations
            if args.command == "migrate":
                args.func(args, DatabaseManager(config))
            else:
                args.func(args, Services(config))
        except Exception as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
