#!/usr/bin/env python3

import asyncio
import sys
from decimal import Decimal, InvalidOperation
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List a user's categories."""
    categories = asyncio.run(services.categories.find_all(args.user_id))

    if not categories:
        logger.info("No categories found.")
        return

    logger.info("\nCategories:")
    logger.info("=" * 80)
    for category in categories:
        kind = "income" if category.is_income else "expense"
        logger.info(f"ID: {category.id}")
        logger.info(f"Name: {category.name} ({kind})")
        if category.budget_limit is not None:
            logger.info(f"Monthly budget: ${category.budget_limit}")
        if category.description:
            logger.info(f"Description: {category.description}")
        logger.info("-" * 80)

    logger.info(f"\nTotal categories: {len(categories)}")


def cmd_create(args, services):
    """Create a new category for a user."""
    budget_limit = None
    if args.budget_limit:
        try:
            budget_limit = Decimal(args.budget_limit)
        except InvalidOperation:
            logger.error("Budget limit must be a number.")
            sys.exit(1)

    try:
        category = asyncio.run(
            services.categories.create(
                args.user_id,
                args.name,
                is_income=args.income,
                budget_limit=budget_limit,
                color=args.color,
                description=args.description,
            )
        )
    except Exception as e:
        logger.error(f"Error creating category: {e}")
        sys.exit(1)

    logger.info(f"\n✓ Category created successfully with ID: {category.id}")
    logger.info(f"  Name: {category.name}")


def cmd_delete(args, services):
    """Delete a category by ID."""
    category = asyncio.run(services.categories.find(args.category_id))
    if not category or category.user_id != args.user_id:
        logger.error(f"Category with ID {args.category_id} not found.")
        sys.exit(1)

    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    logger.info("  Its transactions will become uncategorized and its rules removed.")

    confirm = (
        input("\nAre you sure you want to delete this category? (yes/no): ")
        .strip()
        .lower()
    )
    if confirm != "yes":
        logger.info("Deletion cancelled.")
        return

    if asyncio.run(services.categories.delete(category.id)):
        logger.info(f"✓ Category '{category.name}' deleted successfully.")
    else:
        logger.error("Failed to delete category.")
        sys.exit(1)


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Manage a user's transaction categories",
    )
    parser.add_argument("--user-id", type=int, required=True, help="Owning user ID")

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    list_parser = categories_subparsers.add_parser("list", help="List categories")
    list_parser.set_defaults(func=cmd_list)

    create_parser = categories_subparsers.add_parser(
        "create", help="Create a new category"
    )
    create_parser.add_argument("name", help="Category name (e.g., Groceries)")
    create_parser.add_argument(
        "--income", action="store_true", help="Mark as an income category"
    )
    create_parser.add_argument("--budget-limit", help="Monthly budget limit")
    create_parser.add_argument("--color", default="#6B7280", help="Hex color")
    create_parser.add_argument("--description", default=None, help="Description")
    create_parser.set_defaults(func=cmd_create)

    delete_parser = categories_subparsers.add_parser(
        "delete", help="Delete a category"
    )
    delete_parser.add_argument("category_id", type=int, help="Category ID to delete")
    delete_parser.set_defaults(func=cmd_delete)
