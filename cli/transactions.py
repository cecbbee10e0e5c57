#!/usr/bin/env python3

import asyncio
import sys
from categorization import CategorizationEngine
from errors import LedgerlyError, TransactionNotFoundError
from logger import get_logger

logger = get_logger()


def cmd_uncategorized(args, services):
    """List a user's uncategorized transactions."""
    transactions = asyncio.run(
        services.transactions.find_uncategorized(args.user_id, args.limit)
    )

    if not transactions:
        logger.info("No uncategorized transactions.")
        return

    for txn in transactions:
        merchant = f" [{txn.merchant_name}]" if txn.merchant_name else ""
        logger.info(
            f"{txn.id[:12]}  {txn.transaction_date}  {txn.amount:>10}  {txn.name}{merchant}"
        )
    logger.info(f"\nTotal: {len(transactions)}")


async def _categorize_one(services, engine, user_id: int, transaction_id: str):
    transaction = await services.transactions.find(transaction_id)
    if transaction is None or transaction.user_id != user_id:
        raise TransactionNotFoundError(transaction_id)
    return await engine.categorize_and_store(transaction_id)


def cmd_categorize(args, services):
    """Auto-categorize one transaction, or all of a user's new transactions."""
    engine = CategorizationEngine.from_config(services)

    try:
        if args.transaction_id:
            result = asyncio.run(
                _categorize_one(services, engine, args.user_id, args.transaction_id)
            )
            if result.is_empty:
                logger.info("Transaction left uncategorized.")
            else:
                logger.info(
                    f"✓ {result.category_name} "
                    f"(method: {result.method.value}, confidence: {result.confidence:.2f})"
                )
        else:
            counts = asyncio.run(engine.categorize_new_transactions(args.user_id))
            logger.info(f"✓ Categorized new transactions: {counts}")
    except LedgerlyError as e:
        logger.error(str(e))
        sys.exit(1)


async def _resolve_category(services, user_id: int, category_input: str):
    try:
        category = await services.categories.find(int(category_input))
    except ValueError:
        # Not a number, try as category name
        category = await services.categories.find_by_name(user_id, category_input)

    if category is None or category.user_id != user_id:
        return None
    return category


async def _set_category(services, engine, args):
    category = await _resolve_category(services, args.user_id, args.category)
    if category is None:
        return None
    await engine.set_category(args.user_id, args.transaction_id, category.id)
    return category


def cmd_set_category(args, services):
    """Set the category for a transaction and learn from it.

    The category may be given by ID or by name.
    """
    engine = CategorizationEngine.from_config(services)
    try:
        category = asyncio.run(_set_category(services, engine, args))
    except LedgerlyError as e:
        logger.error(str(e))
        sys.exit(1)

    if category is None:
        logger.error(f"Category '{args.category}' not found.")
        logger.info("Use 'python -m cli categories --user-id N list' to see categories.")
        sys.exit(1)

    logger.info("✓ Transaction categorized successfully")
    logger.info(f"  Category: {category.name}")


async def _suggest(engine, args):
    # Suggesting and applying share one loop; async provider clients are bound to it
    result = await engine.batch_suggest(args.user_id, args.limit)
    accepted = None
    if args.apply and result.suggestions:
        accepted = await engine.accept_suggestions(args.user_id, result.suggestions)
    return result, accepted


def cmd_suggest(args, services):
    """Show batch suggestions for uncategorized transactions."""
    engine = CategorizationEngine.from_config(services)

    try:
        result, accepted = asyncio.run(_suggest(engine, args))
    except LedgerlyError as e:
        logger.error(str(e))
        sys.exit(1)

    if not result.suggestions:
        logger.info("No uncategorized transactions.")
        return

    for s in result.suggestions:
        suggestion = (
            f"{s.category_name} ({s.method.value}, {s.confidence:.2f})"
            if s.category_id is not None
            else "-"
        )
        logger.info(
            f"{s.transaction_id[:12]}  {s.amount:>10}  {s.transaction_name}  => {suggestion}"
        )

    if result.new_category_recommendations:
        logger.info("\nSuggested new categories:")
        for rec in result.new_category_recommendations:
            kind = "income" if rec.is_income else "expense"
            reason = f" - {rec.reason}" if rec.reason else ""
            logger.info(
                f"  {rec.name} ({kind}), {len(rec.transaction_ids)} transaction(s){reason}"
            )

    logger.info(f"\nStats: {result.stats}")

    if accepted is not None:
        logger.info(f"✓ Applied {accepted} suggestion(s)")


def setup_parser(subparsers):
    """Setup transactions subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "transactions",
        help="Categorize and review transactions",
        description="Categorize and review a user's transactions",
    )
    parser.add_argument("--user-id", type=int, required=True, help="Owning user ID")

    txn_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available transaction commands",
        dest="subcommand",
        required=True,
    )

    uncategorized_parser = txn_subparsers.add_parser(
        "uncategorized", help="List uncategorized transactions"
    )
    uncategorized_parser.add_argument("--limit", type=int, default=None)
    uncategorized_parser.set_defaults(func=cmd_uncategorized)

    categorize_parser = txn_subparsers.add_parser(
        "categorize", help="Auto-categorize new transactions"
    )
    categorize_parser.add_argument(
        "--transaction-id", default=None, help="Only categorize this transaction"
    )
    categorize_parser.set_defaults(func=cmd_categorize)

    set_category_parser = txn_subparsers.add_parser(
        "set-category", help="Manually set a transaction's category"
    )
    set_category_parser.add_argument("transaction_id", help="Transaction ID")
    set_category_parser.add_argument("category", help="Category ID or name")
    set_category_parser.set_defaults(func=cmd_set_category)

    suggest_parser = txn_subparsers.add_parser(
        "suggest", help="Suggest categories for uncategorized transactions"
    )
    suggest_parser.add_argument("--limit", type=int, default=50)
    suggest_parser.add_argument(
        "--apply", action="store_true", help="Accept all suggestions"
    )
    suggest_parser.set_defaults(func=cmd_suggest)
