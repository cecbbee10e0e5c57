"""Helper utilities for tests."""

import asyncio
from datetime import date
from decimal import Decimal
from pathlib import Path
import sqlite3

from cli.migrate import apply_pending_migrations
from models.transaction import Transaction


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    apply_pending_migrations(conn, migrations_dir)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def make_transaction(
    user_id: int,
    name: str,
    amount: str = "10.00",
    merchant_name=None,
    upstream_category=None,
    transaction_date: date = date(2025, 1, 15),
) -> Transaction:
    """Build a Transaction with a checksum ID derived from its fields."""
    return Transaction.create_with_checksum(
        raw_data=f"{user_id}|{name}|{amount}|{merchant_name}|{transaction_date}",
        user_id=user_id,
        name=name,
        amount=Decimal(amount),
        transaction_date=transaction_date,
        merchant_name=merchant_name,
        upstream_category=upstream_category,
    )
