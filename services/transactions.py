"""Transaction service for database operations."""

import asyncio
import json
from typing import List, Optional
from datetime import date
from decimal import Decimal
from models.categorization import CategorizationMethod
from models.transaction import Transaction

# SQL Query Constants
_TRANSACTION_FIELDS = """id, user_id, name, merchant_name, amount, transaction_date,
       upstream_category, category_id, categorization_method, categorization_confidence"""

# Automatically generate placeholders from field count
_TRANSACTION_INSERT_PLACEHOLDERS = (
    f"({', '.join(['?'] * len(_TRANSACTION_FIELDS.split(',')))})"
)


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db_manager):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    async def create(self, transaction: Transaction) -> Transaction:
        """Create a single transaction in the database.

        Args:
            transaction: Transaction object to insert.

        Returns:
            The same Transaction object (already has its ID from checksum).

        Raises:
            Exception: If transaction creation fails (e.g., duplicate ID, unknown user).
        """
        return await asyncio.to_thread(self._create, transaction)

    async def bulk_create(self, transactions: List[Transaction]) -> int:
        """Insert many transactions, skipping ones already imported.

        Args:
            transactions: List of Transaction objects to insert.

        Returns:
            Number of transactions actually inserted (duplicates are skipped).
        """
        if not transactions:
            return 0
        return await asyncio.to_thread(self._bulk_create, list(transactions))

    async def find(self, transaction_id: str) -> Optional[Transaction]:
        """Get a single transaction by ID.

        Args:
            transaction_id: The transaction checksum ID.

        Returns:
            Transaction object if found, None otherwise.
        """
        return await asyncio.to_thread(self._find, transaction_id)

    async def find_by_ids(
        self, user_id: int, transaction_ids: List[str]
    ) -> List[Transaction]:
        """Get the subset of `transaction_ids` owned by `user_id`."""
        if not transaction_ids:
            return []
        return await asyncio.to_thread(
            self._find_by_ids, user_id, list(transaction_ids)
        )

    async def find_uncategorized(
        self, user_id: int, limit: Optional[int] = None
    ) -> List[Transaction]:
        """Get a user's transactions that have no category.

        Args:
            user_id: Owner of the transactions.
            limit: Optional maximum number of rows.

        Returns:
            List of Transaction objects, oldest first.
        """
        return await asyncio.to_thread(self._find_uncategorized, user_id, limit)

    async def find_unprocessed(self, user_id: int) -> List[Transaction]:
        """Get transactions the categorizer has never looked at.

        These have neither a category nor a categorization method, which is
        the state a freshly imported transaction is in.
        """
        return await asyncio.to_thread(self._find_unprocessed, user_id)

    async def update_categorization(
        self,
        transaction_ids: List[str],
        category_id: Optional[int],
        method: Optional[CategorizationMethod],
        confidence: float,
    ) -> int:
        """Write the categorization outcome onto one or more transactions.

        Args:
            transaction_ids: Transactions to update.
            category_id: New category, or None to leave uncategorized.
            method: How the category was chosen, or None.
            confidence: Confidence in [0, 1].

        Returns:
            Number of transactions updated.
        """
        if not transaction_ids:
            return 0
        return await asyncio.to_thread(
            self._update_categorization,
            list(transaction_ids),
            category_id,
            method,
            confidence,
        )

    def _create(self, transaction: Transaction) -> Transaction:
        with self.db_manager.connect() as conn:
            conn.execute(
                f"""
                INSERT INTO transactions ({_TRANSACTION_FIELDS})
                VALUES {_TRANSACTION_INSERT_PLACEHOLDERS}
                """,
                self._transaction_to_row(transaction),
            )
            conn.commit()

            return transaction

    def _bulk_create(self, transactions: List[Transaction]) -> int:
        with self.db_manager.connect() as conn:
            before = conn.total_changes
            conn.executemany(
                f"""
                INSERT OR IGNORE INTO transactions ({_TRANSACTION_FIELDS})
                VALUES {_TRANSACTION_INSERT_PLACEHOLDERS}
                """,
                [self._transaction_to_row(t) for t in transactions],
            )
            conn.commit()

            return conn.total_changes - before

    def _find(self, transaction_id: str) -> Optional[Transaction]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE id = ?
                """,
                (transaction_id,),
            ).fetchone()

            if row:
                return self._row_to_transaction(row)
            return None

    def _find_by_ids(self, user_id: int, transaction_ids: List[str]) -> List[Transaction]:
        placeholders = ", ".join(["?"] * len(transaction_ids))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE user_id = ? AND id IN ({placeholders})
                ORDER BY transaction_date, id
                """,
                (user_id, *transaction_ids),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def _find_uncategorized(
        self, user_id: int, limit: Optional[int]
    ) -> List[Transaction]:
        query = f"""
            SELECT {_TRANSACTION_FIELDS}
            FROM transactions
            WHERE user_id = ? AND category_id IS NULL
            ORDER BY transaction_date, id
        """
        params: tuple = (user_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (user_id, limit)

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def _find_unprocessed(self, user_id: int) -> List[Transaction]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE user_id = ?
                  AND category_id IS NULL
                  AND categorization_method IS NULL
                ORDER BY transaction_date, id
                """,
                (user_id,),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def _update_categorization(
        self,
        transaction_ids: List[str],
        category_id: Optional[int],
        method: Optional[CategorizationMethod],
        confidence: float,
    ) -> int:
        with self.db_manager.connect() as conn:
            cursor = conn.executemany(
                """
                UPDATE transactions
                SET category_id = ?, categorization_method = ?, categorization_confidence = ?
                WHERE id = ?
                """,
                [
                    (category_id, method.value if method else None, confidence, tid)
                    for tid in transaction_ids
                ],
            )
            conn.commit()

            return cursor.rowcount

    def _transaction_to_row(self, transaction: Transaction) -> tuple:
        data = transaction.to_dict()
        return tuple(data[field.strip()] for field in _TRANSACTION_FIELDS.split(","))

    def _row_to_transaction(self, row: tuple) -> Transaction:
        """Convert a database row to a Transaction object."""
        return Transaction(
            id=row[0],
            user_id=row[1],
            name=row[2],
            merchant_name=row[3],
            amount=Decimal(str(row[4])),
            transaction_date=date.fromisoformat(row[5]),
            upstream_category=json.loads(row[6]) if row[6] else None,
            category_id=row[7],
            categorization_method=CategorizationMethod(row[8]) if row[8] else None,
            categorization_confidence=row[9] or 0.0,
        )
