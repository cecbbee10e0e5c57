"""Exceptions raised on the primary categorization path.

Only data-integrity problems are raised to callers. Provider failures and
"nothing matched" outcomes are absorbed inside the categorization tiers.
"""


class LedgerlyError(Exception):
    """Base class for Ledgerly errors."""


class UserNotFoundError(LedgerlyError):
    """Raised when an operation names a user that does not exist."""

    def __init__(self, user_id: int):
        super().__init__(f"User with ID {user_id} not found")
        self.user_id = user_id


class CategoryNotFoundError(LedgerlyError):
    """Raised when a category is missing or owned by another user."""

    def __init__(self, category_id: int, user_id=None):
        message = f"Category with ID {category_id} not found"
        if user_id is not None:
            message += f" for user {user_id}"
        super().__init__(message)
        self.category_id = category_id
        self.user_id = user_id


class TransactionNotFoundError(LedgerlyError):
    """Raised when a transaction is missing or owned by another user."""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction with ID '{transaction_id}' not found")
        self.transaction_id = transaction_id
