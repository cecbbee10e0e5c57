from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional
import hashlib
import json

from models.categorization import CategorizationMethod


@dataclass
class TransactionData:
    """The fields of a transaction that categorization looks at."""

    name: str
    amount: Decimal  # positive = expense/debit, negative = income/credit
    merchant_name: Optional[str] = None
    upstream_category: Optional[List[str]] = None  # raw hint from the bank feed

    @property
    def merchant_text(self) -> str:
        """Merchant name when the feed supplies one, else the display name."""
        if self.merchant_name and self.merchant_name.strip():
            return self.merchant_name
        return self.name or ""

    @property
    def is_income(self) -> bool:
        return self.amount < 0


@dataclass
class Transaction:
    id: str  # checksum of raw upstream transaction data
    user_id: int
    name: str
    amount: Decimal
    transaction_date: date
    merchant_name: Optional[str] = None
    upstream_category: Optional[List[str]] = None
    category_id: Optional[int] = None
    categorization_method: Optional[CategorizationMethod] = None
    categorization_confidence: float = 0.0

    @classmethod
    def create_with_checksum(
        cls,
        raw_data: str,
        user_id: int,
        name: str,
        amount: Decimal,
        transaction_date: date,
        merchant_name: Optional[str] = None,
        upstream_category: Optional[List[str]] = None,
    ) -> "Transaction":
        """Create a Transaction with auto-generated checksum ID."""
        transaction_id = hashlib.sha256(raw_data.encode("utf-8")).hexdigest()
        return cls(
            id=transaction_id,
            user_id=user_id,
            name=name,
            amount=amount,
            transaction_date=transaction_date,
            merchant_name=merchant_name,
            upstream_category=upstream_category,
        )

    def to_data(self) -> TransactionData:
        """Extract the categorization input for this transaction."""
        return TransactionData(
            name=self.name,
            amount=self.amount,
            merchant_name=self.merchant_name,
            upstream_category=self.upstream_category,
        )

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for database storage."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "merchant_name": self.merchant_name,
            "amount": str(self.amount),
            "transaction_date": self.transaction_date.isoformat(),
            "upstream_category": (
                json.dumps(self.upstream_category)
                if self.upstream_category
                else None
            ),
            "category_id": self.category_id,
            "categorization_method": (
                self.categorization_method.value
                if self.categorization_method
                else None
            ),
            "categorization_confidence": self.categorization_confidence,
        }
