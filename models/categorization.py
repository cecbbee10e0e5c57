"""Categorization outcome models."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class CategorizationMethod(str, Enum):
    """How a transaction's category was assigned."""

    RULE = "rule"
    VECTOR = "vector"
    LLM = "llm"
    MANUAL = "manual"


@dataclass(frozen=True)
class CategorizationResult:
    """Outcome of categorizing a single transaction.

    An empty result (no category, no method, confidence 0) means the
    transaction stays uncategorized.
    """

    category_id: Optional[int]
    category_name: Optional[str]
    method: Optional[CategorizationMethod]
    confidence: float

    @classmethod
    def empty(cls) -> "CategorizationResult":
        return cls(category_id=None, category_name=None, method=None, confidence=0.0)

    @property
    def is_empty(self) -> bool:
        return self.category_id is None

    def to_dict(self) -> dict:
        """Shape handed to the route layer."""
        return {
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "method": self.method.value if self.method else None,
            "confidence": self.confidence,
        }


@dataclass
class BatchSuggestion:
    """A suggested category for one uncategorized transaction."""

    transaction_id: str
    transaction_name: str
    amount: Decimal
    category_id: Optional[int]
    category_name: Optional[str]
    method: Optional[CategorizationMethod]
    confidence: float

    def to_dict(self) -> dict:
        return {
            "transactionId": self.transaction_id,
            "transactionName": self.transaction_name,
            "amount": str(self.amount),
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "method": self.method.value if self.method else None,
            "confidence": self.confidence,
        }


@dataclass
class NewCategoryRecommendation:
    """A category the model thinks the user is missing."""

    name: str
    is_income: bool
    transaction_ids: List[str]
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "isIncome": self.is_income,
            "transactionIds": list(self.transaction_ids),
            "reason": self.reason,
        }


def empty_stats() -> Dict[str, int]:
    return {"rule": 0, "vector": 0, "llm": 0, "none": 0, "total": 0}


@dataclass
class BatchSuggestResult:
    """Everything batch_suggest returns for the review screen."""

    suggestions: List[BatchSuggestion] = field(default_factory=list)
    new_category_recommendations: List[NewCategoryRecommendation] = field(
        default_factory=list
    )
    stats: Dict[str, int] = field(default_factory=empty_stats)

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "newCategoryRecommendations": [
                r.to_dict() for r in self.new_category_recommendations
            ],
            "stats": dict(self.stats),
        }
