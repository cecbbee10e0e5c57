"""Base provider interfaces for LLM and embedding implementations."""

from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass
from llm.parsing import BatchResponse
from models.transaction import TransactionData
from models.category import Category


@dataclass
class CategoryChoice:
    """The model's pick for a single transaction.

    `category` is None when the model declines to choose.
    """

    category: Optional[str]
    confidence: float

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence}")


class LLMProvider(ABC):
    """Abstract base class for generative model providers.

    Each provider can implement categorization in its own optimal way,
    using provider-specific features like structured outputs.
    """

    @abstractmethod
    async def choose_category(
        self, transaction: TransactionData, categories: List[Category]
    ) -> CategoryChoice:
        """Pick the best of the user's categories for one transaction.

        Args:
            transaction: Transaction to categorize.
            categories: The user's categories (non-empty).

        Returns:
            CategoryChoice naming one category (by name) or declining.

        Raises:
            Exception: If the API call fails or the output is malformed.
        """

    @abstractmethod
    async def categorize_batch(
        self, transactions: List[TransactionData], categories: List[Category]
    ) -> BatchResponse:
        """Categorize several transactions in one request.

        Transactions are referred to by their 1-based position in
        `transactions`. The response may also propose new categories.

        Raises:
            Exception: If the API call fails.
        """


class EmbeddingProvider(ABC):
    """Abstract base class for text embedding providers."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Compute a semantic embedding for `text`.

        Raises:
            Exception: If the API call fails.
        """
