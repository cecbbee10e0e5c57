"""OpenAI provider implementations for categorization and embeddings."""

from typing import List, Optional
from pydantic import BaseModel
from openai import AsyncOpenAI
from llm.parsing import BatchResponse, parse_batch_response
from llm.providers.base import LLMProvider, EmbeddingProvider, CategoryChoice
from llm.prompts.loader import PromptManager
from models.transaction import TransactionData
from models.category import Category
from logger import get_logger

logger = get_logger("llm.openai")

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


# Pydantic model for structured output
class CategoryChoiceResponse(BaseModel):
    """Single transaction categorization result."""

    category: Optional[str]
    confidence: float


def format_upstream_category(upstream_category: Optional[List[str]]) -> str:
    if not upstream_category:
        return "N/A"
    return " > ".join(upstream_category)


class OpenAIProvider(LLMProvider):
    """OpenAI implementation using structured outputs for single transactions
    and line records for batches."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: float = 20.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Model to use (e.g., "gpt-4o-mini"). If None, uses prompt default.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured client (testing).
        """
        self.client = client or AsyncOpenAI(
            api_key=api_key, timeout=timeout, max_retries=1
        )
        self.model = model
        self.prompt_manager = PromptManager()

    async def choose_category(
        self, transaction: TransactionData, categories: List[Category]
    ) -> CategoryChoice:
        """Categorize one transaction using OpenAI structured outputs.

        Raises:
            ValueError: If the response cannot be parsed or is out of range.
            Exception: If OpenAI API call fails.
        """
        rendered_prompt = self.prompt_manager.render_prompt(
            "categorization",
            {
                "name": transaction.name,
                "merchant": transaction.merchant_name or "N/A",
                "amount": transaction.amount,
                "upstream_category": format_upstream_category(
                    transaction.upstream_category
                ),
                "categories": self._format_categories(categories),
            },
        )
        parameters = rendered_prompt["parameters"]
        model = self.model or parameters.get("model", "gpt-4o-mini")

        logger.debug(
            f"Using model: {model}, prompt version: {rendered_prompt['version']}"
        )

        response = await self.client.chat.completions.parse(
            model=model,
            messages=[
                {"role": "system", "content": rendered_prompt["system_prompt"]},
                {"role": "user", "content": rendered_prompt["user_prompt"]},
            ],
            temperature=parameters.get("temperature", 0.0),
            max_tokens=parameters.get("max_tokens", 200),
            response_format=CategoryChoiceResponse,
        )

        result = response.choices[0].message.parsed
        if result is None:
            raise ValueError("OpenAI returned null parsed response")

        return CategoryChoice(category=result.category, confidence=result.confidence)

    async def categorize_batch(
        self, transactions: List[TransactionData], categories: List[Category]
    ) -> BatchResponse:
        """Categorize a numbered batch of transactions in one request.

        Raises:
            Exception: If OpenAI API call fails.
        """
        if not transactions:
            return BatchResponse()

        logger.info(
            f"Calling OpenAI to categorize {len(transactions)} transaction(s) "
            f"against {len(categories)} categories"
        )

        rendered_prompt = self.prompt_manager.render_prompt(
            "batch_categorization",
            {
                "categories": self._format_categories(categories, with_type=True),
                "transactions": self._format_transactions(transactions),
            },
        )
        parameters = rendered_prompt["parameters"]
        model = self.model or parameters.get("model", "gpt-4o-mini")

        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": rendered_prompt["system_prompt"]},
                {"role": "user", "content": rendered_prompt["user_prompt"]},
            ],
            temperature=parameters.get("temperature", 0.1),
            max_tokens=parameters.get("max_tokens", 4000),
        )

        content = response.choices[0].message.content
        return parse_batch_response(content, len(transactions))

    def _format_categories(
        self, categories: List[Category], with_type: bool = False
    ) -> str:
        """Format categories for the prompt."""
        lines = []
        for cat in categories:
            kind = f" ({'income' if cat.is_income else 'expense'})" if with_type else ""
            desc = f" - {cat.description}" if cat.description else ""
            lines.append(f"- {cat.name}{kind}{desc}")

        return "\n".join(lines)

    def _format_transactions(self, transactions: List[TransactionData]) -> str:
        """Format numbered transactions to categorize."""
        lines = []
        for number, txn in enumerate(transactions, start=1):
            lines.append(
                f"{number}. Name: '{txn.name}', "
                f"Merchant: '{txn.merchant_name or 'N/A'}', "
                f"Amount: ${txn.amount}, "
                f"Bank category: {format_upstream_category(txn.upstream_category)}"
            )

        return "\n".join(lines)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI embeddings endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_EMBEDDING_MODEL,
        timeout: float = 20.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = client or AsyncOpenAI(
            api_key=api_key, timeout=timeout, max_retries=1
        )
        self.model = model

    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)
