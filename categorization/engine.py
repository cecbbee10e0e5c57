"""Categorization engine: the operations the application layer calls."""

from typing import Dict, List, Optional
from categorization.batch import BatchSuggester
from categorization.cascade import Cascade
from categorization.learning import LearningLoop
from categorization.matchers import CommunityMatcher, GenerativeMatcher, RuleMatcher
from config import CategorizationSettings
from errors import CategoryNotFoundError, TransactionNotFoundError, UserNotFoundError
from llm import get_embedding_provider, get_llm_provider
from models.categorization import (
    BatchSuggestion,
    BatchSuggestResult,
    CategorizationMethod,
    CategorizationResult,
)
from models.transaction import Transaction, TransactionData
from logger import get_logger

logger = get_logger("categorization")


class CategorizationEngine:
    """Categorizes transactions and learns from user confirmations.

    Args:
        services: Services container (stores for users, categories,
                  transactions, rules and the community corpus).
        llm_provider: Generative model provider, or None to disable Tier 3.
        embedding_provider: Embedding provider, or None; Tier 2 then only
                            works for merchants already in the corpus.
        settings: Thresholds and learning constants. Defaults to
                  services.config.categorization.
    """

    def __init__(
        self,
        services,
        llm_provider=None,
        embedding_provider=None,
        settings: Optional[CategorizationSettings] = None,
    ):
        config = services.config
        self.services = services
        self.settings = settings or config.categorization
        timeout = config.llm_timeout_seconds

        self.rule_matcher = RuleMatcher(services.rules, services.categories)
        self.vector_matcher = CommunityMatcher(
            services.community,
            services.categories,
            embedder=embedding_provider,
            timeout=timeout,
            min_similarity=self.settings.vector_min_similarity,
            limit=self.settings.vector_limit,
        )
        self.llm_matcher = GenerativeMatcher(
            services.categories,
            llm=llm_provider,
            timeout=timeout,
            batch_timeout=config.llm_batch_timeout_seconds,
        )

        self.cascade = Cascade(
            self.rule_matcher,
            self.vector_matcher,
            self.llm_matcher,
            rule_accept=self.settings.rule_accept,
            vector_accept=self.settings.vector_accept,
            llm_accept=self.settings.llm_accept,
        )
        self.batch = BatchSuggester(
            services.transactions,
            services.categories,
            Cascade(
                self.rule_matcher,
                self.vector_matcher,
                None,
                rule_accept=self.settings.batch_rule_accept,
                vector_accept=self.settings.batch_vector_accept,
            ),
            self.llm_matcher,
            batch_size=self.settings.llm_batch_size,
        )
        self.learning = LearningLoop(
            services.rules,
            services.categories,
            services.community,
            embedder=embedding_provider,
            settings=self.settings,
            timeout=timeout,
        )

    @classmethod
    def from_config(cls, services) -> "CategorizationEngine":
        """Build an engine with providers chosen by the application config.

        A misconfigured provider is logged and left out rather than raised;
        categorization then runs with the remaining tiers.
        """
        try:
            llm_provider = get_llm_provider(services.config)
            embedding_provider = get_embedding_provider(services.config)
        except Exception as e:
            logger.error(f"Failed to initialize LLM providers: {e}")
            llm_provider = embedding_provider = None

        return cls(
            services, llm_provider=llm_provider, embedding_provider=embedding_provider
        )

    async def categorize_transaction(
        self, user_id: int, transaction: TransactionData
    ) -> CategorizationResult:
        """Run the cascade for one transaction.

        Returns:
            The chosen category, or the empty result when nothing fits.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        await self._require_user(user_id)

        result = await self.cascade.run(user_id, transaction)
        if result.is_empty:
            logger.info(f"'{transaction.name}' left uncategorized")
        else:
            logger.info(
                f"'{transaction.name}' -> '{result.category_name}' "
                f"via {result.method.value} ({result.confidence:.2f})"
            )
        return result

    async def batch_suggest(self, user_id: int, limit: int = 50) -> BatchSuggestResult:
        """Suggest categories for up to `limit` uncategorized transactions.

        Nothing is written; suggestions are applied with accept_suggestions.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        await self._require_user(user_id)
        return await self.batch.suggest(user_id, limit)

    async def learn_from_categorization(
        self,
        user_id: int,
        transaction: TransactionData,
        category_id: int,
        contribute_to_community: bool = True,
    ) -> None:
        """Feed a confirmed categorization back into rules and the corpus.

        Raises:
            UserNotFoundError: If the user does not exist.
            CategoryNotFoundError: If the category is not the user's.
        """
        await self._require_user(user_id)
        await self.learning.learn(
            user_id, transaction, category_id, contribute=contribute_to_community
        )

    async def categorize_and_store(self, transaction_id: str) -> CategorizationResult:
        """Categorize a stored transaction and write the outcome back.

        Manually categorized transactions are left alone.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
        """
        transaction = await self.services.transactions.find(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)

        if transaction.categorization_method == CategorizationMethod.MANUAL:
            logger.debug(f"Transaction {transaction_id[:8]}... is manual, skipping")
            category = (
                await self.services.categories.find(transaction.category_id)
                if transaction.category_id is not None
                else None
            )
            return CategorizationResult(
                category_id=transaction.category_id,
                category_name=category.name if category else None,
                method=CategorizationMethod.MANUAL,
                confidence=1.0,
            )

        result = await self.categorize_transaction(
            transaction.user_id, transaction.to_data()
        )
        await self.services.transactions.update_categorization(
            [transaction.id], result.category_id, result.method, result.confidence
        )
        return result

    async def categorize_new_transactions(self, user_id: int) -> Dict[str, int]:
        """Categorize every transaction of the user the engine has not seen.

        Returns:
            Counts keyed by method ("rule", "vector", "llm", "none").
        """
        await self._require_user(user_id)

        counts = {"rule": 0, "vector": 0, "llm": 0, "none": 0}
        for transaction in await self.services.transactions.find_unprocessed(user_id):
            result = await self.categorize_and_store(transaction.id)
            counts[result.method.value if result.method else "none"] += 1

        logger.info(f"Categorized new transactions for user {user_id}: {counts}")
        return counts

    async def set_category(
        self, user_id: int, transaction_id: str, category_id: Optional[int]
    ) -> None:
        """Manually categorize one transaction and learn from it.

        `category_id=None` clears the category without learning anything.

        Raises:
            TransactionNotFoundError: If the transaction is not the user's.
            CategoryNotFoundError: If the category is not the user's.
        """
        await self.bulk_set_category(user_id, [transaction_id], category_id)

    async def bulk_set_category(
        self,
        user_id: int,
        transaction_ids: List[str],
        category_id: Optional[int],
    ) -> int:
        """Manually categorize several transactions and learn from each.

        All ids are checked before anything is written.

        Returns:
            Number of transactions updated.

        Raises:
            TransactionNotFoundError: If any transaction is not the user's.
            CategoryNotFoundError: If the category is not the user's.
        """
        unique_ids = list(dict.fromkeys(transaction_ids))
        transactions = await self.services.transactions.find_by_ids(user_id, unique_ids)
        found = {t.id for t in transactions}
        for transaction_id in unique_ids:
            if transaction_id not in found:
                raise TransactionNotFoundError(transaction_id)

        if category_id is not None:
            category = await self.services.categories.find(category_id)
            if category is None or category.user_id != user_id:
                raise CategoryNotFoundError(category_id, user_id)

        updated = await self.services.transactions.update_categorization(
            unique_ids, category_id, CategorizationMethod.MANUAL, 1.0
        )

        if category_id is not None:
            for transaction in transactions:
                await self.learning.learn(
                    user_id,
                    transaction.to_data(),
                    category_id,
                    contribute=self.settings.contribute_to_community,
                )

        return updated

    async def accept_suggestions(
        self, user_id: int, suggestions: List[BatchSuggestion]
    ) -> int:
        """Apply reviewed batch suggestions as manual categorizations.

        Suggestions without a category are skipped.

        Returns:
            Number of transactions categorized.
        """
        accepted = 0
        for suggestion in suggestions:
            if suggestion.category_id is None:
                continue
            await self.set_category(
                user_id, suggestion.transaction_id, suggestion.category_id
            )
            accepted += 1

        logger.info(f"Accepted {accepted} suggestion(s) for user {user_id}")
        return accepted

    async def _require_user(self, user_id: int) -> None:
        if await self.services.users.find(user_id) is None:
            raise UserNotFoundError(user_id)
