"""The three categorization tiers.

Each matcher returns an optional CategorizationResult: None means the tier
had nothing to offer, whether because nothing matched or because an
external call failed. Only the rule tier may raise, and the cascade absorbs
that too.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional
from categorization.normalizer import hash_merchant, normalize_merchant, rule_lookup_keys
from llm.parsing import NewCategoryProposal
from models.categorization import CategorizationMethod, CategorizationResult
from models.category import Category, find_category_by_name
from models.transaction import TransactionData
from logger import get_logger

logger = get_logger("categorization")


class RuleMatcher:
    """Tier 1: the user's own remembered merchant -> category rules."""

    method = CategorizationMethod.RULE

    def __init__(self, rules, categories):
        """
        Args:
            rules: Rule store (RuleService or compatible).
            categories: Category directory (CategoryService or compatible).
        """
        self.rules = rules
        self.categories = categories

    async def match(
        self, user_id: int, transaction: TransactionData
    ) -> Optional[CategorizationResult]:
        normalized = normalize_merchant(transaction.merchant_text)

        rule = None
        for key in rule_lookup_keys(normalized):
            rule = await self.rules.find(user_id, key)
            if rule is not None:
                break
        if rule is None:
            return None

        category = await self.categories.find(rule.category_id)
        if category is None or category.user_id != user_id:
            logger.warning(
                f"Rule {rule.id} points at missing category {rule.category_id}"
            )
            return None

        return CategorizationResult(
            category_id=category.id,
            category_name=category.name,
            method=self.method,
            confidence=rule.confidence,
        )


class CommunityMatcher:
    """Tier 2: nearest neighbours in the anonymized cross-user corpus."""

    method = CategorizationMethod.VECTOR

    def __init__(
        self,
        corpus,
        categories,
        embedder=None,
        timeout: float = 20.0,
        min_similarity: float = 0.75,
        limit: int = 5,
    ):
        """
        Args:
            corpus: Community corpus (CommunityCorpusService or compatible).
            categories: Category directory.
            embedder: EmbeddingProvider, or None when embeddings are disabled.
            timeout: Seconds allowed for the embedding call.
            min_similarity: Cosine similarity floor for neighbours.
            limit: Maximum neighbours fetched.
        """
        self.corpus = corpus
        self.categories = categories
        self.embedder = embedder
        self.timeout = timeout
        self.min_similarity = min_similarity
        self.limit = limit

    async def match(
        self, user_id: int, transaction: TransactionData
    ) -> Optional[CategorizationResult]:
        try:
            return await self._match(user_id, transaction)
        except Exception as e:
            # Includes asyncio timeouts; this tier never aborts the cascade
            logger.warning(f"Vector matching failed: {type(e).__name__}: {e}")
            return None

    async def _match(
        self, user_id: int, transaction: TransactionData
    ) -> Optional[CategorizationResult]:
        normalized = normalize_merchant(transaction.merchant_text)
        if not normalized:
            return None

        embedding = await self._embedding_for(normalized)
        if embedding is None:
            return None

        neighbors = await self.corpus.nearest_neighbors(
            embedding, self.min_similarity, self.limit
        )
        if not neighbors:
            return None

        best, similarity = neighbors[0]
        categories = await self.categories.find_all(user_id)
        category = find_category_by_name(categories, best.category_name)
        if category is None:
            logger.debug(
                f"Closest community category '{best.category_name}' "
                f"has no counterpart for user {user_id}"
            )
            return None

        return CategorizationResult(
            category_id=category.id,
            category_name=category.name,
            method=self.method,
            confidence=float(similarity),
        )

    async def _embedding_for(self, normalized: str) -> Optional[List[float]]:
        """Reuse the corpus embedding for this merchant, else compute one.

        A freshly computed embedding is not stored; only the learning loop
        writes to the corpus.
        """
        existing = await self.corpus.find_by_hash(hash_merchant(normalized))
        if existing is not None:
            return existing.embedding

        if self.embedder is None:
            return None

        return await asyncio.wait_for(self.embedder.embed(normalized), self.timeout)


@dataclass
class BatchMatch:
    """Tier 3 outcome for a batch: one optional result per transaction."""

    results: List[Optional[CategorizationResult]]
    proposals: List[NewCategoryProposal] = field(default_factory=list)


class GenerativeMatcher:
    """Tier 3: ask a generative model to pick one of the user's categories."""

    method = CategorizationMethod.LLM

    def __init__(
        self,
        categories,
        llm=None,
        timeout: float = 20.0,
        batch_timeout: float = 60.0,
    ):
        """
        Args:
            categories: Category directory.
            llm: LLMProvider, or None when LLM categorization is disabled.
            timeout: Seconds allowed for a single-transaction call.
            batch_timeout: Seconds allowed for a batch call.
        """
        self.categories = categories
        self.llm = llm
        self.timeout = timeout
        self.batch_timeout = batch_timeout

    async def match(
        self, user_id: int, transaction: TransactionData
    ) -> Optional[CategorizationResult]:
        if self.llm is None:
            return None

        categories = await self.categories.find_all(user_id)
        if not categories:
            return None

        try:
            choice = await asyncio.wait_for(
                self.llm.choose_category(transaction, categories), self.timeout
            )
            return self._to_result(categories, choice.category, choice.confidence)
        except Exception as e:
            logger.warning(f"LLM matching failed: {type(e).__name__}: {e}")
            return None

    async def match_batch(
        self, categories: List[Category], transactions: List[TransactionData]
    ) -> BatchMatch:
        """Categorize several transactions with a single model call.

        Runs even when the user has no categories, since the model can
        still propose new ones.
        """
        empty = BatchMatch(results=[None] * len(transactions))
        if self.llm is None or not transactions:
            return empty

        try:
            response = await asyncio.wait_for(
                self.llm.categorize_batch(transactions, categories),
                self.batch_timeout,
            )
        except Exception as e:
            logger.warning(f"Batch LLM matching failed: {type(e).__name__}: {e}")
            return empty

        results: List[Optional[CategorizationResult]] = [None] * len(transactions)
        for decision in response.decisions:
            if not 1 <= decision.index <= len(transactions):
                continue
            results[decision.index - 1] = self._to_result(
                categories, decision.category_name, decision.confidence
            )

        return BatchMatch(results=results, proposals=list(response.new_categories))

    def _to_result(
        self, categories: List[Category], name: Optional[str], confidence: float
    ) -> Optional[CategorizationResult]:
        if not name:
            return None

        category = find_category_by_name(categories, name)
        if category is None:
            logger.debug(f"LLM picked unknown category '{name}'")
            return None

        return CategorizationResult(
            category_id=category.id,
            category_name=category.name,
            method=self.method,
            confidence=float(confidence),
        )
