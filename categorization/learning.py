"""Learning from confirmed categorizations.

Every confirmation strengthens the user's own rule for the merchant and,
unless the user opts out, contributes to the anonymized community corpus.
"""

import asyncio
from typing import Optional
from categorization.normalizer import hash_merchant, normalize_merchant
from config import CategorizationSettings
from errors import CategoryNotFoundError
from models.category import Category
from models.merchant_record import MerchantRecord
from models.rule import Rule
from models.transaction import TransactionData
from logger import get_logger

logger = get_logger("categorization.learning")


class LearningLoop:
    """Writes confirmed categorizations back into the rule store and corpus.

    Args:
        rules: Rule store.
        categories: Category directory.
        corpus: Community corpus.
        embedder: EmbeddingProvider, or None when embeddings are disabled.
        settings: Seeds, steps and cap for confidence updates.
        timeout: Seconds allowed for the embedding call.
    """

    def __init__(
        self,
        rules,
        categories,
        corpus,
        embedder=None,
        settings: Optional[CategorizationSettings] = None,
        timeout: float = 20.0,
    ):
        self.rules = rules
        self.categories = categories
        self.corpus = corpus
        self.embedder = embedder
        self.settings = settings or CategorizationSettings()
        self.timeout = timeout

    async def learn(
        self,
        user_id: int,
        transaction: TransactionData,
        category_id: int,
        contribute: bool = True,
    ) -> Optional[Rule]:
        """Record that `transaction` belongs in `category_id`.

        The rule is keyed on the full normalized merchant, store numbers
        included. Lookups fall back from a numbered merchant to its base
        name but never the other way, so one confirmed store does not
        categorize its sibling stores.

        Returns:
            The upserted rule, or None when the merchant normalizes to
            nothing and there is no key to remember it by.

        Raises:
            CategoryNotFoundError: If the category is missing or belongs to
                another user.
        """
        category = await self.categories.find(category_id)
        if category is None or category.user_id != user_id:
            raise CategoryNotFoundError(category_id, user_id)

        normalized = normalize_merchant(transaction.merchant_text)
        if not normalized:
            logger.info(
                f"Not learning from '{transaction.name}': merchant normalizes to nothing"
            )
            return None

        rule = await self.rules.upsert(
            user_id,
            normalized,
            category_id,
            seed_confidence=self.settings.rule_seed_confidence,
            confidence_step=self.settings.rule_confidence_step,
            confidence_cap=self.settings.confidence_cap,
        )
        logger.info(
            f"Rule '{normalized}' -> '{category.name}' for user {user_id} "
            f"(confidence {rule.confidence:.2f}, {rule.match_count} match(es))"
        )

        if contribute:
            await self.contribute(normalized, category)

        return rule

    async def contribute(
        self, normalized: str, category: Category
    ) -> Optional[MerchantRecord]:
        """Best-effort upsert of the anonymized corpus record for a merchant.

        Only the merchant hash and the lower-cased category name leave this
        method. Failures are logged and swallowed.
        """
        try:
            merchant_hash = hash_merchant(normalized)

            existing = await self.corpus.find_by_hash(merchant_hash)
            if existing is not None:
                embedding = existing.embedding
            elif self.embedder is None:
                logger.debug("No embedding provider, skipping community contribution")
                return None
            else:
                embedding = await asyncio.wait_for(
                    self.embedder.embed(normalized), self.timeout
                )

            record = await self.corpus.upsert_by_hash(
                merchant_hash,
                embedding,
                category.name.lower(),
                seed_confidence=self.settings.corpus_seed_confidence,
                confidence_step=self.settings.corpus_confidence_step,
                confidence_cap=self.settings.confidence_cap,
            )
            logger.debug(
                f"Community record {merchant_hash[:12]}... now used "
                f"{record.usage_count} time(s)"
            )
            return record

        except Exception as e:
            logger.warning(
                f"Community contribution failed: {type(e).__name__}: {e}"
            )
            return None
