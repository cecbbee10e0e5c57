"""Batch suggestions for reviewing many uncategorized transactions at once.

Tiers 1 and 2 run per transaction with relaxed acceptance bars. Whatever is
left goes to the generative model in chunks, one request per chunk, and the
model may also propose categories the user does not have yet.
"""

from typing import Dict, List
from categorization.cascade import Cascade, CascadeRun, select_best
from categorization.matchers import GenerativeMatcher
from llm.parsing import NewCategoryProposal
from models.categorization import (
    BatchSuggestion,
    BatchSuggestResult,
    NewCategoryRecommendation,
)
from models.category import Category, find_category_by_name
from models.transaction import Transaction
from logger import get_logger

logger = get_logger("categorization.batch")


def _chunks(items: List[int], size: int):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchSuggester:
    """Builds category suggestions for a user's uncategorized transactions.

    Args:
        transactions: Transaction store.
        categories: Category directory.
        cascade: Cascade with only the rule and vector tiers, using the
                 batch acceptance thresholds.
        llm_matcher: Tier 3 matcher used for the batched request.
        batch_size: Maximum transactions per Tier 3 request.
    """

    def __init__(
        self,
        transactions,
        categories,
        cascade: Cascade,
        llm_matcher: GenerativeMatcher,
        batch_size: int = 25,
    ):
        self.transactions = transactions
        self.categories = categories
        self.cascade = cascade
        self.llm_matcher = llm_matcher
        self.batch_size = max(1, batch_size)

    async def suggest(self, user_id: int, limit: int = 50) -> BatchSuggestResult:
        result = BatchSuggestResult()

        transactions = await self.transactions.find_uncategorized(user_id, limit)
        if not transactions:
            return result

        runs: List[CascadeRun] = []
        pending: List[int] = []
        for position, txn in enumerate(transactions):
            run = await self.cascade.execute(user_id, txn.to_data())
            runs.append(run)
            if run.accepted is None:
                pending.append(position)

        logger.info(
            f"Batch: {len(transactions) - len(pending)} of {len(transactions)} "
            f"resolved by rules or community matches"
        )

        categories = await self.categories.find_all(user_id)
        recommendations: Dict[str, NewCategoryRecommendation] = {}

        for chunk in _chunks(pending, self.batch_size):
            batch = await self.llm_matcher.match_batch(
                categories, [transactions[p].to_data() for p in chunk]
            )
            for position, llm_result in zip(chunk, batch.results):
                runs[position].candidates.llm = llm_result
            for proposal in batch.proposals:
                self._merge_proposal(
                    recommendations, proposal, chunk, transactions, categories
                )

        for txn, run in zip(transactions, runs):
            final = run.accepted or select_best(run.candidates.as_tuple())
            result.suggestions.append(
                BatchSuggestion(
                    transaction_id=txn.id,
                    transaction_name=txn.name,
                    amount=txn.amount,
                    category_id=final.category_id,
                    category_name=final.category_name,
                    method=final.method,
                    confidence=final.confidence,
                )
            )
            result.stats[final.method.value if final.method else "none"] += 1

        result.stats["total"] = len(transactions)
        result.new_category_recommendations = list(recommendations.values())
        return result

    def _merge_proposal(
        self,
        recommendations: Dict[str, NewCategoryRecommendation],
        proposal: NewCategoryProposal,
        chunk: List[int],
        transactions: List[Transaction],
        categories: List[Category],
    ) -> None:
        """Fold a model proposal into the recommendations, keyed by name."""
        if find_category_by_name(categories, proposal.name) is not None:
            logger.debug(f"Ignoring proposal for existing category '{proposal.name}'")
            return

        transaction_ids = [
            transactions[chunk[index - 1]].id
            for index in proposal.indices
            if 1 <= index <= len(chunk)
        ]
        if not transaction_ids:
            return

        key = proposal.name.strip().lower()
        existing = recommendations.get(key)
        if existing is None:
            recommendations[key] = NewCategoryRecommendation(
                name=proposal.name.strip(),
                is_income=proposal.is_income,
                transaction_ids=transaction_ids,
                reason=proposal.reason,
            )
            return

        for transaction_id in transaction_ids:
            if transaction_id not in existing.transaction_ids:
                existing.transaction_ids.append(transaction_id)
