from decimal import Decimal

import pytest

from categorization.matchers import CommunityMatcher, GenerativeMatcher, RuleMatcher
from categorization.normalizer import hash_merchant
from llm.providers.base import CategoryChoice
from models.categorization import CategorizationMethod
from models.transaction import TransactionData
from tests.fakes import FailingCorpus, FakeEmbeddingProvider, FakeLLMProvider
from tests.helpers import run


def txn(name, merchant_name=None, amount="12.50"):
    return TransactionData(
        name=name, amount=Decimal(amount), merchant_name=merchant_name
    )


class TestRuleMatcher:
    """Tests for the rule tier."""

    def test_exact_rule(self, services, user, groceries):
        run(services.rules.upsert(user.id, "whole foods", groceries.id))
        matcher = RuleMatcher(services.rules, services.categories)

        result = run(matcher.match(user.id, txn("WHOLE FOODS")))

        assert result.category_id == groceries.id
        assert result.category_name == "Groceries"
        assert result.method == CategorizationMethod.RULE
        assert result.confidence == pytest.approx(0.8)

    def test_store_number_falls_back_to_base_merchant(self, services, user, groceries):
        run(services.rules.upsert(user.id, "whole foods", groceries.id))
        matcher = RuleMatcher(services.rules, services.categories)

        result = run(matcher.match(user.id, txn("WHOLE FOODS #456")))

        assert result.category_id == groceries.id

    def test_merchant_name_preferred_over_display_name(
        self, services, user, groceries
    ):
        run(services.rules.upsert(user.id, "whole foods", groceries.id))
        matcher = RuleMatcher(services.rules, services.categories)

        result = run(matcher.match(user.id, txn("POS 88231 WFM", "Whole Foods")))

        assert result.category_id == groceries.id

    def test_no_rule(self, services, user):
        matcher = RuleMatcher(services.rules, services.categories)

        assert run(matcher.match(user.id, txn("UNKNOWN SHOP"))) is None

    def test_other_users_rule_ignored(self, services, user, other_user, groceries):
        run(services.rules.upsert(user.id, "whole foods", groceries.id))
        matcher = RuleMatcher(services.rules, services.categories)

        assert run(matcher.match(other_user.id, txn("WHOLE FOODS"))) is None


class TestCommunityMatcher:
    """Tests for the community vector tier."""

    def test_neighbour_maps_to_users_category(self, services, user, groceries):
        run(
            services.community.upsert_by_hash(
                hash_merchant("trader joes"), [1.0, 0.0, 0.0], "groceries"
            )
        )
        embedder = FakeEmbeddingProvider(vectors={"tj market": [0.95, 0.1, 0.0]})
        matcher = CommunityMatcher(services.community, services.categories, embedder)

        result = run(matcher.match(user.id, txn("TJ MARKET")))

        assert result.category_id == groceries.id
        assert result.method == CategorizationMethod.VECTOR
        assert 0.75 < result.confidence <= 1.0
        assert embedder.calls == ["tj market"]

    def test_known_hash_reuses_stored_embedding(self, services, user, groceries):
        run(
            services.community.upsert_by_hash(
                hash_merchant("trader joes"), [1.0, 0.0, 0.0], "groceries"
            )
        )
        embedder = FakeEmbeddingProvider()
        matcher = CommunityMatcher(services.community, services.categories, embedder)

        result = run(matcher.match(user.id, txn("TRADER JOE'S")))

        assert result.confidence == pytest.approx(1.0)
        assert embedder.calls == []

    def test_category_user_lacks(self, services, user):
        run(
            services.community.upsert_by_hash(
                hash_merchant("trader joes"), [1.0, 0.0, 0.0], "groceries"
            )
        )
        matcher = CommunityMatcher(services.community, services.categories)

        assert run(matcher.match(user.id, txn("TRADER JOES"))) is None

    def test_below_similarity_floor(self, services, user, groceries):
        run(
            services.community.upsert_by_hash(
                hash_merchant("trader joes"), [1.0, 0.0, 0.0], "groceries"
            )
        )
        embedder = FakeEmbeddingProvider(default=[0.0, 1.0, 0.0])
        matcher = CommunityMatcher(services.community, services.categories, embedder)

        assert run(matcher.match(user.id, txn("SHELL OIL"))) is None

    def test_no_embedder_and_unknown_merchant(self, services, user, groceries):
        matcher = CommunityMatcher(services.community, services.categories)

        assert run(matcher.match(user.id, txn("SHELL OIL"))) is None

    def test_embedding_timeout_is_no_match(self, services, user, groceries):
        embedder = FakeEmbeddingProvider(delay=1.0)
        matcher = CommunityMatcher(
            services.community, services.categories, embedder, timeout=0.01
        )

        assert run(matcher.match(user.id, txn("SHELL OIL"))) is None

    def test_embedding_error_is_no_match(self, services, user, groceries):
        embedder = FakeEmbeddingProvider(error=RuntimeError("rate limited"))
        matcher = CommunityMatcher(services.community, services.categories, embedder)

        assert run(matcher.match(user.id, txn("SHELL OIL"))) is None

    def test_corpus_error_is_no_match(self, services, user, groceries):
        matcher = CommunityMatcher(
            FailingCorpus(RuntimeError("locked")),
            services.categories,
            FakeEmbeddingProvider(),
        )

        assert run(matcher.match(user.id, txn("SHELL OIL"))) is None

    def test_empty_merchant(self, services, user):
        embedder = FakeEmbeddingProvider()
        matcher = CommunityMatcher(services.community, services.categories, embedder)

        assert run(matcher.match(user.id, txn("###"))) is None
        assert embedder.calls == []


class TestGenerativeMatcher:
    """Tests for the generative model tier."""

    def test_choice_maps_to_category(self, services, user, groceries):
        llm = FakeLLMProvider(choice=CategoryChoice("groceries", 0.92))
        matcher = GenerativeMatcher(services.categories, llm)

        result = run(matcher.match(user.id, txn("TRADER JOE'S #123")))

        assert result.category_id == groceries.id
        assert result.category_name == "Groceries"
        assert result.method == CategorizationMethod.LLM
        assert result.confidence == pytest.approx(0.92)
        assert llm.single_calls[0][1] == ["Groceries"]

    def test_unknown_category_is_no_match(self, services, user, groceries):
        matcher = GenerativeMatcher(
            services.categories, FakeLLMProvider(choice=CategoryChoice("Travel", 0.9))
        )

        assert run(matcher.match(user.id, txn("DELTA AIR"))) is None

    def test_declined_choice(self, services, user, groceries):
        matcher = GenerativeMatcher(services.categories, FakeLLMProvider())

        assert run(matcher.match(user.id, txn("DELTA AIR"))) is None

    def test_no_categories_skips_call(self, services, user):
        llm = FakeLLMProvider(choice=CategoryChoice("Groceries", 0.9))
        matcher = GenerativeMatcher(services.categories, llm)

        assert run(matcher.match(user.id, txn("DELTA AIR"))) is None
        assert llm.single_calls == []

    def test_disabled(self, services, user, groceries):
        matcher = GenerativeMatcher(services.categories, None)

        assert run(matcher.match(user.id, txn("DELTA AIR"))) is None

    def test_error_and_timeout_are_no_match(self, services, user, groceries):
        failing = GenerativeMatcher(
            services.categories, FakeLLMProvider(error=RuntimeError("500"))
        )
        slow = GenerativeMatcher(
            services.categories, FakeLLMProvider(delay=1.0), timeout=0.01
        )

        assert run(failing.match(user.id, txn("DELTA AIR"))) is None
        assert run(slow.match(user.id, txn("DELTA AIR"))) is None

    def test_match_batch(self, services, user, groceries):
        llm = FakeLLMProvider(
            batch_text=(
                "TXN|1|Groceries|0.9\n"
                "TXN|2|NONE|0\n"
                "TXN|3|Nonexistent|0.8\n"
                "NEW|Pets|expense|2|Pet store purchase"
            )
        )
        matcher = GenerativeMatcher(services.categories, llm)
        categories = run(services.categories.find_all(user.id))

        batch = run(
            matcher.match_batch(
                categories, [txn("SAFEWAY"), txn("PETCO"), txn("MYSTERY")]
            )
        )

        assert batch.results[0].category_id == groceries.id
        assert batch.results[1] is None
        assert batch.results[2] is None
        assert [p.name for p in batch.proposals] == ["Pets"]

    def test_match_batch_failure_returns_empty(self, services, user, groceries):
        matcher = GenerativeMatcher(
            services.categories, FakeLLMProvider(error=RuntimeError("500"))
        )

        batch = run(matcher.match_batch([groceries], [txn("A"), txn("B")]))

        assert batch.results == [None, None]
        assert batch.proposals == []
