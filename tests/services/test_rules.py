import pytest

from tests.helpers import run


class TestRuleService:
    """Tests for RuleService."""

    def test_find_missing_rule(self, services, user):
        """Test looking up a merchant with no rule returns None."""
        assert run(services.rules.find(user.id, "starbucks")) is None

    def test_upsert_creates_rule_with_seed(self, services, user, groceries):
        """Test the first confirmation creates a rule at the seed confidence."""
        rule = run(services.rules.upsert(user.id, "whole foods", groceries.id))

        assert rule.id is not None
        assert rule.user_id == user.id
        assert rule.category_id == groceries.id
        assert rule.merchant_pattern == "whole foods"
        assert rule.confidence == pytest.approx(0.8)
        assert rule.match_count == 1
        assert rule.last_matched is not None

    def test_upsert_existing_rule_steps_confidence(self, services, user, groceries):
        """Test a repeat confirmation bumps confidence and match count."""
        run(services.rules.upsert(user.id, "whole foods", groceries.id))
        rule = run(services.rules.upsert(user.id, "whole foods", groceries.id))

        assert rule.confidence == pytest.approx(0.9)
        assert rule.match_count == 2
        assert len(run(services.rules.find_all(user.id))) == 1

    def test_upsert_caps_confidence(self, services, user, groceries):
        """Test confidence never exceeds the cap."""
        for _ in range(6):
            rule = run(services.rules.upsert(user.id, "whole foods", groceries.id))

        assert rule.confidence == pytest.approx(1.0)
        assert rule.match_count == 6

    def test_upsert_repoints_category(self, services, user, groceries):
        """Test confirming a different category moves the rule."""
        dining = run(services.categories.create(user.id, "Dining"))
        run(services.rules.upsert(user.id, "whole foods", groceries.id))

        rule = run(services.rules.upsert(user.id, "whole foods", dining.id))

        assert rule.category_id == dining.id
        assert run(services.rules.find(user.id, "whole foods")).category_id == dining.id

    def test_rules_are_per_user(self, services, user, other_user, groceries):
        """Test one user's rule is invisible to another."""
        run(services.rules.upsert(user.id, "whole foods", groceries.id))

        assert run(services.rules.find(other_user.id, "whole foods")) is None
