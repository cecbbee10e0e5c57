import pytest

from llm.prompts.loader import PromptManager


class TestPromptManager:
    """Tests for loading and rendering YAML prompts."""

    def test_render_single_categorization_prompt(self):
        rendered = PromptManager().render_prompt(
            "categorization",
            {
                "name": "TRADER JOE'S #123",
                "merchant": "Trader Joe's",
                "amount": "45.00",
                "upstream_category": "Food and Drink > Groceries",
                "categories": "- Groceries\n- Dining",
            },
        )

        assert "TRADER JOE'S #123" in rendered["user_prompt"]
        assert "- Groceries" in rendered["user_prompt"]
        assert '{"category": null, "confidence": 0}' in rendered["user_prompt"]
        assert rendered["parameters"]["model"] == "gpt-4o-mini"
        assert rendered["version"] == "1.0"

    def test_render_batch_prompt(self):
        rendered = PromptManager().render_prompt(
            "batch_categorization",
            {"categories": "- Groceries (expense)", "transactions": "1. Name: 'X'"},
        )

        assert "TXN|" in rendered["system_prompt"]
        assert "1. Name: 'X'" in rendered["user_prompt"]

    def test_missing_variable(self):
        with pytest.raises(KeyError):
            PromptManager().render_prompt("batch_categorization", {})

    def test_missing_prompt_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PromptManager(tmp_path).load_prompt("nope")

    def test_missing_required_key(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("system_prompt: hi\n")

        with pytest.raises(ValueError, match="user_prompt_template"):
            PromptManager(tmp_path).load_prompt("broken")

    def test_prompts_are_cached(self, tmp_path):
        prompt_file = tmp_path / "cached.yaml"
        prompt_file.write_text("system_prompt: a\nuser_prompt_template: b\n")
        manager = PromptManager(tmp_path)

        first = manager.load_prompt("cached")
        prompt_file.unlink()

        assert manager.load_prompt("cached") is first
