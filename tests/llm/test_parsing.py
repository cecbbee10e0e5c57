import pytest

from llm.parsing import parse_batch_response


class TestParseBatchResponse:
    """Tests for parsing line-record batch responses."""

    def test_well_formed_response(self):
        text = (
            "TXN|1|Groceries|0.9\n"
            "TXN|2|NONE|0\n"
            "NEW|Pets|expense|2,3|Pet store purchases\n"
            "TXN|3|Dining|0.55\n"
        )

        response = parse_batch_response(text, 3)

        assert [(d.index, d.category_name) for d in response.decisions] == [
            (1, "Groceries"),
            (2, None),
            (3, "Dining"),
        ]
        assert response.decisions[0].confidence == pytest.approx(0.9)
        assert response.decisions[1].confidence == 0.0
        [proposal] = response.new_categories
        assert proposal.name == "Pets"
        assert proposal.is_income is False
        assert proposal.indices == [2, 3]
        assert proposal.reason == "Pet store purchases"

    def test_empty_and_missing_text(self):
        assert parse_batch_response(None, 3).decisions == []
        assert parse_batch_response("", 3).new_categories == []

    def test_code_fences_and_whitespace_tolerated(self):
        text = "```\n  TXN|1|Groceries|0.8  \n```"

        response = parse_batch_response(text, 1)

        assert len(response.decisions) == 1

    @pytest.mark.parametrize(
        "line",
        [
            "TXN|0|Groceries|0.9",
            "TXN|4|Groceries|0.9",
            "TXN|one|Groceries|0.9",
            "TXN|1|Groceries|1.5",
            "TXN|1|Groceries|-0.1",
            "TXN|1|Groceries|nan",
            "TXN|1|Groceries",
            "TXN|1|Groceries|0.9|extra",
            "TXN|1||0.9",
            "Here are your results:",
        ],
    )
    def test_malformed_decision_lines_skipped(self, line):
        response = parse_batch_response(line + "\nTXN|2|Dining|0.7", 3)

        assert [d.index for d in response.decisions] == [2]

    def test_first_decision_per_index_wins(self):
        response = parse_batch_response("TXN|1|Groceries|0.9\nTXN|1|Dining|0.8", 1)

        assert [d.category_name for d in response.decisions] == ["Groceries"]

    def test_none_is_case_insensitive(self):
        response = parse_batch_response("txn|1|none|0.4", 1)

        assert response.decisions[0].category_name is None

    def test_income_proposal_without_reason(self):
        response = parse_batch_response("NEW|Side Gig|income|1", 1)

        [proposal] = response.new_categories
        assert proposal.is_income is True
        assert proposal.reason is None

    @pytest.mark.parametrize(
        "line",
        [
            "NEW|Pets|hobby|1|reason",
            "NEW||expense|1|reason",
            "NEW|Pets|expense|9|reason",
            "NEW|Pets|expense|x,y|reason",
            "NEW|Pets|expense",
        ],
    )
    def test_malformed_proposals_skipped(self, line):
        assert parse_batch_response(line, 2).new_categories == []

    def test_proposal_indices_deduplicated_and_filtered(self):
        response = parse_batch_response("NEW|Pets|expense|2, 2, 7, 1|", 2)

        assert response.new_categories[0].indices == [2, 1]
