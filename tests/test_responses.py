"""
Tests for deriving variables from responses and breakdown arithmetic.
"""

import pytest

from surveytext.parser import parse_survey
from surveytext.responses import breakdown_subtotals, breakdown_total, derive_variables, prefill_values

BREAKDOWN_TEXT = """Q: Monthly costs
BREAKDOWN
- HEADER: Housing
- Rent
  - VARIABLE: rent
- Insurance
  - VARIABLE: insurance
- SUBTOTAL: Housing subtotal
- SEPARATOR
- Food
  - VARIABLE: food
- Gifts
  - EXCLUDE
- Refunds
  - SUBTRACT
- SUBTOTAL: Everything else
TOTAL: Total"""


@pytest.fixture
def breakdown():
    return parse_survey(BREAKDOWN_TEXT).get_question("Q1")


@pytest.fixture
def costs():
    return {"Rent": "1000", "Insurance": "200", "Food": "300", "Gifts": "50", "Refunds": "25"}


class TestDeriveVariables:
    def test_question_variables(self):
        survey = parse_survey("Q: Age\nNUMBER\nVARIABLE: age\nQ: Pets\nCHECKBOX\n- Dog\n- Cat\nVARIABLE: pets")
        variables = derive_variables(survey, {"Q1": "42", "Q2": ["Dog"]})
        assert variables == {"age": "42", "pets": ["Dog"]}

    def test_unanswered_questions_have_no_key(self):
        survey = parse_survey("Q: Age\nNUMBER\nVARIABLE: age")
        assert derive_variables(survey, {}) == {}

    def test_questions_without_variable_ignored(self):
        survey = parse_survey("Q: Age\nNUMBER")
        assert derive_variables(survey, {"Q1": "42"}) == {}

    def test_matrix_rows(self):
        text = "Q: Rate\n- Q: Ease\n  - VARIABLE: ease\n- Q: Docs\n- Good\n- Poor"
        survey = parse_survey(text)
        variables = derive_variables(survey, {"Q1": {"Q1_1": "Good", "Q1_2": "Poor"}})
        assert variables == {"ease": "Good"}

    def test_breakdown_rows(self, costs):
        survey = parse_survey(BREAKDOWN_TEXT)
        variables = derive_variables(survey, {"Q1": costs})
        assert variables == {"rent": "1000", "insurance": "200", "food": "300"}


class TestBreakdownArithmetic:
    def test_total(self, breakdown, costs):
        """Excluded rows are skipped and SUBTRACT rows count negative."""
        assert breakdown_total(breakdown, costs) == 1000 + 200 + 300 - 25

    def test_non_numeric_cells_are_zero(self, breakdown):
        assert breakdown_total(breakdown, {"Rent": "lots", "Food": "10"}) == 10

    def test_subtotals(self, breakdown, costs):
        results = [(option.subtotal_label, figure) for option, figure in breakdown_subtotals(breakdown, costs)]
        assert results == [("Housing subtotal", 1200), ("Everything else", 275)]

    def test_custom_subtotal(self):
        text = "Q: Costs\nBREAKDOWN\n- Rent\n  - VARIABLE: rent\n- SUBTOTAL: Double rent\n  - CUSTOM: rent * 2"
        question = parse_survey(text).get_question("Q1")
        (option, figure), = breakdown_subtotals(question, {"Rent": "400"})
        assert option.custom == "rent * 2"
        assert figure == 800

    def test_prefill_values(self):
        text = "Q: Costs\nBREAKDOWN\n- Rent\n  - VALUE: base * 12\n- Food"
        question = parse_survey(text).get_question("Q1")
        assert prefill_values(question, {"base": "50"}) == {"Rent": "600"}
