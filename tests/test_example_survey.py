"""
Test the bundled example questionnaires.

Each sample must compile and validate, and the budget sample is walked
end to end: responses -> variables -> computed values -> visible text.
"""

import pytest

from surveytext.computed import resolve_survey
from surveytext.examples import SAMPLES, build_example_survey
from surveytext.model import QuestionType
from surveytext.placeholders import replace_placeholders
from surveytext.responses import breakdown_subtotals, breakdown_total, derive_variables
from surveytext.visibility import visible_blocks, visible_items, visible_pages


@pytest.mark.parametrize("level", list(SAMPLES))
def test_samples_compile(level):
    survey = build_example_survey(level)
    assert survey.name == f"{level.title()} Sample"
    assert list(survey.iter_questions())


def test_unknown_sample():
    with pytest.raises(KeyError, match="Unknown sample"):
        build_example_survey("expert")


def test_basic_structure():
    survey = build_example_survey("basic")
    assert [page.title for _, page in survey.iter_pages()] == ["**Survey Tool Evaluation**", ""]
    q3 = survey.get_question("Q3")
    assert q3.type == QuestionType.CHECKBOX
    assert q3.hint == "Select all that apply"
    assert "Text/essay questions" in [o.label for o in q3.options]


def test_intermediate_conditional_page():
    survey = build_example_survey("intermediate")
    features = survey.get_question("Q3")
    assert features.options[-1].allows_other_text
    assert survey.get_question("Q4").type == QuestionType.MATRIX

    tried = {"Q3": ["Using conditional logic (SHOW_IF)"], "Q2": "4"}
    not_tried = {"Q3": ["Creating basic surveys"]}
    assert len(visible_pages(survey, derive_variables(survey, tried))) == 3
    assert len(visible_pages(survey, derive_variables(survey, not_tried))) == 2


def test_advanced_blocks():
    survey = build_example_survey("advanced")
    responses = {"Q1": "Several weeks or more", "Q2": "5", "Q3": ["Creating basic surveys"]}
    variables = derive_variables(survey, responses)
    computed = resolve_survey(survey, variables)
    assert computed == {"experienced_user": True}
    names = [block.name for block in visible_blocks(survey, variables, computed)]
    assert names == ["User Background", "Feature Feedback", "Overall Assessment", "Final Page"]

    text = replace_placeholders(survey.get_question("Q4").text, variables, computed)
    assert text == "As an experienced user, what would help you most?"


def test_advanced_new_user():
    survey = build_example_survey("advanced")
    variables = derive_variables(survey, {"Q1": "A few days", "Q2": "1"})
    names = [block.name for block in visible_blocks(survey, variables)]
    assert names == ["User Background", "Final Page"]


def test_budget_walkthrough():
    survey = build_example_survey("budget")
    costs = {"Rent": "1500", "Insurance": "200", "Food": "400", "Transport": "100", "Discounts received": "50"}
    responses = {"Q1": ["Sports", "Music"], "Q2": costs}
    variables = derive_variables(survey, responses)
    computed = resolve_survey(survey, variables)
    assert computed == {"total": 2150.0, "big_spender": True}

    breakdown = survey.get_question("Q2")
    assert breakdown_total(breakdown, costs) == 2150
    assert [figure for _, figure in breakdown_subtotals(breakdown, costs)] == [1700]

    _, summary = visible_pages(survey, variables, computed)[-1]
    section = summary.sections[0]
    rendered = replace_placeholders(visible_items(section, variables, computed)[0].value, variables, computed)
    assert "You spend on sports and music." in rendered
    assert "€2150, of which €1700 goes to housing" in rendered
    assert "That is above the national average." in rendered


def test_budget_navigation():
    survey = build_example_survey("budget")
    tree = survey.navigation_tree()
    assert [(item.name, [c.name for c in children]) for item, children in tree] == [
        ("**About You**", ["**Monthly Costs**"]),
        ("**Budget Summary**", []),
    ]
    assert survey.blocks[0].pages[1].tooltip == "Use your most recent month.\n\nRound to whole euros."
