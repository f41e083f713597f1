"""
Tests for serialization and deserialization of compiled surveys.

These tests ensure lossless JSON/YAML round-trip using the explicit
serialization functions in `surveytext.serialization`.
"""

import json

import yaml

from surveytext.examples import build_example_survey
from surveytext.model import TextItem
from surveytext.serialization import (
    option_to_dict,
    question_to_dict,
    survey_from_dict,
    survey_from_json,
    survey_from_yaml,
    survey_to_dict,
    survey_to_json,
    survey_to_yaml,
)


def test_dict_roundtrip():
    survey = build_example_survey("budget")
    restored = survey_from_dict(survey_to_dict(survey))
    assert restored == survey


def test_json_roundtrip():
    survey = build_example_survey("advanced")
    restored = survey_from_json(survey_to_json(survey))
    assert restored.blocks == survey.blocks
    assert restored.name == survey.name


def test_yaml_roundtrip():
    survey = build_example_survey("intermediate")
    restored = survey_from_yaml(survey_to_yaml(survey))
    assert restored == survey


def test_navigation_refers_to_pages():
    survey = build_example_survey("budget")
    data = survey_to_dict(survey)
    assert data["navigation"] == [
        {"name": "**About You**", "level": 1, "pages": [0]},
        {"name": "**Monthly Costs**", "level": 2, "pages": [1]},
        {"name": "**Budget Summary**", "level": 1, "pages": [2]},
    ]
    restored = survey_from_dict(data)
    assert restored.nav_items[1].pages[0] is restored.blocks[0].pages[1]


def test_unset_attributes_left_out():
    survey = build_example_survey("basic")
    question = survey.get_question("Q1")
    data = question_to_dict(question)
    assert data["kind"] == "question"
    assert data["type"] == "multiple_choice"
    assert "variable" not in data
    assert option_to_dict(question.options[0]) == {"value": "Just started today", "label": "Just started today"}


def test_items_tagged_by_kind():
    data = survey_to_dict(build_example_survey("basic"))
    items = data["blocks"][0]["pages"][0]["sections"][0]["items"]
    assert items[0] == {"kind": "text", "value": "Help us improve our survey creation tool by sharing your experience using it."}


def test_outputs_are_plain_data():
    survey = build_example_survey("budget")
    assert json.loads(survey_to_json(survey))["name"] == "Budget Sample"
    loaded = yaml.safe_load(survey_to_yaml(survey))
    assert loaded["blocks"][1]["computed_variables"][0] == {"name": "total", "expression": "rent + insurance + food + transport - discounts"}
    assert "€" in survey_to_yaml(survey)


def test_text_item_restored():
    survey = build_example_survey("advanced")
    restored = survey_from_json(survey_to_json(survey))
    final_page = restored.blocks[-1].pages[0]
    assert isinstance(final_page.sections[0].items[0], TextItem)
