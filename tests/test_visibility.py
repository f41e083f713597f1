"""
Tests for SHOW_IF-driven visibility over a compiled survey.
"""

import pytest

from surveytext.parser import parse_survey
from surveytext.visibility import (
    visible_blocks,
    visible_items,
    visible_options,
    visible_pages,
    visible_sections,
    visible_subquestions,
)

SURVEY_TEXT = """BLOCK: Start
# Intro
Q: Do you own a pet?
- Yes
- No
VARIABLE: has_pet

Q: How many?
NUMBER
VARIABLE: pet_count
COMPUTE: many_pets = pet_count > 2

BLOCK: Pets
SHOW_IF: has_pet IS Yes

# About your pets
## Dogs
SHOW_IF: many_pets
Tell us about your dogs.

Q: Which pets?
- Dog
- Cat
- Parrot
  - SHOW_IF: many_pets
CHECKBOX
VARIABLE: kinds

# Cats only
SHOW_IF: kinds IS Cat
Cat text.

Q: Rate
- Q: Food
- Q: Toys
  - SHOW_IF: many_pets
- Good
- Bad
SHOW_IF: NOT many_pets
"""


@pytest.fixture
def survey():
    return parse_survey(SURVEY_TEXT)


class TestBlocksAndPages:
    def test_hidden_block(self, survey):
        blocks = visible_blocks(survey, {"has_pet": "No"})
        assert [block.name for block in blocks] == ["Start"]

    def test_visible_block(self, survey):
        blocks = visible_blocks(survey, {"has_pet": "Yes"})
        assert [block.name for block in blocks] == ["Start", "Pets"]

    def test_page_conditions(self, survey):
        pages = visible_pages(survey, {"has_pet": "Yes", "kinds": ["Dog"]})
        assert [page.title for _, page in pages] == ["Intro", "About your pets"]

        pages = visible_pages(survey, {"has_pet": "Yes", "kinds": ["Cat"]})
        assert [page.title for _, page in pages] == ["Intro", "About your pets", "Cats only"]

    def test_pages_paired_with_block(self, survey):
        pages = visible_pages(survey, {"has_pet": "Yes", "kinds": ["Cat"]})
        assert [block.name for block, _ in pages] == ["Start", "Pets", "Pets"]


class TestComputedConditions:
    def test_section_follows_computed_value(self, survey):
        page = survey.blocks[1].pages[0]
        assert [s.title for s in visible_sections(page, {}, {"many_pets": True})] == ["Dogs"]
        assert visible_sections(page, {}, {"many_pets": False}) == []

    def test_computed_resolved_when_not_given(self, survey):
        """Without computed values the survey's COMPUTE lines are resolved."""
        variables = {"has_pet": "Yes", "pet_count": "1", "kinds": ["Cat"]}
        titles = [page.title for _, page in visible_pages(survey, variables)]
        assert "Cats only" in titles


class TestItemsAndRows:
    def test_options(self, survey):
        question = survey.get_question("Q3")
        labels = [o.label for o in visible_options(question, {}, {"many_pets": False})]
        assert labels == ["Dog", "Cat"]
        labels = [o.label for o in visible_options(question, {}, {"many_pets": True})]
        assert labels == ["Dog", "Cat", "Parrot"]

    def test_subquestions(self, survey):
        question = survey.get_question("Q4")
        rows = visible_subquestions(question, {}, {"many_pets": False})
        assert [row.text for row in rows] == ["Food"]

    def test_items_keep_text(self, survey):
        section = survey.blocks[1].pages[1].sections[0]
        items = visible_items(section, {}, {"many_pets": True})
        assert len(items) == 1
        assert items[0].value == "Cat text."

    def test_question_without_rows(self, survey):
        assert visible_subquestions(survey.get_question("Q1"), {}) == []
