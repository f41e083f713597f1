"""
Tests for the computed-variable resolver.
"""

import pytest

from surveytext.computed import (
    ComputedCache,
    dependency_order,
    evaluate_computed,
    expression_dependencies,
    is_boolean_expression,
    resolve_computed_variables,
    resolve_scope,
    resolve_survey,
)
from surveytext.model import Block, ComputedVariable, Page, Survey


def cv(name, expression):
    return ComputedVariable(name=name, expression=expression)


class TestClassification:
    @pytest.mark.parametrize("expression", [
        "age >= 18",
        "member IS Yes",
        "a AND b",
        "NOT flag",
        "STARTS_WITH crime == Yes",
        "a || b",
    ])
    def test_boolean(self, expression):
        assert is_boolean_expression(expression)

    @pytest.mark.parametrize("expression", ["rent + food", "base * 2", "(a - b) / 3", "total"])
    def test_not_boolean(self, expression):
        """Multiplication is arithmetic, never a wildcard."""
        assert not is_boolean_expression(expression)

    def test_dependencies_skip_reserved_words(self):
        assert expression_dependencies("a > 3 AND NOT b IS true") == ["a", "b"]


class TestDependencyOrder:
    def test_dependencies_first(self):
        declared = [cv("total", "subtotal + tax"), cv("subtotal", "a + b"), cv("tax", "subtotal * 0.2")]
        ordered, complete = dependency_order(declared)
        names = [var.name for var in ordered]
        assert complete
        assert names.index("subtotal") < names.index("tax") < names.index("total")

    def test_independent_keep_declaration_order(self):
        declared = [cv("x", "a + 1"), cv("y", "b + 1")]
        ordered, _ = dependency_order(declared)
        assert [var.name for var in ordered] == ["x", "y"]

    def test_cycle_falls_back_to_declaration_order(self):
        declared = [cv("a", "b + 1"), cv("b", "a + 1"), cv("c", "1 + 1")]
        ordered, complete = dependency_order(declared)
        assert not complete
        assert [var.name for var in ordered] == ["a", "b", "c"]

    def test_self_reference_is_a_cycle(self):
        _, complete = dependency_order([cv("a", "a + 1")])
        assert not complete


class TestEvaluation:
    def test_arithmetic(self):
        assert evaluate_computed(cv("t", "rent + food"), {"rent": "10", "food": "5"}, {}) == 15

    def test_boolean(self):
        assert evaluate_computed(cv("adult", "age >= 18"), {"age": "30"}, {}) is True
        assert evaluate_computed(cv("adult", "age >= 18"), {"age": "12"}, {}) is False

    def test_bare_name_is_boolean_test(self):
        assert evaluate_computed(cv("any_pets", "pets"), {"pets": ["Dog"]}, {}) is True

    def test_chained_values(self):
        declared = [cv("big", "total > 100"), cv("total", "a + b")]
        values = resolve_computed_variables(declared, {"a": "60", "b": "50"})
        assert values == {"total": 110.0, "big": True}

    def test_declaration_order_does_not_matter(self):
        declared = [cv("total", "a + b"), cv("a", "base * 2")]
        values = resolve_computed_variables(declared, {"base": "5", "b": "1"})
        assert values["a"] == 10
        assert values["total"] == 11

    def test_failure_does_not_stop_siblings(self):
        declared = [cv("broken", "a / b"), cv("ok", "a + 1")]
        values = resolve_computed_variables(declared, {"a": "4", "b": "0"})
        assert values["broken"] == 0
        assert values["ok"] == 5

    def test_cycle_warns(self):
        declared = [cv("a", "b + 1"), cv("b", "a + 1")]
        with pytest.warns(UserWarning, match="circular dependency"):
            values = resolve_computed_variables(declared, {})
        assert set(values) == {"a", "b"}

    def test_prior_values_visible_and_kept(self):
        values = resolve_computed_variables([cv("double", "base * 2")], {}, prior={"base": 4.0})
        assert values == {"base": 4.0, "double": 8.0}


class TestScopes:
    def test_page_sees_block_values(self):
        block = Block(name="B", computed_variables=[cv("base", "a + 1")])
        page = Page(title="P", computed_variables=[cv("double", "base * 2")])
        block.pages.append(page)
        assert resolve_scope(block, page, {"a": "2"}) == {"base": 3.0, "double": 6.0}

    def test_page_wins_on_collision(self):
        block = Block(name="B", computed_variables=[cv("x", "1 + 1")])
        page = Page(computed_variables=[cv("x", "2 + 2")])
        assert resolve_scope(block, page, {})["x"] == 4

    def test_resolve_survey_is_cumulative(self):
        first = Block(name="First", pages=[Page(computed_variables=[cv("score", "a + b")])])
        second = Block(name="Second", computed_variables=[cv("high", "score > 5")])
        survey = Survey(blocks=[first, second])
        assert resolve_survey(survey, {"a": "3", "b": "4"}) == {"score": 7.0, "high": True}


class TestCache:
    def test_memoizes_until_invalidated(self):
        page = Page(computed_variables=[cv("x", "a + 1")])
        block = Block(name="B", pages=[page])
        cache = ComputedCache()

        assert cache.get(block, page, {"a": "1"}) == {"x": 2.0}
        assert cache.get(block, page, {"a": "5"}) == {"x": 2.0}
        assert len(cache) == 1

        cache.invalidate()
        assert len(cache) == 0
        assert cache.get(block, page, {"a": "5"}) == {"x": 6.0}

    def test_pages_with_equal_content_are_separate_entries(self):
        first, second = Page(), Page()
        block = Block(name="B", pages=[first, second])
        cache = ComputedCache()
        cache.get(block, first, {})
        cache.get(block, second, {})
        assert len(cache) == 2
