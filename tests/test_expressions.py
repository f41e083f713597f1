"""
Tests for the arithmetic expression system.

Expressions are parsed into an AST and evaluated by walking it, so these
tests check both the tree shape (precedence) and the evaluation policy
(unknown names are 0, failures are 0, nothing raises).
"""

import logging

import pytest

from surveytext.expressions import (
    BinaryExpression,
    BinaryOperator,
    ExpressionSyntaxError,
    Literal,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
    evaluate_expression,
    find_identifiers,
    is_arithmetic_expression,
    parse_arithmetic,
)


class TestParsing:
    """AST construction."""

    def test_precedence(self):
        """Multiplication binds tighter than addition."""
        tree = parse_arithmetic("rent + food * 2")
        assert tree == BinaryExpression(
            operator=BinaryOperator.ADD,
            left=VariableReference("rent"),
            right=BinaryExpression(
                operator=BinaryOperator.MULTIPLY,
                left=VariableReference("food"),
                right=Literal(2.0),
            ),
        )

    def test_left_associative(self):
        """a - b - c is (a - b) - c."""
        tree = parse_arithmetic("a - b - c")
        assert isinstance(tree, BinaryExpression)
        assert tree.right == VariableReference("c")
        assert tree.left == BinaryExpression(BinaryOperator.SUBTRACT, VariableReference("a"), VariableReference("b"))

    def test_parentheses(self):
        tree = parse_arithmetic("(a + b) * 2")
        assert tree.operator == BinaryOperator.MULTIPLY
        assert tree.left.operator == BinaryOperator.ADD

    def test_unary_minus(self):
        tree = parse_arithmetic("-x")
        assert tree == UnaryExpression(UnaryOperator.NEGATE, VariableReference("x"))

    def test_nodes_are_immutable(self):
        node = VariableReference("x")
        with pytest.raises(AttributeError):
            node.name = "y"

    @pytest.mark.parametrize("text", ["", "a +", "(a + b", "a b", "a $ b", "* 2"])
    def test_malformed_input_raises(self, text):
        with pytest.raises(ExpressionSyntaxError):
            parse_arithmetic(text)


class TestEvaluation:
    """evaluate_expression is total."""

    def test_sum_of_answers(self):
        variables = {"rent": "1200", "food": "300", "transport": 150}
        assert evaluate_expression("rent + food + transport", variables) == 1650

    def test_precedence_in_evaluation(self):
        assert evaluate_expression("2 + 3 * 4", {}) == 14
        assert evaluate_expression("(2 + 3) * 4", {}) == 20

    def test_unknown_names_are_zero(self):
        assert evaluate_expression("missing + 5", {}) == 5

    def test_list_counts_its_items(self):
        """A checkbox answer contributes its number of selections."""
        assert evaluate_expression("pets * 10", {"pets": ["Dog", "Cat"]}) == 20

    def test_boolean_words(self):
        assert evaluate_expression("a + b", {"a": "yes", "b": True}) == 2

    def test_computed_values_take_precedence(self):
        assert evaluate_expression("x + 1", {"x": 1}, {"x": 10}) == 11

    def test_division_by_zero_is_zero(self, caplog):
        """Failures return 0 and are logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="surveytext.expressions"):
            assert evaluate_expression("a / b", {"a": 4, "b": 0}) == 0
        assert "a / b" in caplog.text

    def test_malformed_is_zero(self):
        assert evaluate_expression("a +", {"a": 3}) == 0


class TestDetection:
    """Arithmetic vs plain text."""

    @pytest.mark.parametrize("text", ["a + b", "x * 2", "(a)", "rent + insurance", "total - 5"])
    def test_arithmetic(self, text):
        assert is_arithmetic_expression(text)

    @pytest.mark.parametrize("text", ["age", "Yes", "Text/essay questions", "Several weeks or more", "12", ""])
    def test_not_arithmetic(self, text):
        """Bare names, labels and numbers are not arithmetic."""
        assert not is_arithmetic_expression(text)

    def test_find_identifiers(self):
        assert find_identifiers("rent + food * 2 + rent") == ["rent", "food"]

    def test_find_identifiers_skips_decimals(self):
        assert find_identifiers("price * 1.5") == ["price"]
