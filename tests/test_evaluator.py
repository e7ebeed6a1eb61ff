"""Evaluator unit tests — comparisons, functions and multi-valued answers.

Semantics under test:
    =, !=               — any-match / all-differ over multi-valued answers
    <, <=, >, >=        — numeric and date ordering (any value may satisfy)
    and, or, not        — short-circuit, so exists() can guard answer-of()
    exists(id)          — answered and not an empty selection
    count(id)           — number of recorded values, 0 when unanswered
    memberOf(id, lit)   — literal among the recorded values
"""

from datetime import date

import pytest

from questnav.answers import AnswerStore
from questnav.errors import EvaluationError
from questnav.expression import parse


def _ev(evaluator, source, answers):
    """Parse ``source`` and evaluate it against a plain dict of answers."""
    return evaluator.evaluate(parse(source), AnswerStore(answers))


# =====================================================================
# Comparisons
# =====================================================================


class TestComparisons:
    """Scalar comparisons with literal-driven conversion."""

    def test_string_equality(self, evaluator):
        assert _ev(evaluator, "answer-of(q1) = 'Yes'", {"q1": "Yes"}) is True
        assert _ev(evaluator, "answer-of(q1) = 'Yes'", {"q1": "No"}) is False

    def test_not_equal(self, evaluator):
        assert _ev(evaluator, "q1 != 'Yes'", {"q1": "No"}) is True
        assert _ev(evaluator, "q1 != 'Yes'", {"q1": "Yes"}) is False

    def test_numeric_ordering(self, evaluator):
        assert _ev(evaluator, "age >= 18", {"age": 18}) is True
        assert _ev(evaluator, "age > 18", {"age": 18}) is False
        assert _ev(evaluator, "age < 18.5", {"age": 18}) is True
        assert _ev(evaluator, "age <= 17", {"age": 18}) is False

    def test_numeric_strings_are_converted(self, evaluator):
        """A number recorded as text still compares numerically."""
        assert _ev(evaluator, "temp > 38", {"temp": "38.6"}) is True

    def test_integer_equals_decimal(self, evaluator):
        assert _ev(evaluator, "score = 5", {"score": 5.0}) is True

    def test_date_ordering(self, evaluator):
        answers = {"onset": "2021-08-31"}
        assert _ev(evaluator, "onset > @2021-08", answers) is True
        assert _ev(evaluator, "onset < @2021", answers) is False
        assert _ev(evaluator, "onset = @2021-08-31", {"onset": date(2021, 8, 31)}) is True

    def test_boolean_equality(self, evaluator):
        assert _ev(evaluator, "pregnant = true", {"pregnant": True}) is True
        assert _ev(evaluator, "pregnant = true", {"pregnant": "false"}) is False

    def test_boolean_ordering_is_an_error(self, evaluator):
        with pytest.raises(EvaluationError):
            _ev(evaluator, "pregnant > false", {"pregnant": True})

    def test_coded_answer_compares_by_code(self, evaluator):
        """Answers recorded as {code, display} dicts compare on the code."""
        answers = {"sex": {"code": "female", "display": "Female"}}
        assert _ev(evaluator, "sex = 'female'", answers) is True

    def test_unconvertible_value_raises(self, evaluator):
        with pytest.raises(EvaluationError):
            _ev(evaluator, "age > 3", {"age": "three"})

    def test_combined_example(self, evaluator):
        """Both halves must hold; changing the second answer flips the result."""
        source = "answer-of(q1) = 'Yes' and answer-of(q2) = 'green'"
        answers = AnswerStore({"q1": "Yes", "q2": "green"})
        node = parse(source)
        assert evaluator.evaluate(node, answers) is True

        answers.record("q2", "orange")
        assert evaluator.evaluate(node, answers) is False


# =====================================================================
# Multi-valued answers
# =====================================================================


class TestMultiValued:
    """Lists recorded by multiple_choice items."""

    def test_equality_is_any_match(self, evaluator):
        answers = {"sx": ["fever", "cough"]}
        assert _ev(evaluator, "sx = 'cough'", answers) is True
        assert _ev(evaluator, "sx = 'rash'", answers) is False

    def test_not_equal_is_all_differ(self, evaluator):
        answers = {"sx": ["fever", "cough"]}
        assert _ev(evaluator, "sx != 'rash'", answers) is True
        assert _ev(evaluator, "sx != 'cough'", answers) is False, \
            "!= must fail when any element equals the operand"

    def test_ordering_is_any_match(self, evaluator):
        assert _ev(evaluator, "readings > 10", {"readings": [3, 12]}) is True
        assert _ev(evaluator, "readings > 20", {"readings": [3, 12]}) is False


# =====================================================================
# Functions
# =====================================================================


class TestFunctions:
    """exists, count and memberOf."""

    def test_exists_on_empty_string(self, evaluator):
        """An empty-string answer is still an answer."""
        assert _ev(evaluator, "exists(q1)", {"q1": ""}) is True

    def test_exists_on_empty_selection(self, evaluator):
        assert _ev(evaluator, "exists(q1)", {"q1": []}) is False

    def test_exists_unanswered(self, evaluator):
        assert _ev(evaluator, "exists(q1)", {}) is False
        assert _ev(evaluator, "not exists(q1)", {}) is True

    def test_exists_false_answer(self, evaluator):
        """A recorded False is an answer too."""
        assert _ev(evaluator, "exists(q1)", {"q1": False}) is True

    def test_count(self, evaluator):
        assert _ev(evaluator, "count(sx) = 2", {"sx": ["a", "b"]}) is True
        assert _ev(evaluator, "count(sx) = 1", {"sx": "a"}) is True
        assert _ev(evaluator, "count(sx) = 0", {}) is True

    def test_member_of(self, evaluator):
        answers = {"sx": ["fever", "cough"]}
        assert _ev(evaluator, "memberOf(sx, 'fever')", answers) is True
        assert _ev(evaluator, "memberOf(sx, 'rash')", answers) is False
        assert _ev(evaluator, "memberOf(sx, 'fever')", {}) is False

    def test_member_of_numeric(self, evaluator):
        assert _ev(evaluator, "memberOf(n, 3)", {"n": [1, 3]}) is True


# =====================================================================
# Boolean structure and faults
# =====================================================================


class TestBooleanStructure:
    """Short-circuiting and evaluation faults."""

    def test_unanswered_reference_raises(self, evaluator):
        with pytest.raises(EvaluationError):
            _ev(evaluator, "answer-of(q1) = 'Yes'", {})

    def test_exists_guards_answer_of(self, evaluator):
        """and stops before touching the unanswered question."""
        assert _ev(evaluator, "exists(q1) and answer-of(q1) = 'Yes'", {}) is False

    def test_or_short_circuits(self, evaluator):
        assert _ev(evaluator, "not exists(q1) or answer-of(q1) = 'Yes'", {}) is True

    def test_non_boolean_result_raises(self, evaluator):
        with pytest.raises(EvaluationError):
            _ev(evaluator, "count(q1)", {"q1": ["a"]})

    def test_bare_boolean_answer_is_truthy_operand(self, evaluator):
        """A single recorded boolean can stand on its own."""
        assert _ev(evaluator, "smoker and exists(age)", {"smoker": True, "age": 40}) is True

    def test_plain_mapping_is_accepted(self, evaluator):
        assert evaluator.evaluate(parse("q1 = 1"), {"q1": 1}) is True

    def test_evaluation_does_not_mutate(self, evaluator):
        answers = AnswerStore({"q1": ["a", "b"]})
        before = dict(answers.snapshot())
        _ev(evaluator, "q1 = 'a'", dict(before))
        evaluator.evaluate(parse("count(q1) = 2"), answers)
        assert dict(answers.snapshot()) == before
