"""Evaluator — computes the boolean value of an expression AST.

Evaluation is pure: it reads the answer store and never mutates it, so the
same AST can be evaluated at every navigation decision.

Semantics:
  - ``answer-of(id)`` on an unanswered question raises ``EvaluationError``;
    guard it with ``exists(id) and ...`` (``and``/``or`` short-circuit)
  - conversions follow the literal's declared type; a comparison without a
    literal infers the type from the other operand
  - multi-valued answers: ``=`` holds if ANY value equals the operand,
    ``!=`` holds if ALL values differ, ordering holds if any value satisfies it
  - ``exists(id)``: an answer is recorded and is not an empty selection
  - ``count(id)``: number of recorded values (0 when unanswered)
  - ``memberOf(id, literal)``: literal is among the recorded values
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from questnav.answers import AnswerStore
from questnav.errors import EvaluationError
from questnav.expression.ast import (
    AnswerRef,
    BooleanOp,
    Comparison,
    FunctionCall,
    Literal,
    Node,
    Not,
)
from questnav.expression.lexer import parse_date_literal

logger = logging.getLogger(__name__)

_ORDERING = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class _Values:
    """The (non-empty) list of values recorded for one question."""

    link_id: str
    items: tuple[Any, ...]


class Evaluator:
    """Evaluates expression ASTs against an :class:`AnswerStore`."""

    def evaluate(self, node: Node, answers: AnswerStore | Mapping[str, Any]) -> bool:
        """Return the boolean value of ``node``.

        Raises:
            EvaluationError: if a referenced answer is missing, a value cannot
                be converted, or the expression does not yield a boolean.
        """
        if not isinstance(answers, AnswerStore):
            answers = AnswerStore(answers)
        return self._truth(self._eval(node, answers), node)

    # ------------------------------------------------------------------
    # Node dispatch
    # ------------------------------------------------------------------

    def _eval(self, node: Node, answers: AnswerStore) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, AnswerRef):
            values = answers.values(node.link_id)
            if not values:
                raise EvaluationError(f"question '{node.link_id}' has no recorded answer")
            return _Values(node.link_id, tuple(values))

        if isinstance(node, Not):
            return not self._truth(self._eval(node.operand, answers), node.operand)

        if isinstance(node, BooleanOp):
            if node.operator == "and":
                for operand in node.operands:
                    if not self._truth(self._eval(operand, answers), operand):
                        return False
                return True
            for operand in node.operands:
                if self._truth(self._eval(operand, answers), operand):
                    return True
            return False

        if isinstance(node, Comparison):
            return self._compare(node, answers)

        if isinstance(node, FunctionCall):
            return self._call(node, answers)

        raise EvaluationError(f"Unknown node type: {type(node).__name__}")

    def _truth(self, value: Any, node: Node) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, _Values) and len(value.items) == 1:
            try:
                return _coerce(value.items[0], "boolean")
            except EvaluationError:
                pass
        raise EvaluationError(f"expression {type(node).__name__} does not yield a boolean")

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def _compare(self, node: Comparison, answers: AnswerStore) -> bool:
        left = self._eval(node.left, answers)
        right = self._eval(node.right, answers)
        target = _target_type(node, left, right)

        lhs = [_coerce(v, target) for v in _as_list(left)]
        rhs = [_coerce(v, target) for v in _as_list(right)]

        if node.operator == "=":
            return any(a == b for a in lhs for b in rhs)
        if node.operator == "!=":
            return all(a != b for a in lhs for b in rhs)

        if target == "boolean":
            raise EvaluationError(f"operator '{node.operator}' is not defined for booleans")
        op = _ORDERING.get(node.operator)
        if op is None:
            raise EvaluationError(f"unknown comparison operator '{node.operator}'")
        return any(op(a, b) for a in lhs for b in rhs)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def _call(self, node: FunctionCall, answers: AnswerStore) -> Any:
        ref = node.args[0]
        if not isinstance(ref, AnswerRef):
            raise EvaluationError(f"{node.name}() expects a question identifier")
        values = answers.values(ref.link_id)

        if node.name == "exists":
            return bool(values)
        if node.name == "count":
            return len(values)
        if node.name == "memberOf":
            literal = node.args[1]
            if not isinstance(literal, Literal):
                raise EvaluationError("memberOf() expects a literal as second argument")
            for value in values:
                try:
                    if _coerce(value, literal.type) == literal.value:
                        return True
                except EvaluationError:
                    logger.debug(
                        "memberOf(%s): value %r not convertible to %s",
                        ref.link_id, value, literal.type,
                    )
            return False
        raise EvaluationError(f"unknown function '{node.name}'")


# ----------------------------------------------------------------------
# Conversion helpers
# ----------------------------------------------------------------------

def _as_list(value: Any) -> list[Any]:
    if isinstance(value, _Values):
        return list(value.items)
    return [value]


def _type_of(value: Any) -> str:
    if isinstance(value, _Values):
        value = value.items[0]
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, (float, Decimal)):
        return "decimal"
    if isinstance(value, date):
        return "date"
    return "string"


def _target_type(node: Comparison, left: Any, right: Any) -> str:
    """Pick the conversion type: a literal's declared type wins."""
    if isinstance(node.right, Literal):
        return node.right.type
    if isinstance(node.left, Literal):
        return node.left.type
    if not isinstance(right, _Values):
        return _type_of(right)
    return _type_of(left)


def _coerce(value: Any, target: str) -> Any:
    """Convert ``value`` to the Python representation of ``target``."""
    if isinstance(value, dict) and "code" in value:
        # Coded answers recorded as {code, display, system}
        value = value["code"]

    if target == "string":
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    if target in ("integer", "decimal"):
        if isinstance(value, bool):
            raise EvaluationError(f"cannot compare boolean {value!r} as a number")
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise EvaluationError(f"cannot convert {value!r} to a number") from None
        if number.is_nan():
            raise EvaluationError(f"cannot compare {value!r} as a number")
        return number

    if target == "date":
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return parse_date_literal(value.strip())
            except ValueError:
                raise EvaluationError(f"cannot convert {value!r} to a date") from None
        raise EvaluationError(f"cannot convert {value!r} to a date")

    if target == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise EvaluationError(f"cannot convert {value!r} to a boolean")

    raise EvaluationError(f"unknown literal type '{target}'")
