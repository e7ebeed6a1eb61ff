"""ConditionCompiler — turns an item's ``enable_when`` list into one Predicate.

Both condition shapes end up as an expression AST evaluated by the same
:class:`~questnav.expression.Evaluator`:

  - simple conditions are converted directly into an AST (no parser), with
    the literal's type taken from the referenced item's kind
  - expression conditions are parsed once, here, at load time

The resulting :class:`Predicate` objects are what the navigation layer
evaluates at every advance/back; it never needs to know which condition
shape an item used.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from questnav.answers import AnswerStore
from questnav.constants import DATE_KINDS, DEFAULT_ENABLE_BEHAVIOR, NUMERIC_KINDS
from questnav.errors import CompileError, EvaluationError, ParseError, StructuralError
from questnav.expression import (
    AnswerRef,
    Comparison,
    Evaluator,
    FunctionCall,
    Literal,
    Node,
    Not,
    parse,
    referenced_ids,
    to_source,
)
from questnav.expression.lexer import parse_date_literal
from questnav.models.condition import ExpressionCondition, SimpleCondition
from questnav.models.item import Item

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Predicates
# ----------------------------------------------------------------------

class Predicate(ABC):
    """A compiled boolean function over the answer store."""

    @abstractmethod
    def __call__(self, answers: AnswerStore) -> bool:
        ...

    @abstractmethod
    def describe(self) -> str:
        """Human-readable rendering, used in graph labels and logs."""

    @property
    def is_constant(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()!r})"


class _Always(Predicate):
    def __call__(self, answers: AnswerStore) -> bool:
        return True

    def describe(self) -> str:
        return "always"

    @property
    def is_constant(self) -> bool:
        return True


ALWAYS: Predicate = _Always()


class ConditionCheck(Predicate):
    """One compiled condition: a cached AST evaluated on demand.

    An ``EvaluationError`` (typically an unanswered dependency) means the
    condition is not satisfied yet; it is logged and evaluates to False.
    """

    def __init__(self, node: Node, *, item_id: str, evaluator: Evaluator) -> None:
        self.node = node
        self.item_id = item_id
        self._evaluator = evaluator
        self._source = to_source(node)

    def __call__(self, answers: AnswerStore) -> bool:
        try:
            return self._evaluator.evaluate(self.node, answers)
        except EvaluationError as exc:
            logger.debug("Condition on %s treated as false: %s", self.item_id, exc)
            return False

    def describe(self) -> str:
        return self._source


class AllOf(Predicate):
    """Conjunction; stops at the first false operand."""

    def __init__(self, operands: Iterable[Predicate]) -> None:
        self.operands = tuple(operands)

    def __call__(self, answers: AnswerStore) -> bool:
        return all(p(answers) for p in self.operands)

    def describe(self) -> str:
        return " and ".join(_paren(p) for p in self.operands)


class AnyOf(Predicate):
    """Disjunction; stops at the first true operand."""

    def __init__(self, operands: Iterable[Predicate]) -> None:
        self.operands = tuple(operands)

    def __call__(self, answers: AnswerStore) -> bool:
        return any(p(answers) for p in self.operands)

    def describe(self) -> str:
        return " or ".join(_paren(p) for p in self.operands)


class Negation(Predicate):
    def __init__(self, operand: Predicate) -> None:
        self.operand = operand

    def __call__(self, answers: AnswerStore) -> bool:
        return not self.operand(answers)

    def describe(self) -> str:
        return f"not {_paren(self.operand)}"


def _paren(p: Predicate) -> str:
    if isinstance(p, (AllOf, AnyOf)):
        return f"({p.describe()})"
    return p.describe()


def all_of(predicates: Iterable[Predicate]) -> Predicate:
    """Conjunction that drops constant-true operands and avoids 1-element wrappers."""
    operands = [p for p in predicates if not p.is_constant]
    if not operands:
        return ALWAYS
    if len(operands) == 1:
        return operands[0]
    return AllOf(operands)


# ----------------------------------------------------------------------
# Item index
# ----------------------------------------------------------------------

def index_items(items: Iterable[Item]) -> dict[str, tuple[int, Item]]:
    """Map every link_id in the tree to ``(document position, item)``.

    Raises:
        StructuralError: on duplicate link_ids.
    """
    index: dict[str, tuple[int, Item]] = {}
    position = 0
    for root in items:
        for item in root.walk():
            if item.link_id in index:
                raise StructuralError(f"duplicate link_id '{item.link_id}'")
            index[item.link_id] = (position, item)
            position += 1
    return index


# ----------------------------------------------------------------------
# Compiler
# ----------------------------------------------------------------------

class ConditionCompiler:
    """Compiles item conditions against an item index (see :func:`index_items`)."""

    def __init__(
        self,
        index: Mapping[str, tuple[int, Item]],
        evaluator: Evaluator | None = None,
    ) -> None:
        self._index = index
        self._evaluator = evaluator or Evaluator()

    def compile(self, item: Item) -> Predicate:
        """Return the predicate deciding whether ``item`` itself is enabled.

        Ancestor groups are not considered here; the navigation builder
        combines the predicates along the path.

        Raises:
            ParseError: malformed expression (names the item).
            CompileError: unknown reference or bad combination mode.
            StructuralError: reference to an item not declared earlier.
        """
        conditions = item.enable_when
        mode = self._combination_mode(item)
        if not conditions:
            return ALWAYS

        leaves = [self._compile_condition(item, cond) for cond in conditions]
        if len(leaves) == 1:
            return leaves[0]
        return AllOf(leaves) if mode == "all" else AnyOf(leaves)

    def _combination_mode(self, item: Item) -> str:
        mode = item.enable_behavior
        if mode is None:
            if len(item.enable_when) > 1:
                logger.warning(
                    "Item %s has %d conditions but no enable_behavior; defaulting to '%s'",
                    item.link_id, len(item.enable_when), DEFAULT_ENABLE_BEHAVIOR,
                )
            mode = DEFAULT_ENABLE_BEHAVIOR
        mode = mode.lower()
        if mode not in ("all", "any"):
            raise CompileError(
                f"enable_behavior must be 'all' or 'any', got '{mode}'",
                item_id=item.link_id,
            )
        return mode

    def _compile_condition(
        self, item: Item, cond: SimpleCondition | ExpressionCondition
    ) -> Predicate:
        if isinstance(cond, ExpressionCondition):
            try:
                node = parse(cond.expression)
            except ParseError as exc:
                raise exc.with_item(item.link_id) from exc
            for ref in referenced_ids(node):
                self._check_reference(item, ref)
        else:
            ref_item = self._check_reference(item, cond.question)
            node = self._simple_to_ast(item, cond, ref_item)
        return ConditionCheck(node, item_id=item.link_id, evaluator=self._evaluator)

    def _check_reference(self, item: Item, ref: str) -> Item:
        entry = self._index.get(ref)
        if entry is None:
            raise CompileError(f"condition references unknown question '{ref}'", item_id=item.link_id)
        ref_pos, ref_item = entry
        own_pos = self._index[item.link_id][0]
        if ref_pos >= own_pos:
            raise StructuralError(
                f"item '{item.link_id}' references '{ref}', which is not declared before it"
            )
        if not ref_item.is_answerable:
            raise CompileError(
                f"condition references '{ref}', a {ref_item.kind} item that holds no answers",
                item_id=item.link_id,
            )
        return ref_item

    def _simple_to_ast(self, item: Item, cond: SimpleCondition, ref_item: Item) -> Node:
        ref = AnswerRef(cond.question)
        if cond.operator == "exists":
            wanted = _as_bool(cond.answer, default=True)
            if wanted is None:
                raise CompileError(
                    f"'exists' expects a boolean operand, got {cond.answer!r}",
                    item_id=item.link_id,
                )
            call = FunctionCall("exists", (ref,))
            return call if wanted else Not(call)

        if cond.answer is None:
            raise CompileError(
                f"operator '{cond.operator}' needs an answer operand", item_id=item.link_id,
            )
        try:
            literal = _literal_for(ref_item, cond.answer)
        except (ValueError, InvalidOperation) as exc:
            raise CompileError(
                f"operand {cond.answer!r} does not fit {ref_item.kind} item '{ref_item.link_id}': {exc}",
                item_id=item.link_id,
            ) from exc
        return Comparison(cond.operator, ref, literal)


# ----------------------------------------------------------------------
# Literal typing for simple conditions
# ----------------------------------------------------------------------

def _as_bool(value: Any, *, default: bool | None = None) -> bool | None:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _literal_for(ref_item: Item, value: Any) -> Literal:
    """Type the operand according to the referenced item's kind."""
    kind = ref_item.kind

    if kind in DATE_KINDS:
        if isinstance(value, datetime):
            return Literal(value.date(), "date")
        if isinstance(value, date):
            return Literal(value, "date")
        return Literal(parse_date_literal(str(value).strip()), "date")

    if kind in NUMERIC_KINDS:
        if isinstance(value, bool):
            raise ValueError("booleans are not numbers")
        if isinstance(value, int):
            return Literal(value, "integer")
        number = Decimal(str(value).strip())
        if not number.is_finite():
            raise ValueError("not a finite number")
        if number == number.to_integral_value() and "." not in str(value):
            return Literal(int(number), "integer")
        return Literal(number, "decimal")

    if kind == "boolean":
        flag = _as_bool(value)
        if flag is None:
            raise ValueError("expected true or false")
        return Literal(flag, "boolean")

    if isinstance(value, dict) and "code" in value:
        value = value["code"]
    if isinstance(value, bool):
        value = "true" if value else "false"
    return Literal(str(value), "string")
