"""AST node definitions for the visibility expression language.

All nodes are frozen dataclasses.  They carry structure only; evaluation
lives in :mod:`questnav.expression.evaluator`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterator, Literal as TypingLiteral, Union

LiteralType = TypingLiteral["boolean", "integer", "decimal", "string", "date"]

# Comparison operators, in the spelling used by the source language.
COMPARISON_OPERATORS: tuple[str, ...] = ("=", "!=", "<", ">", "<=", ">=")

# The closed set of callable functions.
FUNCTIONS: tuple[str, ...] = ("exists", "count", "memberOf")


@dataclass(frozen=True)
class Literal:
    """A constant with its declared type (drives answer conversion)."""

    value: Union[bool, int, Decimal, str, date]
    type: LiteralType


@dataclass(frozen=True)
class AnswerRef:
    """``answer-of(link_id)`` — the answer(s) recorded for a prior question."""

    link_id: str


@dataclass(frozen=True)
class Not:
    operand: "Node"


@dataclass(frozen=True)
class Comparison:
    """``left <operator> right`` with operator in :data:`COMPARISON_OPERATORS`."""

    operator: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class BooleanOp:
    """``and`` / ``or`` over two or more operands, evaluated left to right."""

    operator: TypingLiteral["and", "or"]
    operands: tuple["Node", ...]


@dataclass(frozen=True)
class FunctionCall:
    """``exists(id)``, ``count(id)`` or ``memberOf(id, literal)``."""

    name: str
    args: tuple["Node", ...]


Node = Union[Literal, AnswerRef, Not, Comparison, BooleanOp, FunctionCall]


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants, pre-order."""
    yield node
    if isinstance(node, Not):
        yield from walk(node.operand)
    elif isinstance(node, Comparison):
        yield from walk(node.left)
        yield from walk(node.right)
    elif isinstance(node, BooleanOp):
        for operand in node.operands:
            yield from walk(operand)
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            yield from walk(arg)


def referenced_ids(node: Node) -> list[str]:
    """Question ids referenced anywhere in ``node``, first occurrence order."""
    seen: list[str] = []
    for sub in walk(node):
        if isinstance(sub, AnswerRef) and sub.link_id not in seen:
            seen.append(sub.link_id)
    return seen


def to_source(node: Node) -> str:
    """Render ``node`` back into expression-language source."""
    if isinstance(node, Literal):
        if node.type == "boolean":
            return "true" if node.value else "false"
        if node.type == "string":
            escaped = str(node.value).replace("\\", "\\\\").replace("'", "\\'")
            return f"'{escaped}'"
        if node.type == "date":
            return f"@{node.value.isoformat()}"
        return str(node.value)
    if isinstance(node, AnswerRef):
        return f"answer-of({node.link_id})"
    if isinstance(node, Not):
        return f"not {_grouped(node.operand)}"
    if isinstance(node, Comparison):
        return f"{_grouped(node.left)} {node.operator} {_grouped(node.right)}"
    if isinstance(node, BooleanOp):
        return f" {node.operator} ".join(_grouped(o) for o in node.operands)
    if isinstance(node, FunctionCall):
        args = ", ".join(
            a.link_id if isinstance(a, AnswerRef) else to_source(a) for a in node.args
        )
        return f"{node.name}({args})"
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def _grouped(node: Node) -> str:
    # Anything that is not an operand needs parentheses to survive re-parsing
    if isinstance(node, (BooleanOp, Comparison, Not)):
        return f"({to_source(node)})"
    return to_source(node)
