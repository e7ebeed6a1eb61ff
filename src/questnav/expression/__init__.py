"""Restricted expression language used by visibility conditions.

Only what visibility decisions need: boolean combinators, comparisons and
three functions (``exists``, ``count``, ``memberOf``).  Parsing happens
once at questionnaire load time; evaluation happens at every navigation
decision.

Usage::

    node = parse("answer-of(q1) = 'Yes' and not exists(q2)")
    Evaluator().evaluate(node, answers)
"""

from questnav.expression.ast import (
    AnswerRef,
    BooleanOp,
    Comparison,
    FunctionCall,
    Literal,
    Node,
    Not,
    referenced_ids,
    to_source,
)
from questnav.expression.evaluator import Evaluator
from questnav.expression.lexer import Token, tokenize
from questnav.expression.parser import parse

__all__ = [
    "AnswerRef",
    "BooleanOp",
    "Comparison",
    "Evaluator",
    "FunctionCall",
    "Literal",
    "Node",
    "Not",
    "Token",
    "parse",
    "referenced_ids",
    "to_source",
    "tokenize",
]
