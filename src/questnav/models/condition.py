"""Visibility condition models.

An item may declare zero or more conditions in ``enable_when``.  Two
shapes are supported:

  - simple: ``{question, operator, answer}`` — compares a prior answer
    against a literal operand
  - expression: ``{expression}`` — a source string in the restricted
    expression language (see ``questnav.expression``)

The discriminated ``Condition`` union uses ``kind`` as its discriminator.
Raw dicts coming from YAML usually omit ``kind``; :func:`tag_condition`
fills it in before validation.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# Comparison operators accepted by simple conditions.
SimpleOperator = Literal["=", "!=", "exists", ">", "<", ">=", "<="]


class SimpleCondition(BaseModel):
    """Compare the answer recorded for ``question`` against ``answer``.

    For ``exists`` the operand is a boolean: ``true`` means "has been
    answered", ``false`` means "has not been answered".
    """

    kind: Literal["simple"] = "simple"
    question: str
    operator: SimpleOperator
    answer: Any = None


class ExpressionCondition(BaseModel):
    """A condition written in the restricted expression language."""

    kind: Literal["expression"] = "expression"
    expression: str


Condition = Annotated[
    Union[SimpleCondition, ExpressionCondition],
    Field(discriminator="kind"),
]


def tag_condition(raw: Any) -> Any:
    """Add the ``kind`` discriminator to an untagged condition dict."""
    if isinstance(raw, dict) and "kind" not in raw:
        kind = "expression" if "expression" in raw else "simple"
        return {**raw, "kind": kind}
    return raw
