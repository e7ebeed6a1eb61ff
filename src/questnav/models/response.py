"""Questionnaire response models — the output of the response serializer.

The shape mirrors the item tree: each :class:`ResponseItem` carries the
answers recorded for one item and, for groups, the nested response items.
Each :class:`ResponseAnswer` sets exactly one ``value_*`` field, chosen by
the originating item's kind.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class Coding(BaseModel):
    """A coded answer (the selected option)."""

    code: str
    display: Optional[str] = None
    system: Optional[str] = None


class ResponseAnswer(BaseModel):
    """A single typed answer value."""

    value_boolean: Optional[bool] = None
    value_integer: Optional[int] = None
    value_decimal: Optional[float] = None
    value_string: Optional[str] = None
    value_date: Optional[str] = None
    value_date_time: Optional[str] = None
    value_time: Optional[str] = None
    value_coding: Optional[Coding] = None

    @model_validator(mode="after")
    def _chk(self):
        populated = [
            name for name in type(self).model_fields if getattr(self, name) is not None
        ]
        if len(populated) != 1:
            raise ValueError(
                f"exactly one value_* field must be set, got {populated or 'none'}"
            )
        return self

    @property
    def value_type(self) -> str:
        """Name of the populated value field (e.g. ``value_coding``)."""
        for name in type(self).model_fields:
            if getattr(self, name) is not None:
                return name
        raise AssertionError("unreachable: validator guarantees one value")


class ResponseItem(BaseModel):
    """Answers for one item, or nested items for a group."""

    link_id: str
    text: Optional[str] = None
    answers: List[ResponseAnswer] = Field(default_factory=list)
    items: List["ResponseItem"] = Field(default_factory=list)


class QuestionnaireResponse(BaseModel):
    """Structured response document for one completed (or partial) interview."""

    questionnaire: Optional[str] = None
    status: Literal["in-progress", "completed", "amended", "stopped"] = "completed"
    authored: Optional[datetime] = None
    items: List[ResponseItem] = Field(default_factory=list)

    def find(self, link_id: str) -> ResponseItem | None:
        """Depth-first lookup of the response item for ``link_id``."""
        stack = list(reversed(self.items))
        while stack:
            node = stack.pop()
            if node.link_id == link_id:
                return node
            stack.extend(reversed(node.items))
        return None
