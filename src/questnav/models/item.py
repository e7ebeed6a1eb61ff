"""Questionnaire item models.

An :class:`Item` is one node of the questionnaire tree.  Its ``kind``
decides how it is rendered by the host and how its answers are compared
and serialized:

  Answerable:
    - single_choice / multiple_choice / open_choice: pick from options
    - text: free text
    - integer / decimal / slider: numbers
    - boolean: yes/no
    - date / date_time / time: calendar values

  Structural:
    - display: informational text, never answered
    - group: container whose children are flattened into the step list

Answer options come either inline (``answer_options``) or from a value set
contained in the questionnaire (``answer_value_set: "#id"``).
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .condition import Condition, tag_condition

ItemKind = Literal[
    "single_choice",
    "multiple_choice",
    "open_choice",
    "text",
    "integer",
    "decimal",
    "boolean",
    "date",
    "date_time",
    "time",
    "slider",
    "display",
    "group",
]


# --- Options and value sets ---

def _stringify_code(v: Any) -> Any:
    # YAML turns unquoted codes like 1 or yes into int / bool
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    return v


class AnswerOption(BaseModel):
    """A selectable answer; answers are recorded by ``code``."""

    code: str
    display: Optional[str] = None
    system: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def _code_to_str(cls, v: Any) -> Any:
        return _stringify_code(v)

    @property
    def label(self) -> str:
        return self.display if self.display is not None else self.code


class ValueSetConcept(BaseModel):
    """One concept of a contained value set; may nest further concepts."""

    code: str
    display: Optional[str] = None
    system: Optional[str] = None
    abstract: bool = False
    contains: List["ValueSetConcept"] = Field(default_factory=list)

    @field_validator("code", mode="before")
    @classmethod
    def _code_to_str(cls, v: Any) -> Any:
        return _stringify_code(v)


class ValueSet(BaseModel):
    """A value set embedded in the questionnaire (``contained``)."""

    id: str
    name: Optional[str] = None
    system: Optional[str] = None
    concepts: List[ValueSetConcept] = Field(default_factory=list)


# --- Items ---

class Item(BaseModel):
    """One question, display or group node of the questionnaire tree."""

    link_id: str
    kind: ItemKind
    text: str = ""
    required: bool = False

    # Numeric bounds for integer/decimal/slider, ISO strings for dates
    min_value: Optional[Union[float, str]] = None
    max_value: Optional[Union[float, str]] = None
    step: Optional[float] = None
    date_precision: Literal["year", "month", "day"] = "day"

    answer_options: List[AnswerOption] = Field(default_factory=list)
    answer_value_set: Optional[str] = None

    items: List["Item"] = Field(default_factory=list)

    enable_when: List[Condition] = Field(default_factory=list)
    enable_behavior: Optional[str] = None

    @field_validator("enable_when", mode="before")
    @classmethod
    def _tag_conditions(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [tag_condition(raw) for raw in v]
        return v

    @field_validator("min_value", "max_value", mode="before")
    @classmethod
    def _dates_to_iso(cls, v: Any) -> Any:
        # YAML parses unquoted 2021-08-31 into datetime.date
        if isinstance(v, date):
            return v.isoformat()
        return v

    @model_validator(mode="after")
    def _chk(self):
        lo, hi = self.min_value, self.max_value
        if lo is not None and hi is not None and type(lo) is type(hi) and lo >= hi:
            raise ValueError(f"{self.link_id}: min_value must be < max_value")
        return self

    @property
    def is_group(self) -> bool:
        return self.kind == "group"

    @property
    def is_answerable(self) -> bool:
        """True if the item can hold an answer (not display, not group)."""
        return self.kind not in ("display", "group")

    def walk(self):
        """Yield this item and all descendants in document (pre-)order."""
        yield self
        for child in self.items:
            yield from child.walk()


class Questionnaire(BaseModel):
    """Root of a questionnaire definition.

    ``url`` is the canonical identifier; ``id`` is a short local key (the
    store falls back to the file name).
    """

    id: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    version: Optional[str] = None
    items: List[Item] = Field(default_factory=list)
    contained: List[ValueSet] = Field(default_factory=list)

    def walk(self):
        """Yield every item of the tree in document order."""
        for item in self.items:
            yield from item.walk()
