"""Step models — the contract between the interview session and its host.

These models describe what the host should render next.  They carry only
what a UI needs and never expose predicates or navigation rules.

Step types:
  - QuestionStep: render one step (a question or an informational display)
  - CompletionStep: the interview has finished

The ``StepResult`` union covers both cases so callers can dispatch on ``type``.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel


class StepPayload(BaseModel):
    """Flattened step for rendering.

    ``interactive`` is False for display items and the completion text, which
    the host shows without collecting an answer.
    """

    link_id: str
    text: str
    kind: str
    required: bool = False
    interactive: bool = True
    # [{code, display, system}] for choice kinds
    options: list[dict] | None = None
    # {min, max, step, precision} where relevant
    constraints: dict | None = None
    # Ancestor group link_ids, outermost first
    group_path: list[str] = []
    # Answer currently recorded for this step (pre-fill after going back)
    current_value: Any = None


class QuestionStep(BaseModel):
    """Session step: show ``step`` and wait for the host to advance."""

    type: Literal["question"] = "question"
    index: int
    total: int
    can_go_back: bool
    step: StepPayload


class CompletionStep(BaseModel):
    """Session step: no visible steps remain."""

    type: Literal["completed"] = "completed"
    answered: int
    text: Optional[str] = None


# Callers can match on step.type to dispatch rendering logic.
StepResult = QuestionStep | CompletionStep


class SessionInfo(BaseModel):
    """Public view of an interview session."""

    session_id: str
    task_id: str
    title: str
    complete: bool
    current_step: Optional[str] = None
    answered: int
    path: list[str]
