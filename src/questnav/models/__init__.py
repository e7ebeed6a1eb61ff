"""Public model re-exports for questnav.

Consumers should import from ``questnav.models`` rather than reaching into
sub-modules directly.
"""

# --- Conditions ---
from questnav.models.condition import (
    Condition,
    ExpressionCondition,
    SimpleCondition,
    SimpleOperator,
    tag_condition,
)

# --- Items ---
from questnav.models.item import (
    AnswerOption,
    Item,
    ItemKind,
    Questionnaire,
    ValueSet,
    ValueSetConcept,
)

# --- Responses ---
from questnav.models.response import (
    Coding,
    QuestionnaireResponse,
    ResponseAnswer,
    ResponseItem,
)

# --- Session / step ---
from questnav.models.session import (
    CompletionStep,
    QuestionStep,
    SessionInfo,
    StepPayload,
    StepResult,
)

__all__ = [
    # Conditions
    "Condition",
    "ExpressionCondition",
    "SimpleCondition",
    "SimpleOperator",
    "tag_condition",
    # Items
    "AnswerOption",
    "Item",
    "ItemKind",
    "Questionnaire",
    "ValueSet",
    "ValueSetConcept",
    # Responses
    "Coding",
    "QuestionnaireResponse",
    "ResponseAnswer",
    "ResponseItem",
    # Session
    "CompletionStep",
    "QuestionStep",
    "SessionInfo",
    "StepPayload",
    "StepResult",
]
