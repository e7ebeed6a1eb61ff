"""questnav — skip-logic navigation SDK for clinical questionnaires.

Public API:
    NavigationGraphBuilder — compiles a Questionnaire into a NavigableTask
    NavigableTask          — ordered steps plus the skip rules that hide them
    InterviewSession       — walks one respondent through a task
    AnswerStore            — answers recorded so far, keyed by link_id
    ResponseSerializer     — encodes answers into a QuestionnaireResponse
    answers_from_response  — re-derives an AnswerStore from a response
    QuestionnaireStore     — loads questionnaire files with lookup helpers
    ValueOptionResolver    — flattens inline options and contained value sets
    ConditionCompiler      — compiles an item's conditions into a Predicate

Step models:
    StepResult    — union type returned by session step methods
    QuestionStep  — step: render one question or display item
    CompletionStep — step: no visible steps remain
    SessionInfo   — public view of session state

Errors:
    QuestionnaireError, DefinitionError, CompileError, ParseError,
    StructuralError, EvaluationError, InvalidAnswerError
"""

from questnav.answers import AnswerStore
from questnav.compiler import ConditionCompiler, Predicate
from questnav.constants import COMPLETION
from questnav.engine import InterviewSession
from questnav.errors import (
    CompileError,
    DefinitionError,
    EvaluationError,
    InvalidAnswerError,
    ParseError,
    QuestionnaireError,
    StructuralError,
)
from questnav.graph import build_navigation_graph
from questnav.models import (
    CompletionStep,
    Item,
    Questionnaire,
    QuestionnaireResponse,
    QuestionStep,
    SessionInfo,
    StepPayload,
    StepResult,
)
from questnav.navigation import NavigableTask, NavigationGraphBuilder, NavigationRule, Step
from questnav.options import ValueOptionResolver
from questnav.serializer import ResponseSerializer, answers_from_response
from questnav.store import QuestionnaireStore

__all__ = [
    # Build & navigate
    "COMPLETION",
    "ConditionCompiler",
    "InterviewSession",
    "NavigableTask",
    "NavigationGraphBuilder",
    "NavigationRule",
    "Predicate",
    "Step",
    "ValueOptionResolver",
    "build_navigation_graph",
    # Answers & responses
    "AnswerStore",
    "ResponseSerializer",
    "answers_from_response",
    "QuestionnaireStore",
    # Models
    "Item",
    "Questionnaire",
    "QuestionnaireResponse",
    "CompletionStep",
    "QuestionStep",
    "SessionInfo",
    "StepPayload",
    "StepResult",
    # Errors
    "QuestionnaireError",
    "DefinitionError",
    "CompileError",
    "ParseError",
    "StructuralError",
    "EvaluationError",
    "InvalidAnswerError",
]
