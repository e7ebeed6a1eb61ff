"""Exception taxonomy for questionnaire compilation and navigation.

Load-time failures (``DefinitionError`` and its subclasses) reject the
questionnaire wholesale: no ``NavigableTask`` is produced.  Navigation-time
failures (``EvaluationError``) are recovered by the predicate that hit them
and treated as "condition not yet satisfied".

    QuestionnaireError
    ├── DefinitionError
    │   ├── CompileError
    │   │   └── ParseError
    │   └── StructuralError
    └── EvaluationError

``InvalidAnswerError`` is separate: it signals a bad answer supplied by the
host and subclasses ``ValueError`` so callers that already handle
``ValueError`` keep working.
"""

from __future__ import annotations


class QuestionnaireError(Exception):
    """Base class for every error raised by the SDK."""


class DefinitionError(QuestionnaireError):
    """The questionnaire definition cannot be compiled into a task."""


class CompileError(DefinitionError):
    """An item's condition list cannot be compiled.

    ``item_id`` names the owning item when known.
    """

    def __init__(self, message: str, *, item_id: str | None = None) -> None:
        self.message = message
        self.item_id = item_id
        if item_id is not None:
            message = f"item '{item_id}': {message}"
        super().__init__(message)


class ParseError(CompileError):
    """Malformed expression-language source.

    ``position`` is the 0-based character offset of the offending token and
    ``expected`` a short description of what the parser wanted there.
    """

    def __init__(
        self,
        message: str,
        *,
        position: int,
        expected: str | None = None,
        item_id: str | None = None,
    ) -> None:
        self.position = position
        self.expected = expected
        detail = f"{message} at position {position}"
        if expected:
            detail += f" (expected {expected})"
        super().__init__(detail, item_id=item_id)
        # Keep the bare message so the compiler can re-raise with an item id
        self.message = message

    def with_item(self, item_id: str) -> "ParseError":
        """Return a copy of this error attributed to ``item_id``."""
        return ParseError(
            self.message,
            position=self.position,
            expected=self.expected,
            item_id=item_id,
        )


class StructuralError(DefinitionError):
    """The item tree itself is inconsistent (duplicate ids, forward references)."""


class EvaluationError(QuestionnaireError):
    """An expression could not be evaluated against the current answers."""


class InvalidAnswerError(ValueError):
    """An answer supplied for a step violates the item's constraints."""

    def __init__(self, link_id: str, message: str) -> None:
        self.link_id = link_id
        super().__init__(f"Invalid answer for '{link_id}': {message}")
