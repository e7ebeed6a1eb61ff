"""InterviewSession — walks one respondent through a NavigableTask.

The session owns an :class:`AnswerStore` and a history stack of the steps
it has shown.  Navigation is re-evaluated lazily: every advance asks the task
for the next shown step under the answers recorded *now*.

Answer lifecycle:
    - steps skipped while advancing have their answers cleared
    - changing an answer clears every downstream answer whose step is no
      longer visible (one forward pass in document order, so cascades
      resolve in a single sweep)
    - going back replays nothing and clears nothing; re-entering a step
      only clears downstream answers if the answer actually changes
    - a cleared answer is gone for good, even if its step becomes visible
      again later

Sessions are independent of each other; the task is shared read-only.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from questnav.answers import AnswerStore
from questnav.constants import CHOICE_KINDS, COMPLETION
from questnav.errors import InvalidAnswerError
from questnav.expression.lexer import parse_date_literal
from questnav.models.response import QuestionnaireResponse
from questnav.models.session import (
    CompletionStep,
    QuestionStep,
    SessionInfo,
    StepPayload,
    StepResult,
)
from questnav.navigation import NavigableTask, Step
from questnav.serializer import ResponseSerializer, truncate_date

logger = logging.getLogger(__name__)


class InterviewSession:
    """Interactive state for one pass through a task.

    Args:
        task: the compiled :class:`NavigableTask`
        answers: optional answers to start from (e.g. re-derived from a
            stored response).  Each is validated like a submitted answer;
            ids matching no answerable step are dropped with a warning and
            answers of steps hidden under the rest are pruned
        session_id: identifier used by hosts; a random hex id by default
    """

    def __init__(
        self,
        task: NavigableTask,
        answers: AnswerStore | Mapping[str, Any] | None = None,
        *,
        session_id: str | None = None,
    ) -> None:
        self.task = task
        self.session_id = session_id or uuid.uuid4().hex
        self.answers = AnswerStore()
        for link_id, value in (answers.items() if answers is not None else ()):
            self._prefill(link_id, value)
        self._history: list[str] = []
        self._serializer = ResponseSerializer()

        if len(self.answers):
            self._prune_hidden(after=-1)
        self._current = task.first_step(self.answers)

    # ==================================================================
    # State
    # ==================================================================

    @property
    def current_id(self) -> str:
        """Id of the step being shown, or ``COMPLETION``."""
        return self._current

    @property
    def is_complete(self) -> bool:
        return self._current == COMPLETION

    @property
    def history(self) -> list[str]:
        return list(self._history)

    def can_go_back(self) -> bool:
        if self._history:
            return True
        return self.task.previous_step(self._current, self.answers) is not None

    def current_step(self) -> StepResult:
        """Describe what the host should render now."""
        if self.is_complete:
            return CompletionStep(answered=len(self.answers), text=self.task.completion_text)

        step = self.task.step(self._current)
        path = self.task.path(self.answers)
        index = path.index(step.link_id) if step.link_id in path else step.index
        return QuestionStep(
            index=index,
            total=len(path),
            can_go_back=self.can_go_back(),
            step=self._payload(step),
        )

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            task_id=self.task.task_id,
            title=self.task.title,
            complete=self.is_complete,
            current_step=None if self.is_complete else self._current,
            answered=len(self.answers),
            path=self.task.path(self.answers),
        )

    def response(self, *, authored: datetime | None = None) -> QuestionnaireResponse:
        """Serialize the current answers; status follows completion."""
        status = "completed" if self.is_complete else "in-progress"
        return self._serializer.serialize(self.task, self.answers, status=status, authored=authored)

    # ==================================================================
    # Answering and navigation
    # ==================================================================

    def answer(self, value: Any) -> None:
        """Record ``value`` for the current step (``None`` clears it).

        Raises:
            ValueError: if the interview is already completed.
            InvalidAnswerError: if the value violates the item's constraints
                or the current step is a display step.
        """
        if self.is_complete:
            raise ValueError("Interview already completed; no step to answer")
        step = self.task.step(self._current)
        if not step.interactive:
            raise InvalidAnswerError(step.link_id, "display steps take no answer")

        value = normalize_answer(step, value)
        previous = self.answers.get(step.link_id)
        self.answers.record(step.link_id, value)

        if previous != value:
            cleared = self._prune_hidden(after=step.index)
            if cleared:
                logger.info(
                    "Answer to %s changed; cleared now-hidden answers: %s",
                    step.link_id, ", ".join(cleared),
                )

    def advance(self) -> StepResult:
        """Move to the next shown step.

        Raises:
            ValueError: if the interview is already completed.
            InvalidAnswerError: if the current step is required and unanswered.
        """
        if self.is_complete:
            raise ValueError("Interview already completed; cannot advance")
        step = self.task.step(self._current)
        if step.interactive and step.item.required and not self.answers.values(step.link_id):
            raise InvalidAnswerError(step.link_id, "an answer is required")

        target = self.task.next_step(self._current, self.answers)
        for skipped in self.task.steps_between(self._current, target):
            if self.answers.clear(skipped.link_id):
                logger.debug("Cleared answer of skipped step %s", skipped.link_id)

        self._history.append(self._current)
        self._current = target
        return self.current_step()

    def submit_answer(self, value: Any) -> StepResult:
        """Record ``value`` for the current step and advance.

        An empty value on a required step is rejected before anything is
        recorded, so a failed submit leaves the answers as they were.

        Raises:
            ValueError: if the interview is already completed.
            InvalidAnswerError: as for :meth:`answer` and :meth:`advance`.
        """
        if self.is_complete:
            raise ValueError("Interview already completed; no step to answer")
        step = self.task.step(self._current)
        if step.interactive and step.item.required and _is_empty(value):
            raise InvalidAnswerError(step.link_id, "an answer is required")
        self.answer(value)
        return self.advance()

    def step_back(self) -> StepResult:
        """Return to the previously shown step; its answer is kept for pre-fill.

        Raises:
            ValueError: if already at the first shown step.
        """
        if self._history:
            self._current = self._history.pop()
            return self.current_step()

        previous = self.task.previous_step(self._current, self.answers)
        if previous is None:
            raise ValueError("Already at the first step; cannot go back")
        self._current = previous
        return self.current_step()

    def back_to(self, link_id: str) -> StepResult:
        """Jump back to an earlier shown step to edit its answer.

        Raises:
            ValueError: if ``link_id`` was not shown earlier in this session.
        """
        if link_id not in self._history:
            raise ValueError(f"Step not found in session history: {link_id}")
        while self._history:
            self._current = self._history.pop()
            if self._current == link_id:
                break
        return self.current_step()

    # ==================================================================
    # Internals
    # ==================================================================

    def _prefill(self, link_id: str, value: Any) -> None:
        step = self.task.steps_by_id.get(link_id)
        if step is None or not step.interactive:
            logger.warning("Dropping pre-filled answer for %s: matches no answerable step", link_id)
            return
        self.answers.record(link_id, normalize_answer(step, value))

    def _prune_hidden(self, *, after: int) -> list[str]:
        """Clear answers of steps after index ``after`` that are now hidden."""
        cleared: list[str] = []
        for step in self.task.steps[after + 1:]:
            if step.link_id in self.answers and not step.visibility(self.answers):
                self.answers.clear(step.link_id)
                cleared.append(step.link_id)
        return cleared

    def _payload(self, step: Step) -> StepPayload:
        item = step.item
        options = None
        if item.kind in CHOICE_KINDS:
            options = [o.model_dump() for o in step.options]

        constraints: dict[str, Any] = {}
        if item.min_value is not None:
            constraints["min"] = item.min_value
        if item.max_value is not None:
            constraints["max"] = item.max_value
        if item.step is not None:
            constraints["step"] = item.step
        if item.kind == "date":
            constraints["precision"] = item.date_precision

        return StepPayload(
            link_id=step.link_id,
            text=item.text,
            kind=item.kind,
            required=item.required,
            interactive=step.interactive,
            options=options,
            constraints=constraints or None,
            group_path=list(step.group_path),
            current_value=self.answers.get(step.link_id),
        )


# ----------------------------------------------------------------------
# Answer validation
# ----------------------------------------------------------------------

def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, tuple)) and not value)


def normalize_answer(step: Step, value: Any) -> Any:
    """Validate ``value`` for ``step`` and return its stored form.

    Choice answers are stored as option codes, dates as ISO text cut to the
    item's precision, numbers as int/float.

    Raises:
        InvalidAnswerError: when the value does not fit the item.
    """
    if value is None:
        return None

    item = step.item
    kind = item.kind
    link_id = step.link_id

    if kind in CHOICE_KINDS:
        if kind == "multiple_choice":
            if not isinstance(value, (list, tuple)):
                raise InvalidAnswerError(link_id, "multiple_choice expects a list of codes")
            return [_choice_code(step, v) for v in value]
        if isinstance(value, (list, tuple)):
            raise InvalidAnswerError(link_id, f"{kind} takes a single value")
        return _choice_code(step, value)

    if kind in ("integer", "decimal", "slider"):
        number = _number(link_id, value, integral=kind == "integer")
        _check_bounds(item, link_id, number)
        if kind == "slider" and number == int(number):
            return int(number)
        return number

    if kind == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise InvalidAnswerError(link_id, f"expected true or false, got {value!r}")

    if kind == "date":
        try:
            text = truncate_date(value, item.date_precision)
        except ValueError:
            raise InvalidAnswerError(link_id, f"malformed date {value!r}") from None
        _check_date_bounds(item, link_id, parse_date_literal(text))
        return text

    if kind == "date_time":
        if isinstance(value, datetime):
            return value.isoformat()
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise InvalidAnswerError(link_id, f"malformed date-time {value!r}") from None
        _check_date_bounds(item, link_id, parsed.date())
        return str(value)

    if kind == "time":
        if isinstance(value, time):
            return value.isoformat()
        try:
            time.fromisoformat(str(value))
        except ValueError:
            raise InvalidAnswerError(link_id, f"malformed time {value!r}") from None
        return str(value)

    if not isinstance(value, str):
        raise InvalidAnswerError(link_id, f"{kind} expects text, got {type(value).__name__}")
    return value


def _choice_code(step: Step, value: Any) -> str | dict[str, str]:
    """Stored form of one choice: the bare code, or ``{code, system}`` when
    the code is offered by options from more than one system.
    """
    system = None
    if isinstance(value, dict):
        system = value.get("system")
        value = value.get("code")
    if isinstance(value, bool):
        value = "true" if value else "false"
    elif isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str) or not value:
        raise InvalidAnswerError(step.link_id, f"expected an option code, got {value!r}")
    option = step.option(value, system)
    if option is None:
        if step.item.kind == "open_choice":
            return value
        allowed = ", ".join(o.code for o in step.options)
        if system is not None:
            raise InvalidAnswerError(step.link_id, f"'{value}' is not an option from {system}")
        raise InvalidAnswerError(step.link_id, f"'{value}' is not one of: {allowed}")
    if step.is_shared_code(value):
        if system is None:
            raise InvalidAnswerError(
                step.link_id,
                f"code '{value}' is offered by several systems; answer with {{code, system}}",
            )
        return {"code": value, "system": system}
    return value


def _number(link_id: str, value: Any, *, integral: bool) -> int | float:
    if isinstance(value, bool):
        raise InvalidAnswerError(link_id, "expected a number, got a boolean")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAnswerError(link_id, f"expected a number, got {value!r}") from None
    if not number.is_finite():
        raise InvalidAnswerError(link_id, f"expected a finite number, got {value!r}")
    if integral:
        if number != number.to_integral_value():
            raise InvalidAnswerError(link_id, f"expected a whole number, got {value!r}")
        return int(number)
    return float(number)


def _check_bounds(item, link_id: str, number: float) -> None:
    lo, hi = item.min_value, item.max_value
    if isinstance(lo, (int, float)) and number < lo:
        raise InvalidAnswerError(link_id, f"{number} is below the minimum {lo}")
    if isinstance(hi, (int, float)) and number > hi:
        raise InvalidAnswerError(link_id, f"{number} is above the maximum {hi}")


def _check_date_bounds(item, link_id: str, value: date) -> None:
    for bound, below in ((item.min_value, True), (item.max_value, False)):
        if not isinstance(bound, str):
            continue
        limit = parse_date_literal(bound[:10])
        if below and value < limit:
            raise InvalidAnswerError(link_id, f"{value.isoformat()} is before {bound}")
        if not below and value > limit:
            raise InvalidAnswerError(link_id, f"{value.isoformat()} is after {bound}")
