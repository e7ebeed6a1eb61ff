"""ResponseSerializer — turns recorded answers into a QuestionnaireResponse.

The response mirrors the questionnaire tree:

  - groups are kept when at least one descendant carries an answer
  - hidden, cleared and unanswered items are omitted
  - display items are omitted

Each answer value is encoded according to the originating item's kind
(see :meth:`ResponseSerializer.encode`).  :func:`answers_from_response`
is the inverse: it re-derives an :class:`AnswerStore` from a response so a
finished interview can be re-evaluated or resumed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterable

from questnav.answers import AnswerStore
from questnav.constants import CHOICE_KINDS
from questnav.expression.lexer import parse_date_literal
from questnav.models.item import Item
from questnav.models.response import (
    Coding,
    QuestionnaireResponse,
    ResponseAnswer,
    ResponseItem,
)
from questnav.navigation import NavigableTask, Step

logger = logging.getLogger(__name__)


def truncate_date(value: date | str, precision: str) -> str:
    """Render a date as ISO text cut to ``precision`` (year, month or day).

    Raises ``ValueError`` when ``value`` is not a (partial) ISO date.
    """
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        value = parse_date_literal(str(value).strip())
    if precision == "year":
        return f"{value.year:04d}"
    if precision == "month":
        return f"{value.year:04d}-{value.month:02d}"
    return value.isoformat()


class ResponseSerializer:
    """Encodes an answer store against a task into a response document."""

    def serialize(
        self,
        task: NavigableTask,
        answers: AnswerStore,
        *,
        status: str = "completed",
        authored: datetime | None = None,
    ) -> QuestionnaireResponse:
        visible = set(task.path(answers))
        items = self._items(task.questionnaire.items, task, answers, visible)
        return QuestionnaireResponse(
            questionnaire=task.questionnaire.url or task.task_id,
            status=status,
            authored=authored or datetime.now(timezone.utc),
            items=items,
        )

    def _items(
        self,
        items: Iterable[Item],
        task: NavigableTask,
        answers: AnswerStore,
        visible: set[str],
    ) -> list[ResponseItem]:
        out: list[ResponseItem] = []
        for item in items:
            if item.is_group:
                children = self._items(item.items, task, answers, visible)
                if children:
                    out.append(ResponseItem(link_id=item.link_id, text=item.text or None, items=children))
                continue
            if not item.is_answerable or item.link_id not in visible:
                continue
            step = task.steps_by_id[item.link_id]
            encoded = [self.encode(step, v) for v in answers.values(item.link_id)]
            if encoded:
                out.append(ResponseItem(link_id=item.link_id, text=item.text or None, answers=encoded))
        return out

    def encode(self, step: Step, value: Any) -> ResponseAnswer:
        """Encode one recorded value for ``step``'s item kind."""
        kind = step.item.kind

        if kind in CHOICE_KINDS:
            if isinstance(value, dict):
                code, system = value["code"], value.get("system")
            else:
                code, system = str(value), None
            option = step.option(code, system)
            if option is not None:
                return ResponseAnswer(
                    value_coding=Coding(code=option.code, display=option.display, system=option.system)
                )
            if kind == "open_choice":
                return ResponseAnswer(value_string=code)
            logger.warning("Unknown option code %r for %s; emitting bare coding", code, step.link_id)
            return ResponseAnswer(value_coding=Coding(code=code))

        if kind == "integer":
            return ResponseAnswer(value_integer=int(value))
        if kind == "decimal":
            return ResponseAnswer(value_decimal=float(value))
        if kind == "slider":
            number = Decimal(str(value))
            if number == number.to_integral_value():
                return ResponseAnswer(value_integer=int(number))
            return ResponseAnswer(value_decimal=float(number))
        if kind == "boolean":
            if isinstance(value, str):
                return ResponseAnswer(value_boolean=value.strip().lower() == "true")
            return ResponseAnswer(value_boolean=bool(value))
        if kind == "date":
            return ResponseAnswer(value_date=truncate_date(value, step.item.date_precision))
        if kind == "date_time":
            text = value.isoformat() if isinstance(value, datetime) else str(value)
            return ResponseAnswer(value_date_time=text)
        if kind == "time":
            text = value.isoformat() if isinstance(value, time) else str(value)
            return ResponseAnswer(value_time=text)
        return ResponseAnswer(value_string=str(value))


# ----------------------------------------------------------------------
# Inverse
# ----------------------------------------------------------------------

def _decode(step: Step, answer: ResponseAnswer) -> Any:
    coding = answer.value_coding
    if coding is not None:
        if coding.system and step.is_shared_code(coding.code):
            return {"code": coding.code, "system": coding.system}
        return coding.code
    return getattr(answer, answer.value_type)


def answers_from_response(task: NavigableTask, response: QuestionnaireResponse) -> AnswerStore:
    """Re-derive the answer store a response was serialized from.

    Response items that name no step of ``task`` are skipped with a warning.
    """
    store = AnswerStore()
    stack = list(reversed(response.items))
    while stack:
        node = stack.pop()
        stack.extend(reversed(node.items))
        if not node.answers:
            continue
        step = task.steps_by_id.get(node.link_id)
        if step is None:
            logger.warning("Response item %s matches no step of %s", node.link_id, task.task_id)
            continue
        values = [_decode(step, a) for a in node.answers]
        if step.item.kind == "multiple_choice" or len(values) > 1:
            store.record(node.link_id, values)
        else:
            store.record(node.link_id, values[0])
    return store
