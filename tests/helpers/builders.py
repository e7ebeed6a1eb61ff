"""Shorthand builders for questionnaire definitions used across tests.

Items are built as plain dicts (the same shape the YAML files use) and
validated into models by :func:`questionnaire`, so tests exercise the same
parsing path as the store.
"""

from typing import Any

from questnav.models.item import Questionnaire
from questnav.navigation import NavigableTask, NavigationGraphBuilder

YES_NO = [
    {"code": "yes", "display": "Yes"},
    {"code": "no", "display": "No"},
]


def item(link_id: str, kind: str = "single_choice", **fields: Any) -> dict:
    """One item dict; choice items default to Yes/No options."""
    raw = {"link_id": link_id, "kind": kind, "text": fields.pop("text", link_id.upper())}
    if kind in ("single_choice", "multiple_choice", "open_choice") and "answer_value_set" not in fields:
        raw["answer_options"] = fields.pop("answer_options", YES_NO)
    raw.update(fields)
    return raw


def group(link_id: str, *children: dict, **fields: Any) -> dict:
    return {"link_id": link_id, "kind": "group", "text": link_id, "items": list(children), **fields}


def when(question: str, operator: str, answer: Any = None) -> dict:
    """A simple condition."""
    return {"question": question, "operator": operator, "answer": answer}


def expr(source: str) -> dict:
    """An expression condition."""
    return {"expression": source}


def questionnaire(*items: dict, **fields: Any) -> Questionnaire:
    return Questionnaire.model_validate({"items": list(items), **fields})


def build(*items: dict, **fields: Any) -> NavigableTask:
    """Validate and compile a questionnaire made of ``items``."""
    return NavigationGraphBuilder().build(questionnaire(*items, **fields))


def chain() -> NavigableTask:
    """A -> B -> C where B is shown only when A = yes."""
    return build(
        item("a"),
        item("b", enable_when=[when("a", "=", "yes")]),
        item("c"),
    )
