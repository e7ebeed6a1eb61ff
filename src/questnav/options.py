"""ValueOptionResolver — expands an item's answer choices into a flat list.

Choices come from two places:

  - ``answer_options`` declared inline on the item
  - ``answer_value_set: "#id"`` pointing at a value set contained in the
    questionnaire

Only contained value sets are resolved.  References to externally hosted
value sets (anything not starting with ``#``) are rejected at load time.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from questnav.constants import CHOICE_KINDS
from questnav.errors import CompileError
from questnav.models.item import AnswerOption, Item, ValueSet, ValueSetConcept

logger = logging.getLogger(__name__)


class ValueOptionResolver:
    """Resolves answer options against the questionnaire's contained value sets."""

    def __init__(self, value_sets: Iterable[ValueSet] = ()) -> None:
        self._value_sets: dict[str, ValueSet] = {vs.id: vs for vs in value_sets}

    def resolve(self, item: Item) -> list[AnswerOption]:
        """Return the ordered, de-duplicated options for ``item``.

        Inline options come first, followed by the value set's concepts in
        depth-first order.  Duplicates (same system and code) keep their
        first occurrence.

        Raises:
            CompileError: if the item references a value set that is not
                contained in the questionnaire.
        """
        if item.kind not in CHOICE_KINDS:
            if item.answer_options or item.answer_value_set:
                logger.warning(
                    "Item %s of kind %s declares answer options; ignoring them",
                    item.link_id, item.kind,
                )
            return []

        resolved: list[AnswerOption] = []
        seen: set[tuple[str | None, str]] = set()

        def _add(option: AnswerOption) -> None:
            key = (option.system, option.code)
            if key in seen:
                return
            seen.add(key)
            resolved.append(option)

        for option in item.answer_options:
            _add(option)

        if item.answer_value_set is not None:
            value_set = self._lookup(item)
            for concept in _flatten(value_set.concepts):
                _add(
                    AnswerOption(
                        code=concept.code,
                        display=concept.display,
                        system=concept.system or value_set.system,
                    )
                )

        if not resolved:
            logger.warning("Choice item %s resolved to no options", item.link_id)
        return resolved

    def _lookup(self, item: Item) -> ValueSet:
        ref = item.answer_value_set or ""
        if not ref.startswith("#"):
            raise CompileError(
                f"value set '{ref}' is not contained in the questionnaire; "
                f"only contained value sets ('#id') are supported",
                item_id=item.link_id,
            )
        value_set = self._value_sets.get(ref[1:])
        if value_set is None:
            raise CompileError(
                f"unknown contained value set '{ref}'", item_id=item.link_id,
            )
        return value_set


def _flatten(concepts: Iterable[ValueSetConcept]) -> Iterator[ValueSetConcept]:
    """Depth-first walk; abstract concepts are not selectable but their children are."""
    for concept in concepts:
        if not concept.abstract:
            yield concept
        yield from _flatten(concept.contains)
