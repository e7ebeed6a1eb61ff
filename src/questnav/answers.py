"""AnswerStore — the answers recorded so far in one interview.

Pure data: no visibility logic lives here.  Values are stored as given by
the host (a scalar, or a list for multi-select items).  ``None`` is never
stored; recording ``None`` removes the answer.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping


class AnswerStore:
    """Mutable mapping of ``link_id`` → recorded answer value."""

    def __init__(self, answers: Mapping[str, Any] | None = None) -> None:
        self._answers: dict[str, Any] = {}
        for link_id, value in (answers or {}).items():
            self.record(link_id, value)

    def record(self, link_id: str, value: Any) -> None:
        """Record (or overwrite) the answer for ``link_id``."""
        if value is None:
            self._answers.pop(link_id, None)
            return
        # Copy lists so later mutation by the caller does not leak in
        self._answers[link_id] = list(value) if isinstance(value, (list, tuple)) else value

    def get(self, link_id: str, default: Any = None) -> Any:
        return self._answers.get(link_id, default)

    def values(self, link_id: str) -> list[Any]:
        """Return the recorded values for ``link_id`` as a list.

        Unanswered → ``[]``; scalar → ``[value]``; list → a copy.
        """
        if link_id not in self._answers:
            return []
        value = self._answers[link_id]
        if isinstance(value, list):
            return list(value)
        return [value]

    def clear(self, link_id: str) -> bool:
        """Remove the answer for ``link_id``.  Returns True if one was removed."""
        return self._answers.pop(link_id, None) is not None

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only view of a copy of the current answers."""
        return MappingProxyType(dict(self._answers))

    def items(self):
        return self._answers.items()

    def __contains__(self, link_id: object) -> bool:
        return link_id in self._answers

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AnswerStore):
            return self._answers == other._answers
        return NotImplemented

    def __repr__(self) -> str:
        return f"AnswerStore({self._answers!r})"
