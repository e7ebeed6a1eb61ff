"""NavigationGraphBuilder — compiles a Questionnaire into a NavigableTask.

The builder runs once per questionnaire, at load time:

  1. index every item in document order (duplicate ids are rejected)
  2. resolve answer options and compile every item's conditions
  3. flatten the tree into one Step per leaf; a leaf's visibility is the
     conjunction of its ancestor groups' predicates and its own
  4. emit one skip rule per conditional step: "when arriving here and the
     step is not visible, go to the next step in document order"

Any compile error aborts the build; there is never a partially built task.

The task itself holds no answers.  Every navigation question
(:meth:`NavigableTask.next_step`, :meth:`NavigableTask.path`, ...) takes the
current :class:`AnswerStore` and evaluates the compiled predicates lazily.

Usage::

    task = NavigationGraphBuilder().build(questionnaire)
    answers = AnswerStore()
    step_id = task.first_step(answers)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterator

from questnav.answers import AnswerStore
from questnav.compiler import (
    ConditionCompiler,
    Negation,
    Predicate,
    all_of,
    index_items,
)
from questnav.constants import COMPLETION
from questnav.errors import StructuralError
from questnav.expression import Evaluator
from questnav.models.item import AnswerOption, Item, Questionnaire
from questnav.options import ValueOptionResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    """One navigable unit: a leaf item of the questionnaire tree."""

    link_id: str
    item: Item
    index: int
    # False for display items, which are shown but never answered
    interactive: bool
    # Ancestor group link_ids, outermost first
    group_path: tuple[str, ...]
    visibility: Predicate
    options: tuple[AnswerOption, ...] = ()

    @property
    def is_conditional(self) -> bool:
        return not self.visibility.is_constant

    def option(self, code: str, system: str | None = None) -> AnswerOption | None:
        """First option with ``code``; ``system`` narrows the match."""
        for opt in self.options:
            if opt.code == code and (system is None or opt.system == system):
                return opt
        return None

    def is_shared_code(self, code: str) -> bool:
        """True when several options (from different systems) use ``code``."""
        return sum(1 for opt in self.options if opt.code == code) > 1


@dataclass(frozen=True)
class NavigationRule:
    """When arriving at ``source`` and ``predicate`` holds, go to ``target``."""

    source: str
    predicate: Predicate
    target: str


class NavigableTask:
    """Ordered steps plus the skip rules that decide which of them are shown.

    Attributes:
        task_id: questionnaire url, else its id, else a random UUID
        title: caller-supplied title, else the questionnaire title
        steps: tuple of :class:`Step` in document order
        rules: tuple of :class:`NavigationRule` in declaration order
        completion_text: optional text shown once no steps remain
    """

    def __init__(
        self,
        *,
        task_id: str,
        title: str,
        questionnaire: Questionnaire,
        steps: list[Step],
        rules: list[NavigationRule],
        completion_text: str | None = None,
    ) -> None:
        self.task_id = task_id
        self.title = title
        self.questionnaire = questionnaire
        self.steps: tuple[Step, ...] = tuple(steps)
        self.rules: tuple[NavigationRule, ...] = tuple(rules)
        self.completion_text = completion_text

        self.steps_by_id: dict[str, Step] = {s.link_id: s for s in self.steps}
        self._rules_by_source: dict[str, list[NavigationRule]] = {}
        for rule in self.rules:
            self._rules_by_source.setdefault(rule.source, []).append(rule)
        self._validate_rules()

    def _validate_rules(self) -> None:
        for rule in self.rules:
            source = self.steps_by_id.get(rule.source)
            if source is None:
                raise StructuralError(f"navigation rule from unknown step '{rule.source}'")
            if rule.target == COMPLETION:
                continue
            target = self.steps_by_id.get(rule.target)
            if target is None:
                raise StructuralError(
                    f"navigation rule from '{rule.source}' targets unknown step '{rule.target}'"
                )
            if target.index <= source.index:
                raise StructuralError(
                    f"navigation rule from '{rule.source}' targets earlier step '{rule.target}'"
                )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def step(self, step_id: str) -> Step:
        """Return the step for ``step_id``.  Raises ``KeyError`` if unknown."""
        try:
            return self.steps_by_id[step_id]
        except KeyError:
            raise KeyError(f"Step not found: {step_id}") from None

    def rules_for(self, step_id: str) -> list[NavigationRule]:
        return list(self._rules_by_source.get(step_id, ()))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def first_step(self, answers: AnswerStore) -> str:
        """Id of the first shown step, or ``COMPLETION``."""
        return self._resolve(self.steps[0].link_id, answers)

    def next_step(self, step_id: str, answers: AnswerStore) -> str:
        """Id of the step shown after ``step_id``, or ``COMPLETION``."""
        if step_id == COMPLETION:
            return COMPLETION
        idx = self.step(step_id).index + 1
        if idx >= len(self.steps):
            return COMPLETION
        return self._resolve(self.steps[idx].link_id, answers)

    def previous_step(self, step_id: str, answers: AnswerStore) -> str | None:
        """Nearest earlier step that is visible under ``answers``, if any."""
        idx = len(self.steps) if step_id == COMPLETION else self.step(step_id).index
        for step in reversed(self.steps[:idx]):
            if step.visibility(answers):
                return step.link_id
        return None

    def is_visible(self, step_id: str, answers: AnswerStore) -> bool:
        return self.step(step_id).visibility(answers)

    def path(self, answers: AnswerStore) -> list[str]:
        """Ids of the steps a walk through the task would show, in order."""
        return [s.link_id for s in self.iter_path(answers)]

    def iter_path(self, answers: AnswerStore) -> Iterator[Step]:
        current = self.first_step(answers)
        while current != COMPLETION:
            yield self.steps_by_id[current]
            current = self.next_step(current, answers)

    def steps_between(self, start: str, end: str) -> list[Step]:
        """Steps strictly after ``start`` and strictly before ``end``."""
        lo = self.step(start).index + 1
        hi = len(self.steps) if end == COMPLETION else self.step(end).index
        return list(self.steps[lo:hi])

    def _resolve(self, step_id: str, answers: AnswerStore) -> str:
        """Apply skip rules on arrival until a step is shown or the task completes."""
        while step_id != COMPLETION:
            for rule in self._rules_by_source.get(step_id, ()):
                if rule.predicate(answers):
                    logger.debug("Skipping %s -> %s", step_id, rule.target)
                    step_id = rule.target
                    break
            else:
                return step_id
        return step_id

    def __repr__(self) -> str:
        return f"NavigableTask({self.task_id!r}, steps={len(self.steps)}, rules={len(self.rules)})"


# ----------------------------------------------------------------------
# Builder
# ----------------------------------------------------------------------

@dataclass
class _Frame:
    """Ancestor group on the way down to a leaf."""

    link_id: str
    predicate: Predicate


@dataclass
class _BuildState:
    compiler: ConditionCompiler
    resolver: ValueOptionResolver
    steps: list[Step] = field(default_factory=list)


class NavigationGraphBuilder:
    """Builds :class:`NavigableTask` objects from questionnaire definitions."""

    def __init__(self, evaluator: Evaluator | None = None) -> None:
        self._evaluator = evaluator or Evaluator()

    def build(
        self,
        questionnaire: Questionnaire,
        *,
        title: str | None = None,
        completion_text: str | None = None,
    ) -> NavigableTask:
        """Compile ``questionnaire`` into a task.

        Raises:
            StructuralError: empty questionnaire, duplicate ids, children on
                a non-group item, forward references.
            CompileError: unknown references, bad combination modes, value
                sets that are not contained.
            ParseError: malformed expression conditions.
        """
        if not questionnaire.items:
            raise StructuralError("questionnaire has no items")

        index = index_items(questionnaire.items)
        for _, item in index.values():
            if item.items and not item.is_group:
                raise StructuralError(
                    f"item '{item.link_id}' of kind {item.kind} cannot have children"
                )

        state = _BuildState(
            compiler=ConditionCompiler(index, self._evaluator),
            resolver=ValueOptionResolver(questionnaire.contained),
        )
        for item in questionnaire.items:
            self._visit(item, [], state)

        if not state.steps:
            raise StructuralError("questionnaire has no steps (only empty groups)")

        rules = self._skip_rules(state.steps)
        task = NavigableTask(
            task_id=questionnaire.url or questionnaire.id or str(uuid.uuid4()),
            title=title or questionnaire.title or "",
            questionnaire=questionnaire,
            steps=state.steps,
            rules=rules,
            completion_text=completion_text,
        )
        logger.info(
            "Compiled task %s: %d steps, %d skip rules",
            task.task_id, len(task.steps), len(task.rules),
        )
        return task

    def _visit(self, item: Item, ancestors: list[_Frame], state: _BuildState) -> None:
        own = state.compiler.compile(item)

        if item.is_group:
            if not item.items:
                logger.warning("Group %s has no children; it produces no steps", item.link_id)
                return
            frames = ancestors + [_Frame(item.link_id, own)]
            for child in item.items:
                self._visit(child, frames, state)
            return

        state.steps.append(
            Step(
                link_id=item.link_id,
                item=item,
                index=len(state.steps),
                interactive=item.is_answerable,
                group_path=tuple(f.link_id for f in ancestors),
                visibility=all_of([f.predicate for f in ancestors] + [own]),
                options=tuple(state.resolver.resolve(item)),
            )
        )

    @staticmethod
    def _skip_rules(steps: list[Step]) -> list[NavigationRule]:
        rules: list[NavigationRule] = []
        for step in steps:
            if not step.is_conditional:
                continue
            nxt = step.index + 1
            target = steps[nxt].link_id if nxt < len(steps) else COMPLETION
            rules.append(NavigationRule(step.link_id, Negation(step.visibility), target))
        return rules
