#!/usr/bin/env python3
"""Simulate an interview end-to-end against a bundled questionnaire.

Drives an :class:`InterviewSession` in-process (no server), printing an
audit log of every step shown, the answer chosen, the steps skipped by
skip logic, and the final structured response.

By default answers are **randomised** (``--random``, on by default) so each
run explores a different path through the questionnaire.  Use
``--no-random`` to always pick the first option / lower bound.

Usage::

    # Default run (clinical intake, random answers)
    python scripts/simulate_interview.py

    # Deterministic run of the ice cream example
    python scripts/simulate_interview.py -k skip_logic_example --no-random

    # Go back now and then to exercise answer pruning
    python scripts/simulate_interview.py --back-rate 0.2 --seed 7

    # List bundled questionnaires
    python scripts/simulate_interview.py --list
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Ensure src/ is on sys.path so the script runs from a plain checkout.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from questnav.engine import InterviewSession  # noqa: E402
from questnav.navigation import NavigableTask, Step  # noqa: E402
from questnav.store import QuestionnaireStore  # noqa: E402

_DEFAULT_KEY = "clinical_intake"
_DOUBLE_LINE = "=" * 62
_SINGLE_LINE = "-" * 62

# Safety limit: the bundled questionnaires finish well under this
MAX_STEPS = 200

_FREE_TEXT_POOL = [
    "none",
    "a little",
    "for about 2-3 days",
    "not sure",
    "since yesterday",
]

# Set from CLI flags in main()
_quiet = False


def _print(*args, **kwargs) -> None:
    """Print wrapper that respects the --quiet flag."""
    if not _quiet:
        print(*args, **kwargs)


# ---------------------------------------------------------------------------
# Answer generation
# ---------------------------------------------------------------------------

def mock_answer(step: Step, rng: random.Random | None) -> Any:
    """Pick an answer for ``step``; deterministic when ``rng`` is None."""
    item = step.item
    codes = [o.code for o in step.options]
    lo = item.min_value if isinstance(item.min_value, (int, float)) else 0
    hi = item.max_value if isinstance(item.max_value, (int, float)) else 10

    if item.kind in ("single_choice", "open_choice"):
        return rng.choice(codes) if rng else codes[0]
    if item.kind == "multiple_choice":
        if rng is None:
            return codes[:2]
        return rng.sample(codes, rng.randint(1, len(codes)))
    if item.kind in ("integer", "slider"):
        return rng.randint(int(lo), int(hi)) if rng else int(hi)
    if item.kind == "decimal":
        return round(rng.uniform(lo, hi), 1) if rng else float(hi)
    if item.kind == "boolean":
        return rng.choice([True, False]) if rng else True
    if item.kind == "date":
        if rng is None:
            return "2024-01-15"
        return f"{rng.randint(2015, 2024)}-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}"
    if item.kind == "date_time":
        return "2024-01-15T09:00:00"
    if item.kind == "time":
        return "09:00"
    return rng.choice(_FREE_TEXT_POOL) if rng else _FREE_TEXT_POOL[0]


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def log_header(task: NavigableTask) -> None:
    _print(f"\n{_DOUBLE_LINE}")
    _print(f" {task.title or task.task_id}")
    _print(f" {len(task.steps)} steps, {len(task.rules)} skip rules")
    _print(_DOUBLE_LINE)


def log_step(step: Step, index: int, total: int) -> None:
    """Print the step being shown with its options and bounds."""
    group = " / ".join(step.group_path)
    where = f" [{group}]" if group else ""
    _print(f"\n [{index + 1}/{total}]{where} {step.item.text} ({step.link_id}) -- {step.item.kind}")
    if step.options:
        _print(f"     Options: {', '.join(o.label for o in step.options)}")
    if step.item.min_value is not None or step.item.max_value is not None:
        _print(f"     Range: {step.item.min_value} - {step.item.max_value}")
    if step.is_conditional:
        _print("     (conditional)")


def log_transition(task: NavigableTask, start: str, end: str) -> None:
    """Print the steps skip logic jumped over between ``start`` and ``end``."""
    skipped = [s.link_id for s in task.steps_between(start, end)]
    if skipped:
        _print(f" {_SINGLE_LINE}")
        _print(f"  skipped: {', '.join(skipped)}")


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def run_simulation(
    task: NavigableTask,
    rng: random.Random | None,
    back_rate: float,
    verbose: bool,
) -> bool:
    """Walk ``task`` to completion; returns False if the walk did not finish."""
    session = InterviewSession(task)
    log_header(task)

    for _ in range(MAX_STEPS):
        if session.is_complete:
            break
        current = session.current_id
        step = task.step(current)
        shown = session.current_step()
        log_step(step, shown.index, shown.total)

        if rng is not None and session.history and rng.random() < back_rate:
            back = session.step_back()
            _print(f" [<] back to {back.step.link_id} (answer kept: {back.step.current_value!r})")
            continue

        if step.interactive:
            answer = mock_answer(step, rng)
            _print(f" [A] {answer!r}")
            session.submit_answer(answer)
        else:
            session.advance()
        log_transition(task, current, session.current_id)
    else:
        _print(f"\n Did not finish within {MAX_STEPS} steps")
        return False

    response = session.response()
    _print(f"\n{_DOUBLE_LINE}")
    _print(f" Interview complete: {len(session.answers)} answers")
    _print(f" Path: {' -> '.join(task.path(session.answers))}")
    _print(_DOUBLE_LINE)
    if verbose:
        _print(json.dumps(response.model_dump(mode="json", exclude_none=True), indent=2, ensure_ascii=False))
    return True


def list_questionnaires(store: QuestionnaireStore) -> None:
    """Print all bundled questionnaires and exit."""
    print("Available questionnaires:")
    print()
    for i, key in enumerate(store.keys(), 1):
        q = store.get(key)
        print(f"  {i:2d}. {key:<25s} ({q.title or '-'})")


def main() -> None:
    global _quiet

    parser = argparse.ArgumentParser(
        description="Simulate an interview end-to-end against a bundled questionnaire.",
    )
    parser.add_argument(
        "-k", "--key",
        default=_DEFAULT_KEY,
        help=f"Questionnaire key to simulate (default: {_DEFAULT_KEY})",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List bundled questionnaires and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print the final response JSON and debug logs",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all print output (exit code still reflects success/failure)",
    )
    parser.add_argument(
        "--random",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Randomise answers (default: on). Use --no-random for deterministic mode.",
    )
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for --random")
    parser.add_argument(
        "--back-rate",
        type=float, default=0.0,
        help="Probability of going back instead of answering (random mode only)",
    )
    args = parser.parse_args()
    _quiet = args.quiet

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s [%(name)s] %(message)s",
    )

    store = QuestionnaireStore()
    store.load()
    if args.list:
        list_questionnaires(store)
        sys.exit(0)

    rng = random.Random(args.seed) if args.random else None
    ok = run_simulation(store.get_task(args.key), rng, args.back_rate, args.verbose)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
