"""QuestionnaireStore — loads questionnaire definitions from disk.

Every ``*.yaml`` / ``*.yml`` / ``*.json`` file in the store directory holds
one questionnaire.  Files are parsed into :class:`Questionnaire` models and
compiled into navigable tasks at :meth:`QuestionnaireStore.load` time, so a broken
definition fails the load instead of the first session.

Usage::

    store = QuestionnaireStore()        # defaults to questionnaires/ at repo root
    store.load()

    task = store.get_task("skip_logic_example")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from questnav.errors import DefinitionError
from questnav.models.item import Questionnaire
from questnav.navigation import NavigableTask, NavigationGraphBuilder

logger = logging.getLogger(__name__)

_SUFFIXES = (".yaml", ".yml", ".json")


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_document(path: Path | str) -> Any:
    """Load a single YAML or JSON file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing questionnaire file: {path}")
    with path.open("r", encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# QuestionnaireStore
# ---------------------------------------------------------------------------

class QuestionnaireStore:
    """Loads questionnaires from a directory and compiles them up front.

    Keys are the questionnaire ``id``, or the file stem when the document
    has none.
    """

    def __init__(
        self,
        directory: str | Path | None = None,
        *,
        builder: NavigationGraphBuilder | None = None,
    ) -> None:
        if directory is None:
            directory = find_repo_root() / "questionnaires"
        self._base = Path(directory)
        self._builder = builder or NavigationGraphBuilder()

        # Populated by load()
        self._questionnaires: dict[str, Questionnaire] = {}
        self._tasks: dict[str, NavigableTask] = {}

    @property
    def directory(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every questionnaire file under the store directory.

        Every definition is validated and compiled here, so a malformed
        expression or bad reference rejects the whole load.

        Raises:
            FileNotFoundError: if the directory does not exist.
            ValueError: on duplicate keys.
            DefinitionError: if any questionnaire fails to compile (names
                the file); nothing from this load is kept.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Questionnaire directory not found: {self._base}")

        questionnaires: dict[str, Questionnaire] = {}
        tasks: dict[str, NavigableTask] = {}
        for path in sorted(self._base.iterdir()):
            if path.suffix not in _SUFFIXES:
                continue
            raw = load_document(path)
            questionnaire = Questionnaire.model_validate(raw)
            key = questionnaire.id or path.stem
            if key in questionnaires:
                raise ValueError(f"Questionnaire '{key}' already exists (from {path.name})")
            try:
                tasks[key] = self._builder.build(questionnaire)
            except DefinitionError:
                logger.error("Failed to compile questionnaire %s (%s)", key, path.name)
                raise
            questionnaires[key] = questionnaire

        self._questionnaires = questionnaires
        self._tasks = tasks
        logger.info(
            "QuestionnaireStore loaded %d questionnaires from %s",
            len(self._questionnaires), self._base,
        )

    def add(self, key: str, questionnaire: Questionnaire) -> None:
        """Register and compile an in-memory questionnaire under ``key``."""
        if key in self._questionnaires:
            raise ValueError(f"Questionnaire '{key}' already exists")
        self._tasks[key] = self._builder.build(questionnaire)
        self._questionnaires[key] = questionnaire

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        return sorted(self._questionnaires)

    def get(self, key: str) -> Questionnaire:
        """Return the questionnaire for ``key``.  Raises ``KeyError`` if unknown."""
        try:
            return self._questionnaires[key]
        except KeyError:
            raise KeyError(f"Questionnaire not found: {key}") from None

    def get_task(self, key: str) -> NavigableTask:
        """Return the compiled task for ``key``.  Raises ``KeyError`` if unknown."""
        try:
            return self._tasks[key]
        except KeyError:
            raise KeyError(f"Questionnaire not found: {key}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._questionnaires

    def __len__(self) -> int:
        return len(self._questionnaires)
