from pathlib import Path

import pytest

from questnav.expression import Evaluator
from questnav.store import QuestionnaireStore

QUESTIONNAIRE_DIR = Path(__file__).resolve().parent.parent / "questionnaires"


@pytest.fixture(scope="session")
def store():
    """Load the bundled questionnaires once for the entire test session."""
    s = QuestionnaireStore(QUESTIONNAIRE_DIR)
    s.load()
    return s


@pytest.fixture
def evaluator():
    """Fresh Evaluator for each test."""
    return Evaluator()
