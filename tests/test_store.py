"""QuestionnaireStore loading and lookup tests.

Validates that the bundled questionnaires load and compile, and that the
store reports missing directories, duplicate keys and unknown lookups.

Bundled questionnaires (questionnaires/):
    skip_logic_example  3 steps, 2 skip rules
    clinical_intake     15 steps across 3 groups
"""

import json

import pytest

from helpers.builders import item, questionnaire, when
from questnav.errors import CompileError, ParseError
from questnav.store import QuestionnaireStore, load_document


# =====================================================================
# Bundled questionnaires
# =====================================================================


def test_store_loads_bundled_questionnaires(store):
    """Both bundled files load under their ids."""
    assert store.keys() == ["clinical_intake", "skip_logic_example"], (
        f"Unexpected keys: {store.keys()}"
    )
    assert len(store) == 2
    assert "clinical_intake" in store


def test_skip_logic_example_shape(store):
    task = store.get_task("skip_logic_example")
    assert [s.link_id for s in task.steps] == ["likes_ice_cream", "favorite_flavor", "last_eaten"]
    assert len(task.rules) == 2
    assert task.task_id == "http://example.org/questionnaires/skip-logic-example"


def test_clinical_intake_shape(store):
    task = store.get_task("clinical_intake")
    assert len(task.steps) == 15, f"Expected 15 steps, got {len(task.steps)}"
    assert task.step("fever_chills").group_path == ("fever",)
    assert [o.code for o in task.step("symptoms").options] == [
        "fever", "fatigue", "headache", "abdominal_pain", "cough",
    ], "abstract concepts are not selectable"


def test_get_task_is_cached(store):
    assert store.get_task("skip_logic_example") is store.get_task("skip_logic_example")


def test_unknown_key(store):
    with pytest.raises(KeyError, match="Questionnaire not found"):
        store.get("nope")
    with pytest.raises(KeyError):
        store.get_task("nope")


# =====================================================================
# Loading from a directory
# =====================================================================


def test_json_and_stem_key(tmp_path):
    """JSON files load too; a document without an id is keyed by file stem."""
    (tmp_path / "screening.json").write_text(json.dumps({
        "title": "Screening",
        "items": [{"link_id": "q1", "kind": "text", "text": "Name?"}],
    }))
    (tmp_path / "notes.txt").write_text("ignored")
    s = QuestionnaireStore(tmp_path)
    s.load()
    assert s.keys() == ["screening"]
    assert s.get_task("screening").title == "Screening"


def test_duplicate_key(tmp_path):
    body = "id: same\nitems:\n  - {link_id: q1, kind: text}\n"
    (tmp_path / "a.yaml").write_text(body)
    (tmp_path / "b.yml").write_text(body)
    with pytest.raises(ValueError, match="already exists"):
        QuestionnaireStore(tmp_path).load()


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        QuestionnaireStore(tmp_path / "absent").load()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_document(tmp_path / "absent.yaml")


def test_unknown_reference_fails_load(tmp_path):
    """A condition on an undeclared question rejects the load itself."""
    (tmp_path / "broken.yaml").write_text(
        "items:\n"
        "  - {link_id: q1, kind: text}\n"
        "  - link_id: q2\n"
        "    kind: text\n"
        "    enable_when:\n"
        "      - {question: zz, operator: exists, answer: true}\n"
    )
    with pytest.raises(CompileError):
        QuestionnaireStore(tmp_path).load()


def test_malformed_expression_fails_load(tmp_path):
    """A syntax error in an expression is reported at load, not at first use."""
    (tmp_path / "good.yaml").write_text("id: good\nitems:\n  - {link_id: q1, kind: text}\n")
    (tmp_path / "broken.yaml").write_text(
        "items:\n"
        "  - {link_id: q1, kind: text}\n"
        "  - link_id: q2\n"
        "    kind: text\n"
        "    enable_when:\n"
        "      - {expression: \"answer-of(q1) =\"}\n"
    )
    s = QuestionnaireStore(tmp_path)
    with pytest.raises(ParseError) as exc:
        s.load()
    assert exc.value.item_id == "q2", "parse errors name the owning item"
    assert s.keys() == [], "a failed load registers nothing"


def test_add_in_memory():
    s = QuestionnaireStore("unused")
    s.add("mem", questionnaire(item("a")))
    assert [step.link_id for step in s.get_task("mem").steps] == ["a"]
    with pytest.raises(ValueError, match="already exists"):
        s.add("mem", questionnaire(item("a")))


def test_add_rejects_broken_questionnaire():
    s = QuestionnaireStore("unused")
    with pytest.raises(CompileError):
        s.add("mem", questionnaire(item("a", enable_when=[when("zz", "exists", True)])))
    assert "mem" not in s
