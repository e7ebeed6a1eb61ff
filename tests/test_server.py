"""HTTP API tests — questionnaires, sessions and the step loop.

Each test gets a fresh application (and so a fresh session registry)
built around the bundled questionnaire store.
"""

import pytest
from fastapi.testclient import TestClient

from questnav_server.app import create_app
from questnav_server.config import ServerSettings

API = "/api/v1"
USER = {"X-User-ID": "user-1"}
SKIP_URL = "http://example.org/questionnaires/skip-logic-example"


@pytest.fixture
def client(store):
    """TestClient over an app that reuses the session-scoped store."""
    app = create_app(ServerSettings(), store=store)
    return TestClient(app)


def _start(client, key="skip_logic_example", **body):
    resp = client.post(f"{API}/sessions", json={"questionnaire": key, **body}, headers=USER)
    assert resp.status_code == 201, resp.text
    return resp.json()["session_id"]


def _submit(client, session_id, value=None, **body):
    return client.post(
        f"{API}/sessions/{session_id}/step", json={"value": value, **body}, headers=USER,
    )


# =====================================================================
# Health and questionnaires
# =====================================================================


class TestQuestionnaires:
    """Read-only questionnaire endpoints."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "questionnaires": 2, "sessions": 0}

    def test_list(self, client):
        resp = client.get(f"{API}/questionnaires")
        assert resp.status_code == 200
        by_key = {q["key"]: q for q in resp.json()}
        assert set(by_key) == {"clinical_intake", "skip_logic_example"}
        assert by_key["skip_logic_example"]["url"] == SKIP_URL
        assert by_key["skip_logic_example"]["items"] == 3

    def test_get_definition(self, client):
        resp = client.get(f"{API}/questionnaires/skip_logic_example")
        assert resp.status_code == 200
        assert [i["link_id"] for i in resp.json()["items"]][0] == "likes_ice_cream"

    def test_unknown_questionnaire(self, client):
        assert client.get(f"{API}/questionnaires/nope").status_code == 404
        assert client.get(f"{API}/questionnaires/nope/graph").status_code == 404

    def test_graph(self, client):
        resp = client.get(f"{API}/questionnaires/skip_logic_example/graph")
        assert resp.status_code == 200
        graph = resp.json()
        assert len(graph["nodes"]) == 4, "three steps plus completion"
        skips = [e for e in graph["edges"] if e["data"].get("kind") == "skip"]
        assert len(skips) == 2


# =====================================================================
# Sessions
# =====================================================================


class TestSessions:
    """Session lifecycle and caller identity."""

    def test_create_and_get(self, client):
        session_id = _start(client, session_id="s1")
        assert session_id == "s1"
        info = client.get(f"{API}/sessions/s1", headers=USER).json()
        assert info["current_step"] == "likes_ice_cream"
        assert info["complete"] is False

    def test_user_id_required(self, client):
        resp = client.post(f"{API}/sessions", json={"questionnaire": "skip_logic_example"})
        assert resp.status_code == 401

    def test_duplicate_session_id(self, client):
        _start(client, session_id="s1")
        resp = client.post(
            f"{API}/sessions",
            json={"questionnaire": "skip_logic_example", "session_id": "s1"},
            headers=USER,
        )
        assert resp.status_code == 409

    def test_unknown_questionnaire(self, client):
        resp = client.post(f"{API}/sessions", json={"questionnaire": "nope"}, headers=USER)
        assert resp.status_code == 404

    def test_sessions_are_per_user(self, client):
        session_id = _start(client)
        other = {"X-User-ID": "user-2"}
        assert client.get(f"{API}/sessions/{session_id}", headers=other).status_code == 404
        assert client.get(f"{API}/sessions", headers=other).json() == []
        assert len(client.get(f"{API}/sessions", headers=USER).json()) == 1

    def test_delete(self, client):
        session_id = _start(client)
        assert client.delete(f"{API}/sessions/{session_id}", headers=USER).status_code == 204
        assert client.get(f"{API}/sessions/{session_id}", headers=USER).status_code == 404
        assert client.delete(f"{API}/sessions/{session_id}", headers=USER).status_code == 404

    def test_prefilled_answers(self, client):
        session_id = _start(client, answers={"likes_ice_cream": "N", "favorite_flavor": "vanilla"})
        step = client.get(f"{API}/sessions/{session_id}/step", headers=USER).json()
        assert step["step"]["current_value"] == "N"
        info = client.get(f"{API}/sessions/{session_id}", headers=USER).json()
        assert info["answered"] == 1, "the hidden flavour answer is dropped"

    def test_invalid_prefilled_answer(self, client):
        resp = client.post(
            f"{API}/sessions",
            json={"questionnaire": "skip_logic_example", "answers": {"likes_ice_cream": "Maybe"}},
            headers=USER,
        )
        assert resp.status_code == 400
        assert resp.json()["link_id"] == "likes_ice_cream"
        assert client.get(f"{API}/sessions", headers=USER).json() == []

    def test_proxy_secret(self, store):
        app = create_app(ServerSettings(trusted_proxy_secret="s3cret"), store=store)
        client = TestClient(app)
        body = {"questionnaire": "skip_logic_example"}
        assert client.post(f"{API}/sessions", json=body, headers=USER).status_code == 403
        bad = {**USER, "X-Proxy-Secret": "wrong"}
        assert client.post(f"{API}/sessions", json=body, headers=bad).status_code == 403
        good = {**USER, "X-Proxy-Secret": "s3cret"}
        assert client.post(f"{API}/sessions", json=body, headers=good).status_code == 201

    def test_session_limit(self, store):
        client = TestClient(create_app(ServerSettings(max_sessions=1), store=store))
        _start(client)
        resp = client.post(
            f"{API}/sessions", json={"questionnaire": "skip_logic_example"}, headers=USER,
        )
        assert resp.status_code == 429


# =====================================================================
# Step loop
# =====================================================================


class TestSteps:
    """Answering, going back and collecting the response over HTTP."""

    def test_no_branch_completes(self, client):
        session_id = _start(client)
        step = client.get(f"{API}/sessions/{session_id}/step", headers=USER).json()
        assert step["type"] == "question"
        assert [o["code"] for o in step["step"]["options"]] == ["Y", "N"]

        resp = _submit(client, session_id, "N", link_id="likes_ice_cream")
        assert resp.status_code == 200
        assert resp.json()["type"] == "completed"

        stored = client.get(f"{API}/questionnaires/skip_logic_example/responses").json()
        assert len(stored) == 1
        assert stored[0]["questionnaire"] == SKIP_URL
        assert [i["link_id"] for i in stored[0]["items"]] == ["likes_ice_cream"]

    def test_yes_branch(self, client):
        session_id = _start(client)
        assert _submit(client, session_id, "Y").json()["step"]["link_id"] == "favorite_flavor"
        assert _submit(client, session_id, "pistachio").json()["step"]["link_id"] == "last_eaten"
        assert _submit(client, session_id, "2024-07-04").json()["type"] == "completed"

        response = client.get(f"{API}/sessions/{session_id}/response", headers=USER).json()
        assert response["status"] == "completed"
        flavor = response["items"][1]["answers"][0]
        assert flavor["value_string"] == "pistachio"

    def test_invalid_answer(self, client):
        session_id = _start(client)
        resp = _submit(client, session_id, "Maybe")
        assert resp.status_code == 400
        assert resp.json()["link_id"] == "likes_ice_cream"

    def test_required_answer(self, client):
        session_id = _start(client)
        resp = _submit(client, session_id, None)
        assert resp.status_code == 400
        assert resp.json()["link_id"] == "likes_ice_cream"

    def test_stale_link_id(self, client):
        session_id = _start(client)
        resp = _submit(client, session_id, "Y", link_id="last_eaten")
        assert resp.status_code == 400

    def test_answer_after_completion(self, client):
        session_id = _start(client)
        _submit(client, session_id, "N")
        assert _submit(client, session_id, "Y").status_code == 400

    def test_back_and_change(self, client):
        session_id = _start(client)
        _submit(client, session_id, "Y")
        _submit(client, session_id, "vanilla")

        back = client.post(f"{API}/sessions/{session_id}/back", headers=USER)
        assert back.status_code == 200
        assert back.json()["step"]["link_id"] == "favorite_flavor"
        assert back.json()["step"]["current_value"] == "vanilla"

        back = client.post(
            f"{API}/sessions/{session_id}/back", json={"link_id": "likes_ice_cream"}, headers=USER,
        )
        assert back.json()["step"]["current_value"] == "Y"
        assert _submit(client, session_id, "N").json()["type"] == "completed"

        response = client.get(f"{API}/sessions/{session_id}/response", headers=USER).json()
        assert [i["link_id"] for i in response["items"]] == ["likes_ice_cream"]

    def test_recompletion_replaces_stored_response(self, client):
        """Finishing, going back and finishing again keeps one response per session."""
        session_id = _start(client)
        _submit(client, session_id, "N")
        client.post(f"{API}/sessions/{session_id}/back", headers=USER)
        _submit(client, session_id, "Y")
        _submit(client, session_id, "mint")
        assert _submit(client, session_id, "2024-07-04").json()["type"] == "completed"

        stored = client.get(f"{API}/questionnaires/skip_logic_example/responses").json()
        assert len(stored) == 1, f"expected one stored response, got {len(stored)}"
        assert [i["link_id"] for i in stored[0]["items"]] == [
            "likes_ice_cream", "favorite_flavor", "last_eaten",
        ]

    def test_empty_submit_on_answered_step_keeps_answers(self, client):
        session_id = _start(client)
        _submit(client, session_id, "Y")
        _submit(client, session_id, "vanilla")
        client.post(
            f"{API}/sessions/{session_id}/back", json={"link_id": "likes_ice_cream"}, headers=USER,
        )
        assert _submit(client, session_id, None).status_code == 400
        info = client.get(f"{API}/sessions/{session_id}", headers=USER).json()
        assert info["answered"] == 2

    def test_back_at_first_step(self, client):
        session_id = _start(client)
        assert client.post(f"{API}/sessions/{session_id}/back", headers=USER).status_code == 400

    def test_display_step_acknowledged(self, client):
        session_id = _start(client, "clinical_intake")
        step = client.get(f"{API}/sessions/{session_id}/step", headers=USER).json()
        assert step["step"]["interactive"] is False
        assert _submit(client, session_id).json()["step"]["link_id"] == "age"

    def test_in_progress_response(self, client):
        session_id = _start(client)
        _submit(client, session_id, "Y")
        response = client.get(f"{API}/sessions/{session_id}/response", headers=USER).json()
        assert response["status"] == "in-progress"
