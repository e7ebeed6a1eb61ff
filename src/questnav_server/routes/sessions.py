"""Session management endpoints — create, get, list and delete sessions.

All endpoints require the ``X-User-ID`` header for user identification.
Session identity is the (user_id, session_id) pair; sessions live in the
in-memory registry only.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from questnav.engine import InterviewSession
from questnav.models.session import SessionInfo
from questnav.store import QuestionnaireStore

from questnav_server.dependencies import get_registry, get_store, get_user_id
from questnav_server.registry import SessionRegistry

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Body for POST /sessions.

    ``answers`` pre-fills the session (e.g. to resume from a stored
    response); answers of steps hidden under them are dropped.
    """
    questionnaire: str
    session_id: str | None = None
    answers: dict[str, Any] | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/sessions", status_code=201)
async def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_user_id),
    store: QuestionnaireStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionInfo:
    """Start an interview on a loaded questionnaire.

    Returns 201 on success, 404 for an unknown questionnaire, 409 if the
    session id is already taken and 400 if a pre-filled answer is invalid.
    """
    task = store.get_task(body.questionnaire)
    session = InterviewSession(task, body.answers, session_id=body.session_id)
    registry.add(user_id, session)
    return session.info()


@router.get("/sessions")
async def list_sessions(
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> list[SessionInfo]:
    """All live sessions of the caller."""
    return [s.info() for s in registry.for_user(user_id)]


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionInfo:
    """Get session info by session_id.

    Raises 404 if the session does not exist for this user.
    """
    return registry.get(user_id, session_id).info()


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    """Discard a session and its answers."""
    registry.remove(user_id, session_id)
