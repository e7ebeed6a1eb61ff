"""Step endpoints — get the current step, answer it, go back.

Answering the last visible step completes the interview; the serialized
response is then stored in the in-memory response storage, replacing the
session's earlier response if it had completed before.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from questnav.models.response import QuestionnaireResponse
from questnav.models.session import StepResult

from questnav_server.dependencies import get_registry, get_responses, get_user_id
from questnav_server.registry import ResponseStorage, SessionRegistry

router = APIRouter(tags=["steps"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class SubmitAnswerRequest(BaseModel):
    """Body for POST /sessions/{session_id}/step.

    ``link_id`` is optional; when given it must name the current step, which
    guards against double submits from a stale client.
    """
    link_id: str | None = None
    value: Any = None


class StepBackRequest(BaseModel):
    """Body for POST /sessions/{session_id}/back.

    Without ``link_id`` the session returns to the previous step; with it,
    the session jumps back to that earlier step.
    """
    link_id: str | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/sessions/{session_id}/step")
async def get_current_step(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> StepResult:
    """Return the step the host should render now."""
    return registry.get(user_id, session_id).current_step()


@router.post("/sessions/{session_id}/step")
async def submit_answer(
    session_id: str,
    body: SubmitAnswerRequest,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
    responses: ResponseStorage = Depends(get_responses),
) -> StepResult:
    """Record an answer for the current step and advance.

    Display steps are acknowledged by posting without a value.  Returns the
    next step, which is a ``completed`` step once no visible steps remain.
    """
    session = registry.get(user_id, session_id)
    if body.link_id is not None and body.link_id != session.current_id:
        raise ValueError(
            f"Step {body.link_id} is not the current step ({session.current_id})"
        )

    if session.is_complete:
        raise ValueError("Interview already completed; cannot submit an answer")
    if session.task.step(session.current_id).interactive:
        result = session.submit_answer(body.value)
    else:
        result = session.advance()

    if session.is_complete:
        responses.add(user_id, session_id, session.response())
    return result


@router.post("/sessions/{session_id}/back")
async def step_back(
    session_id: str,
    body: StepBackRequest | None = None,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> StepResult:
    """Return to an earlier step; its recorded answer comes back as ``current_value``."""
    session = registry.get(user_id, session_id)
    if body is not None and body.link_id is not None:
        return session.back_to(body.link_id)
    return session.step_back()


@router.get("/sessions/{session_id}/response")
async def get_response(
    session_id: str,
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> QuestionnaireResponse:
    """Serialize the answers recorded so far (``in-progress`` until complete)."""
    return registry.get(user_id, session_id).response()
