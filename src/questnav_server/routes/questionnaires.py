"""Questionnaire endpoints — list definitions, inspect them, export graphs.

Read-only views over the loaded :class:`QuestionnaireStore`.  Fetching a
graph compiles the questionnaire, so a definition with broken skip logic
surfaces here as 422.
"""

from typing import Any

from fastapi import APIRouter, Depends

from questnav.graph import build_navigation_graph
from questnav.models.response import QuestionnaireResponse
from questnav.store import QuestionnaireStore

from questnav_server.dependencies import get_responses, get_store
from questnav_server.registry import ResponseStorage

router = APIRouter(tags=["questionnaires"])


@router.get("/questionnaires")
async def list_questionnaires(
    store: QuestionnaireStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """Summaries of every loaded questionnaire."""
    summaries = []
    for key in store.keys():
        q = store.get(key)
        summaries.append({
            "key": key,
            "id": q.id,
            "url": q.url,
            "title": q.title,
            "version": q.version,
            "items": sum(1 for _ in q.walk()),
        })
    return summaries


@router.get("/questionnaires/{key}")
async def get_questionnaire(
    key: str,
    store: QuestionnaireStore = Depends(get_store),
) -> dict[str, Any]:
    """The full questionnaire definition."""
    return store.get(key).model_dump(mode="json")


@router.get("/questionnaires/{key}/graph")
async def get_questionnaire_graph(
    key: str,
    store: QuestionnaireStore = Depends(get_store),
) -> dict[str, Any]:
    """Cytoscape graph of the compiled steps and skip rules."""
    return build_navigation_graph(store.get_task(key))


@router.get("/questionnaires/{key}/responses")
async def list_responses(
    key: str,
    store: QuestionnaireStore = Depends(get_store),
    responses: ResponseStorage = Depends(get_responses),
) -> list[QuestionnaireResponse]:
    """Responses stored for this questionnaire since startup."""
    task = store.get_task(key)
    return responses.for_questionnaire(task.questionnaire.url or task.task_id)
