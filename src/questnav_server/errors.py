"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for session-state problems (session not
found, interview already completed, duplicate session) and the
``DefinitionError`` family when a questionnaire cannot be compiled.  Rather
than catching these in every route, we install global handlers that pick
the right HTTP status code.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from questnav.errors import DefinitionError, InvalidAnswerError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # Session id already taken for this user
    ("already exists", 409),
    # Unknown session, questionnaire or step
    ("not found", 404),
    # Registry is full
    ("limit reached", 429),
]


# --- Client-safe messages keyed by HTTP status code ---
# Internal details (user_id, session_id) stay in the server log; the
# client receives only a generic description.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Resource already exists",
    429: "Too many active sessions",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    Inspects the exception message to decide between 404 (not found),
    409 (conflict / duplicate), 429 (session limit) or 400 (bad request).
    Falls back to 400 for unrecognised messages.

    The raw exception message is logged server-side but **never** sent
    to the client.
    """
    msg = str(exc)
    status = 400  # default
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    # Full detail stays server-side; client gets a safe generic message.
    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def invalid_answer_handler(request: Request, exc: InvalidAnswerError) -> JSONResponse:
    """Map ``InvalidAnswerError`` to 400, naming the offending step.

    The message only describes the answer the client itself sent, so it is
    returned as-is for the host to display.
    """
    logger.info("Invalid answer at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "link_id": exc.link_id},
    )


async def definition_error_handler(request: Request, exc: DefinitionError) -> JSONResponse:
    """Map questionnaire compile failures to 422."""
    logger.error("Questionnaire definition error at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": "Questionnaire definition is invalid"},
    )


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown questionnaire key) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
