"""FastAPI dependency injection — provides the store, registries and user identity."""

import hmac

from fastapi import Header, HTTPException, Request

from questnav.store import QuestionnaireStore

from questnav_server.registry import ResponseStorage, SessionRegistry


# ------------------------------------------------------------------
# Shared state — stashed on app.state by create_app / lifespan
# ------------------------------------------------------------------

def get_store(request: Request) -> QuestionnaireStore:
    """Return the QuestionnaireStore singleton from ``app.state``."""
    return request.app.state.store


def get_registry(request: Request) -> SessionRegistry:
    """Return the session registry from ``app.state``."""
    return request.app.state.registry


def get_responses(request: Request) -> ResponseStorage:
    """Return the response storage from ``app.state``."""
    return request.app.state.responses


# ------------------------------------------------------------------
# User identity — extracted from the X-User-ID header
# ------------------------------------------------------------------

async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract user identity from the ``X-User-ID`` header.

    Returns 401 if the header is missing — every session endpoint
    requires a known caller.

    When ``QUESTNAV_TRUSTED_PROXY_SECRET`` is configured, the request must
    also carry a matching ``X-Proxy-Secret`` header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(
                status_code=403,
                detail="X-Proxy-Secret header is required",
            )
        # Constant-time comparison to prevent timing side-channels.
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_user_id
