"""Shared-secret check for the goal, metric and notification routes.

Callers are the Haddaf app backend and the video-analysis pipeline, never
players directly. Both send the service key either as ``X-API-Key`` or as an
``Authorization: Bearer`` token; the dedicated header wins when both arrive.
Deployments without ``API_KEY`` (local runs, tests) accept every request.
"""

from fastapi import HTTPException, Header

from haddaf.config import settings

BEARER_PREFIX = "bearer "


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    expected = settings.api_key
    if expected is None:
        return ""

    presented = _presented_key(x_api_key, authorization)
    if presented != expected:
        raise HTTPException(
            status_code=401,
            detail="Service key required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return presented
