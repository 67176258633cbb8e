"""Notification inbox HTTP router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from haddaf.auth import verify_api_key
from haddaf.goals.deps import get_inbox
from haddaf.goals.notifications import NotificationFeed, NotificationInbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/{owner_id}", response_model=NotificationFeed)
async def notification_feed(
    owner_id: str,
    inbox: NotificationInbox = Depends(get_inbox),
    _: str = Depends(verify_api_key),
) -> NotificationFeed:
    return inbox.feed(owner_id)


@router.post("/{owner_id}/read")
async def mark_all_read(
    owner_id: str,
    inbox: NotificationInbox = Depends(get_inbox),
    _: str = Depends(verify_api_key),
) -> dict[str, int]:
    return {"updated": inbox.mark_all_as_read(owner_id)}


@router.post("/{owner_id}/{notification_id}/read")
async def mark_read(
    owner_id: str,
    notification_id: str,
    inbox: NotificationInbox = Depends(get_inbox),
    _: str = Depends(verify_api_key),
) -> dict[str, str]:
    if not inbox.mark_as_read(owner_id, notification_id):
        raise HTTPException(status_code=404, detail=f"Unknown notification: {notification_id}")
    return {"status": "ok"}


@router.delete("/{owner_id}/{notification_id}", status_code=204)
async def delete_notification(
    owner_id: str,
    notification_id: str,
    inbox: NotificationInbox = Depends(get_inbox),
    _: str = Depends(verify_api_key),
) -> Response:
    if not inbox.delete(owner_id, notification_id):
        raise HTTPException(status_code=404, detail=f"Unknown notification: {notification_id}")
    return Response(status_code=204)
