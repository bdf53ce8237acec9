"""Progression routes."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(prefix="/users", tags=["progressions"])


class TriggerRequest(BaseModel):
    lift_id: str | None = None
    force: bool = False


def get_service(request: Request):
    """Get the training service from app state."""
    return request.app.state.service


@router.post("/{user_id}/progressions/{progression_id}/trigger")
async def trigger_progression(
    request: Request, user_id: str, progression_id: str, body: TriggerRequest | None = None
):
    """Apply a progression by hand."""
    body = body or TriggerRequest()
    results = await get_service(request).trigger_progression(
        user_id, progression_id, lift_id=body.lift_id, force=body.force
    )
    return results.to_dict()


@router.get("/{user_id}/progressions/history")
async def progression_history(
    request: Request, user_id: str, lift_id: str | None = None, limit: int = 50
):
    """Applied progressions, newest first."""
    entries = await get_service(request).history(user_id, lift_id=lift_id, limit=limit)
    return [e.to_dict() for e in entries]
