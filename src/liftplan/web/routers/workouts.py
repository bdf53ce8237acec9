"""Workout and max routes."""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ...models.lift import MaxType

router = APIRouter(prefix="/users", tags=["workouts"])


class MaxRequest(BaseModel):
    value: float = Field(..., ge=0)
    max_type: MaxType = MaxType.TRAINING_MAX


def get_service(request: Request):
    """Get the training service from app state."""
    return request.app.state.service


@router.get("/{user_id}/workout")
async def get_workout(request: Request, user_id: str):
    """Today's workout at the user's current position."""
    view = await get_service(request).compute_workout(user_id)
    return view.to_dict()


@router.post("/{user_id}/sessions", status_code=201)
async def start_session(request: Request, user_id: str):
    """Start a session for today's workout."""
    session = await get_service(request).start_session(user_id)
    return session.to_dict()


@router.get("/{user_id}/maxes")
async def get_maxes(request: Request, user_id: str):
    """Current maxes as lift -> {max type -> value}."""
    current = await get_service(request).current_maxes(user_id)
    return {
        lift_id: {max_type.value: value for max_type, value in values.items()}
        for lift_id, values in current.items()
    }


@router.put("/{user_id}/maxes/{lift_id}")
async def set_max(request: Request, user_id: str, lift_id: str, body: MaxRequest):
    """Record a new max."""
    record = await get_service(request).set_max(user_id, lift_id, body.max_type, body.value)
    return record.to_dict()
