"""Session routes."""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ...models.state import LoggedSet

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SetIn(BaseModel):
    prescription_id: str
    lift_id: str
    set_number: int = Field(..., ge=1)
    weight: float = Field(..., ge=0)
    target_reps: int = Field(..., ge=0)
    reps_performed: int = Field(..., ge=0)
    is_amrap: bool = False
    rpe: float | None = None


class LogSetsRequest(BaseModel):
    sets: list[SetIn] = Field(..., min_length=1)


class PerformanceRequest(BaseModel):
    prescription_id: str
    reps: list[int] = Field(..., min_length=1)
    rpe: list[float] | None = None


def get_service(request: Request):
    """Get the training service from app state."""
    return request.app.state.service


@router.get("/{session_id}")
async def get_session(request: Request, session_id: str):
    """A session with its logged sets."""
    session = await get_service(request).get_session(session_id)
    return session.to_dict()


@router.post("/{session_id}/sets")
async def log_sets(request: Request, session_id: str, body: LogSetsRequest):
    """Log fully specified sets."""
    sets = [LoggedSet(**s.model_dump()) for s in body.sets]
    result = await get_service(request).log_sets(session_id, sets)
    return result.to_dict()


@router.post("/{session_id}/performance")
async def log_performance(request: Request, session_id: str, body: PerformanceRequest):
    """Log sets from reps alone; weights come from the prescription."""
    result = await get_service(request).log_performance(
        session_id, body.prescription_id, body.reps, body.rpe
    )
    return result.to_dict()


@router.get("/{session_id}/prescriptions/{prescription_id}/next-set")
async def next_set(request: Request, session_id: str, prescription_id: str):
    """Next set of an autoregulated prescription."""
    progress = await get_service(request).next_fatigue_set(session_id, prescription_id)
    return {
        "completed": [s.to_dict() for s in progress.completed],
        "next_set": progress.next_set.to_dict() if progress.next_set else None,
        "finished": progress.finished,
        "termination_reason": progress.termination_reason,
    }


@router.post("/{session_id}/finish")
async def finish_session(request: Request, session_id: str):
    """Finish a session and apply its progressions."""
    result = await get_service(request).finish_session(session_id)
    return result.to_dict()


@router.post("/{session_id}/abandon")
async def abandon_session(request: Request, session_id: str):
    """Abandon a session."""
    session = await get_service(request).abandon_session(session_id)
    return session.to_dict()
