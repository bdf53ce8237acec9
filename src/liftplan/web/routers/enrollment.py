"""Enrollment and calendar routes."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(prefix="/users", tags=["enrollment"])


class EnrollRequest(BaseModel):
    program_id: str


def get_service(request: Request):
    """Get the training service from app state."""
    return request.app.state.service


@router.get("/{user_id}/enrollment")
async def get_enrollment(request: Request, user_id: str):
    state = await get_service(request).get_enrollment(user_id)
    return state.to_dict()


@router.post("/{user_id}/enrollment", status_code=201)
async def enroll(request: Request, user_id: str, body: EnrollRequest):
    """Enroll in a program at cycle 1, week 1, day 1."""
    state = await get_service(request).enroll(user_id, body.program_id)
    return state.to_dict()


@router.delete("/{user_id}/enrollment")
async def unenroll(request: Request, user_id: str):
    """Quit the program."""
    state = await get_service(request).unenroll(user_id)
    return state.to_dict()


@router.post("/{user_id}/advance")
async def advance(request: Request, user_id: str):
    """Move to the next scheduled day."""
    result = await get_service(request).advance(user_id)
    return result.to_dict()


@router.post("/{user_id}/next-cycle")
async def next_cycle(request: Request, user_id: str):
    """Start the next cycle."""
    state = await get_service(request).next_cycle(user_id)
    return state.to_dict()
