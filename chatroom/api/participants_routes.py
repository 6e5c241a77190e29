"""
Participant REST API Routes
===========================

Endpoints:
- POST /participants - Join the room ({"name": ...})
- GET  /participants - List active participants
- POST /status       - Heartbeat for the participant named in the ``user`` header
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..domain.services.participant_lifecycle import ParticipantLifecycleManager
from .dependencies import get_lifecycle, get_user_claim

router = APIRouter(tags=["participants"])


class JoinRequest(BaseModel):
    """Join request body"""
    name: Optional[str] = Field(None, description="Display name (trimmed, markup stripped)")

    class Config:
        json_schema_extra = {"example": {"name": "Ana"}}


@router.post("/participants", status_code=201)
async def join_room(
    body: JoinRequest,
    lifecycle: ParticipantLifecycleManager = Depends(get_lifecycle),
) -> JSONResponse:
    """
    Join the chat room.

    Responses:
    - 201: participant created, join notice broadcast
    - 409: name already in use
    - 422: name missing or empty
    """
    participant = await lifecycle.join(body.name)
    return JSONResponse(content=participant.to_dict(), status_code=201)


@router.get("/participants")
async def list_participants(
    lifecycle: ParticipantLifecycleManager = Depends(get_lifecycle),
) -> JSONResponse:
    participants = await lifecycle.list_participants()
    return JSONResponse(content=[p.to_dict() for p in participants])


@router.post("/status")
async def refresh_status(
    user: Optional[str] = Depends(get_user_claim),
    lifecycle: ParticipantLifecycleManager = Depends(get_lifecycle),
) -> JSONResponse:
    """
    Heartbeat. A 404 means the participant was evicted (or never joined)
    and must join again.
    """
    participant = await lifecycle.refresh(user)
    return JSONResponse(content=participant.to_dict())
