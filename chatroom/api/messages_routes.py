"""
Message REST API Routes
=======================

Endpoints:
- POST   /messages       - Post a message as the ``user`` header participant
- GET    /messages       - Message history (optional ?limit=N tail)
- PUT    /messages/{id}  - Edit own message
- DELETE /messages/{id}  - Delete own message
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..domain.services.message_gateway import MessageGateway
from .dependencies import get_gateway, get_user_claim

router = APIRouter(prefix="/messages", tags=["messages"])


class MessageRequest(BaseModel):
    """Client message body; validated and sanitized by the gateway"""
    to: Optional[str] = Field(None, description="'Todos' for broadcast or a participant name")
    text: Optional[str] = Field(None, description="Message text")
    type: Optional[str] = Field(None, description="'message' or 'private_message'")

    class Config:
        json_schema_extra = {
            "example": {"to": "Todos", "text": "oi galera", "type": "message"}
        }


@router.post("", status_code=201)
async def post_message(
    body: MessageRequest,
    user: Optional[str] = Depends(get_user_claim),
    gateway: MessageGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Responses:
    - 201: message stored
    - 422: invalid fields, or sender is not an active participant
    """
    message = await gateway.post(user, body.to, body.text, body.type)
    return JSONResponse(content=message.to_dict(), status_code=201)


@router.get("")
async def list_messages(
    limit: Optional[str] = Query(None, description="Return only the most recent N messages"),
    user: Optional[str] = Depends(get_user_claim),
    gateway: MessageGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Message history in insertion order. When the ``user`` header is present,
    private messages between other participants are left out.
    """
    messages = await gateway.list_messages(limit=limit, viewer=user)
    return JSONResponse(content=[m.to_dict() for m in messages])


@router.put("/{message_id}")
async def edit_message(
    message_id: str,
    body: MessageRequest,
    user: Optional[str] = Depends(get_user_claim),
    gateway: MessageGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Responses:
    - 200: updated message
    - 401: requester is not the author
    - 404: no such message
    - 422: invalid fields
    """
    message = await gateway.edit(message_id, user, body.to, body.text, body.type)
    return JSONResponse(content=message.to_dict())


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    user: Optional[str] = Depends(get_user_claim),
    gateway: MessageGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Responses:
    - 200: message removed
    - 401: requester is not the author
    - 404: no such message
    """
    await gateway.delete(message_id, user)
    return JSONResponse(content={"id": message_id, "deleted": True})
