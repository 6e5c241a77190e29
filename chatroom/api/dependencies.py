"""
FastAPI Dependencies for API Routes

Reusable dependency functions for the chat endpoints. Services are read from
the Container stored on app.state by the application factory, so routes never
touch module-level globals.
"""

from typing import Optional

from fastapi import Header, Request

from ..domain.services.message_gateway import MessageGateway
from ..domain.services.participant_lifecycle import ParticipantLifecycleManager
from ..infrastructure.container import Container


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError(
            "Chat container not initialized. Build the app with create_app()."
        )
    return container


def get_lifecycle(request: Request) -> ParticipantLifecycleManager:
    return get_container(request).lifecycle


def get_gateway(request: Request) -> MessageGateway:
    return get_container(request).gateway


async def get_user_claim(user: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Identity claim from the ``user`` header.

    Returned as sent (or None); the services apply the same cleaning used at
    join time before comparing names.
    """
    return user
