"""
In-Memory Chat Store
====================
Process-local implementation of IChatStore.

Used for development (DATABASE_URL=memory://) and tests. Every operation
completes without awaiting, so each one is atomic with respect to the event
loop; that gives the same uniqueness guarantee as the database constraint.
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import replace
from typing import Dict, List, Optional

from ..core.exceptions import DuplicateParticipantError, StoreError
from ..domain.interfaces.storage import IChatStore
from ..domain.models.chat import Message, MessageType, Participant

logger = logging.getLogger(__name__)


class InMemoryChatStore(IChatStore):
    """Dictionary-backed store; returns copies so callers never alias stored records."""

    def __init__(self):
        self._participants: Dict[str, Participant] = {}
        self._messages: "OrderedDict[str, Message]" = OrderedDict()
        self._connected = False

    async def connect(self):
        self._connected = True
        logger.info("In-memory chat store ready")

    async def disconnect(self):
        self._connected = False
        logger.info("In-memory chat store closed")

    def _require_connection(self):
        if not self._connected:
            raise StoreError("Store is not connected")

    # ========================================================================
    # PARTICIPANTS
    # ========================================================================

    async def insert_participant(self, participant: Participant) -> Participant:
        self._require_connection()
        if participant.name in self._participants:
            raise DuplicateParticipantError(participant.name)
        self._participants[participant.name] = replace(participant)
        return replace(participant)

    async def find_participant(self, name: str) -> Optional[Participant]:
        self._require_connection()
        found = self._participants.get(name)
        return replace(found) if found else None

    async def list_participants(self) -> List[Participant]:
        self._require_connection()
        return [replace(p) for p in self._participants.values()]

    async def touch_participant(self, name: str, last_status: int) -> bool:
        self._require_connection()
        participant = self._participants.get(name)
        if participant is None:
            return False
        participant.last_status = max(participant.last_status, last_status)
        return True

    async def delete_participant_if_stale(self, name: str, cutoff_ms: int) -> bool:
        self._require_connection()
        participant = self._participants.get(name)
        if participant is None or participant.last_status >= cutoff_ms:
            return False
        del self._participants[name]
        return True

    # ========================================================================
    # MESSAGES
    # ========================================================================

    async def insert_message(self, message: Message) -> Message:
        self._require_connection()
        stored = replace(message, id=uuid.uuid4().hex)
        self._messages[stored.id] = stored
        return replace(stored)

    async def get_message(self, message_id: str) -> Optional[Message]:
        self._require_connection()
        found = self._messages.get(message_id)
        return replace(found) if found else None

    async def update_message(self, message_id: str, to: str, text: str,
                             message_type: MessageType) -> Optional[Message]:
        self._require_connection()
        stored = self._messages.get(message_id)
        if stored is None:
            return None
        stored.to = to
        stored.text = text
        stored.type = message_type
        return replace(stored)

    async def delete_message(self, message_id: str) -> bool:
        self._require_connection()
        return self._messages.pop(message_id, None) is not None

    async def list_messages(self, limit: Optional[int] = None,
                            viewer: Optional[str] = None) -> List[Message]:
        self._require_connection()
        messages = list(self._messages.values())
        if viewer is not None:
            messages = [m for m in messages if m.is_visible_to(viewer)]
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return [replace(m) for m in messages]

    def get_storage_type(self) -> str:
        return "memory"
