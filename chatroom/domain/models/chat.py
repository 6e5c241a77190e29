"""
Chat Room Models
================

Provides:
- MessageType enum (client-postable types plus the reserved system type)
- Participant and Message records as stored
- SweepReport summarizing one eviction pass

Participant lifecycle:
    [ABSENT] --join--> [ACTIVE] --refresh--> [ACTIVE]
                           |
                   silence > threshold
                           v
                       [ABSENT]
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

BROADCAST_RECIPIENT = "Todos"
JOIN_NOTICE = "entra na sala..."
LEAVE_NOTICE = "sai da sala..."


class MessageType(str, Enum):
    MESSAGE = "message"
    PRIVATE_MESSAGE = "private_message"
    STATUS = "status"  # system-generated only


# Types a client may set on post/edit
CLIENT_MESSAGE_TYPES = frozenset({MessageType.MESSAGE, MessageType.PRIVATE_MESSAGE})


@dataclass
class Participant:
    name: str
    last_status: int  # epoch ms

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "lastStatus": self.last_status}


@dataclass
class Message:
    """A stored chat message. ``sender`` is serialized as ``from``."""
    sender: str
    to: str
    text: str
    type: MessageType
    time: str
    id: Optional[str] = None

    def is_visible_to(self, viewer: str) -> bool:
        """Private messages are only visible to their two ends."""
        if self.type != MessageType.PRIVATE_MESSAGE:
            return True
        return viewer in (self.sender, self.to)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.to,
            "text": self.text,
            "type": self.type.value,
            "time": self.time,
        }


@dataclass
class SweepReport:
    """
    Outcome of one sweep pass.

    ``failed`` holds participants that could not be removed; ``notice_failed``
    holds participants that were removed but whose leave notice was not stored.
    """
    checked: int = 0
    evicted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    notice_failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.notice_failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "evicted": list(self.evicted),
            "failed": dict(self.failed),
            "notice_failed": dict(self.notice_failed),
        }
