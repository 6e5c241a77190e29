from .chat import (
    BROADCAST_RECIPIENT,
    JOIN_NOTICE,
    LEAVE_NOTICE,
    CLIENT_MESSAGE_TYPES,
    MessageType,
    Participant,
    Message,
    SweepReport,
)

__all__ = [
    'BROADCAST_RECIPIENT',
    'JOIN_NOTICE',
    'LEAVE_NOTICE',
    'CLIENT_MESSAGE_TYPES',
    'MessageType',
    'Participant',
    'Message',
    'SweepReport',
]
