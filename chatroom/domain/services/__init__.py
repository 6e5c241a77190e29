from .participant_lifecycle import ParticipantLifecycleManager, normalize_identity
from .message_gateway import MessageGateway
from .sweeper import ParticipantSweeper

__all__ = [
    'ParticipantLifecycleManager',
    'normalize_identity',
    'MessageGateway',
    'ParticipantSweeper',
]
