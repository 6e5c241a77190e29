"""
Core module for the chat room backend
"""

from .exceptions import (
    ChatError,
    ValidationFailed,
    Conflict,
    NotFound,
    Forbidden,
    UnknownSender,
    StoreUnavailable,
    StoreError,
    DuplicateParticipantError,
)

__all__ = [
    'ChatError',
    'ValidationFailed',
    'Conflict',
    'NotFound',
    'Forbidden',
    'UnknownSender',
    'StoreUnavailable',
    'StoreError',
    'DuplicateParticipantError',
]
