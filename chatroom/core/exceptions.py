"""
Core Exceptions - Chat Room
===========================
Centralized exception definitions for the chat room services.

Service-level errors derive from ChatError and carry a stable error code plus
the HTTP status the API layer answers with. Store-level errors derive from
StoreError and never leave the service layer unmapped.
"""


class ChatError(Exception):
    """Base exception for chat room operations."""
    error_code = "chat_error"
    http_status = 500

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__.strip()
        super().__init__(self.message)


class ValidationFailed(ChatError):
    """
    Raised when input is missing, malformed or empty after sanitization.

    Detected before any store access.

    HTTP Status: 422 Unprocessable Entity
    """
    error_code = "validation_error"
    http_status = 422

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid '{field}': {reason}")


class Conflict(ChatError):
    """
    Raised when joining with a name that is already taken.

    HTTP Status: 409 Conflict
    """
    error_code = "participant_conflict"
    http_status = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Participant name already in use: {name}")


class NotFound(ChatError):
    """
    Raised when a participant or message does not exist.

    HTTP Status: 404 Not Found
    """
    error_code = "not_found"
    http_status = 404

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class Forbidden(ChatError):
    """
    Raised when someone other than the author edits or deletes a message.

    HTTP Status: 401 Unauthorized
    """
    error_code = "forbidden"
    http_status = 401

    def __init__(self, message_id: str, requester: str):
        self.message_id = message_id
        self.requester = requester
        super().__init__(f"{requester or 'anonymous'} is not the author of message {message_id}")


class UnknownSender(ChatError):
    """
    Raised when a message is posted by a name that is not an active participant.

    HTTP Status: 422 Unprocessable Entity
    """
    error_code = "unknown_sender"
    http_status = 422

    def __init__(self, sender: str):
        self.sender = sender
        super().__init__(f"Sender is not an active participant: {sender or '<missing>'}")


class StoreUnavailable(ChatError):
    """
    Raised when the backing store fails. Internal details are never exposed.

    HTTP Status: 500 Internal Server Error
    """
    error_code = "store_unavailable"
    http_status = 500

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__("Service unavailable")


class StoreError(Exception):
    """Backend I/O failure raised by a store implementation."""
    pass


class DuplicateParticipantError(StoreError):
    """Raised by a store when its uniqueness constraint on participant names rejects an insert."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate participant name: {name}")
