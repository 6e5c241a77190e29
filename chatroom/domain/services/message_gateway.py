"""
Message Gateway
===============

Validates and records chat messages.

Rules:
- Every client field is sanitized, trimmed and required
- Clients may only post ``message`` or ``private_message``; ``status`` is
  reserved for lifecycle notices and is rejected
- The sender of a new message must be an ACTIVE participant
- Only the original author may edit or delete a message; ``from``, ``id``
  and ``time`` never change
"""

from dataclasses import dataclass
from typing import List, Optional

from ...core.exceptions import (
    Forbidden,
    NotFound,
    StoreError,
    StoreUnavailable,
    UnknownSender,
    ValidationFailed,
)
from ...core.input_sanitizer import InputSanitizer
from ...core.logger import StructuredLogger, get_logger
from ...core.time_manager import Clock, clock_time, now_ms
from ..interfaces.storage import IChatStore
from ..models.chat import CLIENT_MESSAGE_TYPES, Message, MessageType
from .participant_lifecycle import (
    DEFAULT_MAX_NAME_LENGTH,
    ParticipantLifecycleManager,
    normalize_identity,
)

DEFAULT_MAX_TEXT_LENGTH = 2000
# Largest value a BIGINT LIMIT parameter accepts
MAX_LIST_LIMIT = 2 ** 63 - 1


@dataclass(frozen=True)
class MessageFields:
    """Client-mutable fields after validation."""
    to: str
    text: str
    type: MessageType


class MessageGateway:
    """Entry point for every client-originated message write."""

    def __init__(
        self,
        store: IChatStore,
        lifecycle: ParticipantLifecycleManager,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
        clock: Clock = now_ms,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.max_text_length = max_text_length
        self.max_name_length = max_name_length
        self.clock = clock
        self.logger = logger or get_logger(__name__)

    def validate_fields(self, to, text, message_type) -> MessageFields:
        """
        Sanitize and validate the client-supplied fields.

        Raises:
            ValidationFailed: any field missing, empty, too long, or a type
                other than message/private_message
        """
        try:
            clean_to = InputSanitizer.sanitize_string(to, max_length=self.max_name_length)
        except ValueError as e:
            raise ValidationFailed("to", str(e))

        try:
            clean_text = InputSanitizer.sanitize_string(text, max_length=self.max_text_length)
        except ValueError as e:
            raise ValidationFailed("text", str(e))

        try:
            clean_type = InputSanitizer.sanitize_string(message_type, max_length=32)
        except ValueError as e:
            raise ValidationFailed("type", str(e))

        allowed = sorted(t.value for t in CLIENT_MESSAGE_TYPES)
        if clean_type not in allowed:
            raise ValidationFailed("type", f"must be one of {allowed}")

        return MessageFields(to=clean_to, text=clean_text, type=MessageType(clean_type))

    # ========================================================================
    # POST
    # ========================================================================

    async def post(self, sender: Optional[str], to, text, message_type) -> Message:
        """
        Record a message from an active participant.

        Raises:
            ValidationFailed: invalid fields (checked before any store access)
            UnknownSender: sender is not an active participant
            StoreUnavailable: backend failure
        """
        fields = self.validate_fields(to, text, message_type)

        participant = await self.lifecycle.get_active(sender)
        if participant is None:
            self.logger.info("message.unknown_sender", {"sender": sender})
            raise UnknownSender(sender or "")

        message = Message(
            sender=participant.name,
            to=fields.to,
            text=fields.text,
            type=fields.type,
            time=clock_time(self.clock()),
        )
        try:
            stored = await self.store.insert_message(message)
        except StoreError as e:
            self.logger.error("message.post_failed", {"sender": participant.name, "error": str(e)})
            raise StoreUnavailable("post_message") from e

        self.logger.debug("message.posted", {"id": stored.id, "sender": stored.sender, "type": stored.type})
        return stored

    # ========================================================================
    # EDIT / DELETE
    # ========================================================================

    async def _get_owned(self, message_id: str, requester: Optional[str], operation: str) -> Message:
        try:
            message = await self.store.get_message(message_id)
        except StoreError as e:
            self.logger.error("message.lookup_failed", {"id": message_id, "error": str(e)})
            raise StoreUnavailable(operation) from e

        if message is None:
            raise NotFound("message", message_id)

        if normalize_identity(requester, self.max_name_length) != message.sender:
            self.logger.warning("message.forbidden", {
                "id": message_id,
                "operation": operation,
                "requester": requester,
            })
            raise Forbidden(message_id, requester or "")

        return message

    async def edit(self, message_id: str, requester: Optional[str], to, text, message_type) -> Message:
        """
        Replace to/text/type of a message owned by requester.

        Raises:
            ValidationFailed, NotFound, Forbidden, StoreUnavailable
        """
        fields = self.validate_fields(to, text, message_type)
        await self._get_owned(message_id, requester, "edit_message")

        try:
            updated = await self.store.update_message(message_id, fields.to, fields.text, fields.type)
        except StoreError as e:
            self.logger.error("message.edit_failed", {"id": message_id, "error": str(e)})
            raise StoreUnavailable("edit_message") from e

        if updated is None:
            # Deleted between ownership check and update
            raise NotFound("message", message_id)

        self.logger.debug("message.edited", {"id": message_id})
        return updated

    async def delete(self, message_id: str, requester: Optional[str]) -> None:
        """
        Remove a message owned by requester.

        Raises:
            NotFound, Forbidden, StoreUnavailable
        """
        await self._get_owned(message_id, requester, "delete_message")

        try:
            removed = await self.store.delete_message(message_id)
        except StoreError as e:
            self.logger.error("message.delete_failed", {"id": message_id, "error": str(e)})
            raise StoreUnavailable("delete_message") from e

        if not removed:
            raise NotFound("message", message_id)

        self.logger.debug("message.deleted", {"id": message_id})

    # ========================================================================
    # LIST
    # ========================================================================

    async def list_messages(self, limit=None, viewer: Optional[str] = None) -> List[Message]:
        """
        Messages in insertion order; with limit, only the most recent ones.

        A viewer hides private messages that the viewer neither sent nor received.

        Raises:
            ValidationFailed: limit is not a positive integer or exceeds MAX_LIST_LIMIT
            StoreUnavailable: backend failure
        """
        parsed_limit = None
        if limit is not None:
            try:
                parsed_limit = InputSanitizer.validate_positive_int(limit, max_val=MAX_LIST_LIMIT)
            except ValueError as e:
                raise ValidationFailed("limit", str(e))

        clean_viewer = normalize_identity(viewer, self.max_name_length) if viewer is not None else None

        try:
            return await self.store.list_messages(limit=parsed_limit, viewer=clean_viewer)
        except StoreError as e:
            self.logger.error("message.list_failed", {"error": str(e)})
            raise StoreUnavailable("list_messages") from e
