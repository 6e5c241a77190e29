"""
Storage Interfaces - Ports for data persistence
===============================================
Abstract interface for the participant/message store.

Implementations must:
- enforce name uniqueness atomically (raise DuplicateParticipantError)
- keep messages in insertion order
- raise StoreError for any backend failure
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.chat import Message, MessageType, Participant


class IChatStore(ABC):
    """
    Interface for the chat store.
    Abstracts away specific storage implementations (PostgreSQL, in-memory).
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection to storage"""
        raise NotImplementedError

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to storage"""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_participant(self, participant: Participant) -> Participant:
        """Insert a participant; raises DuplicateParticipantError if the name exists."""
        raise NotImplementedError

    @abstractmethod
    async def find_participant(self, name: str) -> Optional[Participant]:
        """Exact-match lookup by name"""
        raise NotImplementedError

    @abstractmethod
    async def list_participants(self) -> List[Participant]:
        raise NotImplementedError

    @abstractmethod
    async def touch_participant(self, name: str, last_status: int) -> bool:
        """Set last_status; False if no such participant."""
        raise NotImplementedError

    @abstractmethod
    async def delete_participant_if_stale(self, name: str, cutoff_ms: int) -> bool:
        """
        Delete the participant only if its last_status is still older than cutoff_ms.
        Returns True when a row was removed.
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_message(self, message: Message) -> Message:
        """Insert and return the message with its store-assigned id."""
        raise NotImplementedError

    @abstractmethod
    async def get_message(self, message_id: str) -> Optional[Message]:
        raise NotImplementedError

    @abstractmethod
    async def update_message(self, message_id: str, to: str, text: str,
                             message_type: MessageType) -> Optional[Message]:
        """Replace the mutable fields; None if the message does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def delete_message(self, message_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_messages(self, limit: Optional[int] = None,
                            viewer: Optional[str] = None) -> List[Message]:
        """
        Messages in insertion order. With limit, only the most recent `limit`
        entries; with viewer, private messages not involving the viewer are skipped.
        """
        raise NotImplementedError

    @abstractmethod
    def get_storage_type(self) -> str:
        """Get storage type name"""
        raise NotImplementedError
