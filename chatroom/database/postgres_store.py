"""
PostgreSQL Chat Store
=====================
Async PostgreSQL implementation of IChatStore.

Features:
- Connection pooling (asyncpg)
- Schema bootstrap on connect (participants, messages)
- UNIQUE constraint on participants.name closes the join race
- Conditional delete for eviction (only while still stale)
- Insertion order kept by messages.seq
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional
import logging

import asyncpg

from ..core.exceptions import DuplicateParticipantError, StoreError
from ..domain.interfaces.storage import IChatStore
from ..domain.models.chat import Message, MessageType, Participant

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS participants (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    last_status BIGINT NOT NULL,
    CONSTRAINT participants_name_key UNIQUE (name)
);
CREATE INDEX IF NOT EXISTS participants_last_status_idx ON participants (last_status);

CREATE TABLE IF NOT EXISTS messages (
    seq       BIGSERIAL PRIMARY KEY,
    id        TEXT NOT NULL UNIQUE,
    sender    TEXT NOT NULL,
    recipient TEXT NOT NULL,
    text      TEXT NOT NULL,
    type      TEXT NOT NULL CHECK (type IN ('message', 'private_message', 'status')),
    time      TEXT NOT NULL
);
"""

# Errors that mean the backend could not serve the request
_BACKEND_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration"""
    dsn: str
    database: str
    min_pool_size: int = 1
    max_pool_size: int = 10
    command_timeout: float = 10.0


class PostgresChatStore(IChatStore):
    """
    Async PostgreSQL chat store.

    Each statement is atomic on its own; no multi-statement transactions are
    needed because uniqueness and stale-only deletion are expressed in SQL.
    """

    def __init__(self, config: PostgresConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Initialize connection pool and ensure the schema exists"""
        if self.pool is not None:
            logger.warning("Connection pool already exists")
            return

        try:
            self.pool = await asyncpg.create_pool(
                self.config.dsn,
                database=self.config.database,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
            )
            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
        except _BACKEND_ERRORS as e:
            logger.error(f"Failed to connect to PostgreSQL database '{self.config.database}': {e}")
            if self.pool is not None:
                await self.pool.close()
                self.pool = None
            raise StoreError(f"Failed to connect to store: {e}") from e

        logger.info(f"Connected to PostgreSQL database '{self.config.database}'")

    async def disconnect(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from PostgreSQL")

    @asynccontextmanager
    async def _connection(self, operation: str):
        """Acquire a pooled connection, translating backend failures into StoreError."""
        if self.pool is None:
            raise StoreError("Store is not connected")
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except StoreError:
            raise
        except _BACKEND_ERRORS as e:
            logger.error(f"Store operation '{operation}' failed: {type(e).__name__}: {e}")
            raise StoreError(f"{operation} failed") from e

    # ========================================================================
    # PARTICIPANT OPERATIONS
    # ========================================================================

    async def insert_participant(self, participant: Participant) -> Participant:
        query = "INSERT INTO participants (id, name, last_status) VALUES ($1, $2, $3)"
        async with self._connection("insert_participant") as conn:
            try:
                await conn.execute(query, uuid.uuid4().hex, participant.name, participant.last_status)
            except asyncpg.UniqueViolationError as e:
                raise DuplicateParticipantError(participant.name) from e
        return participant

    async def find_participant(self, name: str) -> Optional[Participant]:
        query = "SELECT name, last_status FROM participants WHERE name = $1"
        async with self._connection("find_participant") as conn:
            row = await conn.fetchrow(query, name)
        return Participant(name=row['name'], last_status=row['last_status']) if row else None

    async def list_participants(self) -> List[Participant]:
        query = "SELECT name, last_status FROM participants"
        async with self._connection("list_participants") as conn:
            rows = await conn.fetch(query)
        return [Participant(name=r['name'], last_status=r['last_status']) for r in rows]

    async def touch_participant(self, name: str, last_status: int) -> bool:
        query = """
            UPDATE participants
            SET last_status = GREATEST(last_status, $2)
            WHERE name = $1
            RETURNING name
        """
        async with self._connection("touch_participant") as conn:
            row = await conn.fetchrow(query, name, last_status)
        return row is not None

    async def delete_participant_if_stale(self, name: str, cutoff_ms: int) -> bool:
        query = "DELETE FROM participants WHERE name = $1 AND last_status < $2 RETURNING name"
        async with self._connection("delete_participant_if_stale") as conn:
            row = await conn.fetchrow(query, name, cutoff_ms)
        return row is not None

    # ========================================================================
    # MESSAGE OPERATIONS
    # ========================================================================

    @staticmethod
    def _row_to_message(row) -> Message:
        return Message(
            id=row['id'],
            sender=row['sender'],
            to=row['recipient'],
            text=row['text'],
            type=MessageType(row['type']),
            time=row['time'],
        )

    async def insert_message(self, message: Message) -> Message:
        query = """
            INSERT INTO messages (id, sender, recipient, text, type, time)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING id, sender, recipient, text, type, time
        """
        async with self._connection("insert_message") as conn:
            row = await conn.fetchrow(
                query, uuid.uuid4().hex, message.sender, message.to,
                message.text, message.type.value, message.time
            )
        return self._row_to_message(row)

    async def get_message(self, message_id: str) -> Optional[Message]:
        query = "SELECT id, sender, recipient, text, type, time FROM messages WHERE id = $1"
        async with self._connection("get_message") as conn:
            row = await conn.fetchrow(query, message_id)
        return self._row_to_message(row) if row else None

    async def update_message(self, message_id: str, to: str, text: str,
                             message_type: MessageType) -> Optional[Message]:
        query = """
            UPDATE messages
            SET recipient = $2, text = $3, type = $4
            WHERE id = $1
            RETURNING id, sender, recipient, text, type, time
        """
        async with self._connection("update_message") as conn:
            row = await conn.fetchrow(query, message_id, to, text, message_type.value)
        return self._row_to_message(row) if row else None

    async def delete_message(self, message_id: str) -> bool:
        query = "DELETE FROM messages WHERE id = $1 RETURNING id"
        async with self._connection("delete_message") as conn:
            row = await conn.fetchrow(query, message_id)
        return row is not None

    async def list_messages(self, limit: Optional[int] = None,
                            viewer: Optional[str] = None) -> List[Message]:
        # LIMIT NULL means no limit; the inner query takes the tail, the outer restores order
        query = """
            SELECT id, sender, recipient, text, type, time FROM (
                SELECT seq, id, sender, recipient, text, type, time
                FROM messages
                WHERE $2::text IS NULL
                   OR type <> 'private_message'
                   OR sender = $2
                   OR recipient = $2
                ORDER BY seq DESC
                LIMIT $1
            ) AS recent
            ORDER BY seq ASC
        """
        async with self._connection("list_messages") as conn:
            rows = await conn.fetch(query, limit, viewer)
        return [self._row_to_message(r) for r in rows]

    def get_storage_type(self) -> str:
        return "postgresql"
