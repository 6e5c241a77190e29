"""
Participant Lifecycle Manager
=============================

Join / refresh / evict state machine for chat participants.

Responsibilities:
- Join: validate the name, insert relying on the store's uniqueness
  constraint, append the join notice
- Refresh: heartbeat that resets the inactivity clock
- Sweep: evict participants silent for longer than the inactivity threshold,
  one independent eviction per participant (bounded fan-out)

Architecture:
- Store is injected; no ambient database handle
- Clock is injected (epoch ms) so timing can be driven in tests
- Store failures are mapped to StoreUnavailable at each operation boundary
"""

import asyncio
from typing import List, Optional

from ...core.exceptions import (
    Conflict,
    DuplicateParticipantError,
    NotFound,
    StoreError,
    StoreUnavailable,
    ValidationFailed,
)
from ...core.input_sanitizer import InputSanitizer
from ...core.logger import StructuredLogger, get_logger
from ...core.time_manager import Clock, clock_time, is_stale, now_ms
from ..interfaces.storage import IChatStore
from ..models.chat import (
    BROADCAST_RECIPIENT,
    JOIN_NOTICE,
    LEAVE_NOTICE,
    Message,
    MessageType,
    Participant,
    SweepReport,
)

DEFAULT_INACTIVITY_THRESHOLD_MS = 10_000
DEFAULT_SWEEP_CONCURRENCY = 16
DEFAULT_MAX_NAME_LENGTH = 64


def normalize_identity(value: Optional[str], max_length: int = DEFAULT_MAX_NAME_LENGTH) -> Optional[str]:
    """
    Apply the same cleaning used at join time to an identity claim
    (the ``user`` header). Returns None when nothing usable remains.
    """
    try:
        return InputSanitizer.sanitize_string(value, max_length=max_length)
    except ValueError:
        return None


class ParticipantLifecycleManager:
    """
    Participant state machine: ABSENT -> ACTIVE (join) -> ACTIVE (refresh)* -> ABSENT (sweep).
    There is no explicit leave; departure is inferred from heartbeat silence.
    """

    def __init__(
        self,
        store: IChatStore,
        inactivity_threshold_ms: int = DEFAULT_INACTIVITY_THRESHOLD_MS,
        sweep_concurrency: int = DEFAULT_SWEEP_CONCURRENCY,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
        clock: Clock = now_ms,
        logger: Optional[StructuredLogger] = None,
    ):
        if sweep_concurrency < 1:
            raise ValueError("sweep_concurrency must be >= 1")
        self.store = store
        self.inactivity_threshold_ms = inactivity_threshold_ms
        self.sweep_concurrency = sweep_concurrency
        self.max_name_length = max_name_length
        self.clock = clock
        self.logger = logger or get_logger(__name__)

    def _status_message(self, name: str, text: str, timestamp_ms: int) -> Message:
        return Message(
            sender=name,
            to=BROADCAST_RECIPIENT,
            text=text,
            type=MessageType.STATUS,
            time=clock_time(timestamp_ms),
        )

    # ========================================================================
    # JOIN
    # ========================================================================

    async def join(self, name: Optional[str]) -> Participant:
        """
        Admit a new participant and broadcast the join notice.

        Raises:
            ValidationFailed: name missing or empty after sanitization
            Conflict: name already present (store uniqueness rejection)
            StoreUnavailable: backend failure
        """
        try:
            clean_name = InputSanitizer.sanitize_string(name, max_length=self.max_name_length)
        except ValueError as e:
            raise ValidationFailed("name", str(e))

        now = self.clock()
        try:
            participant = await self.store.insert_participant(Participant(name=clean_name, last_status=now))
        except DuplicateParticipantError:
            self.logger.info("participant.join_conflict", {"name": clean_name})
            raise Conflict(clean_name)
        except StoreError as e:
            self.logger.error("participant.join_failed", {"name": clean_name, "error": str(e)})
            raise StoreUnavailable("join") from e

        try:
            await self.store.insert_message(self._status_message(clean_name, JOIN_NOTICE, now))
        except StoreError as e:
            self.logger.error("participant.join_notice_failed", {"name": clean_name, "error": str(e)})
            raise StoreUnavailable("join") from e

        self.logger.info("participant.joined", {"name": clean_name, "last_status": now})
        return participant

    # ========================================================================
    # REFRESH / LOOKUP
    # ========================================================================

    async def refresh(self, name: Optional[str]) -> Participant:
        """
        Heartbeat: reset the participant's inactivity clock.

        Raises:
            NotFound: no such participant, or the name is missing or empty
                after sanitization (the client must join again)
            StoreUnavailable: backend failure
        """
        clean_name = normalize_identity(name, self.max_name_length)
        if clean_name is None:
            raise NotFound("participant", name or "")

        now = self.clock()
        try:
            updated = await self.store.touch_participant(clean_name, now)
        except StoreError as e:
            self.logger.error("participant.refresh_failed", {"name": clean_name, "error": str(e)})
            raise StoreUnavailable("refresh") from e

        if not updated:
            self.logger.debug("participant.refresh_unknown", {"name": clean_name})
            raise NotFound("participant", clean_name)

        self.logger.debug("participant.refreshed", {"name": clean_name, "last_status": now})
        return Participant(name=clean_name, last_status=now)

    async def get_active(self, name: Optional[str]) -> Optional[Participant]:
        """Return the participant if currently ACTIVE, else None."""
        clean_name = normalize_identity(name, self.max_name_length)
        if clean_name is None:
            return None
        try:
            return await self.store.find_participant(clean_name)
        except StoreError as e:
            self.logger.error("participant.lookup_failed", {"name": clean_name, "error": str(e)})
            raise StoreUnavailable("lookup") from e

    async def list_participants(self) -> List[Participant]:
        try:
            return await self.store.list_participants()
        except StoreError as e:
            self.logger.error("participant.list_failed", {"error": str(e)})
            raise StoreUnavailable("list_participants") from e

    # ========================================================================
    # SWEEP
    # ========================================================================

    async def _evict(self, name: str, cutoff_ms: int, now: int, report: SweepReport) -> bool:
        """
        Evict one participant if it is still stale; returns True when removed.

        Once the row is deleted the participant counts as evicted even if the
        leave notice cannot be stored; that failure goes to report.notice_failed.
        """
        removed = await self.store.delete_participant_if_stale(name, cutoff_ms)
        if not removed:
            # Refreshed (or already gone) between the scan and the delete
            return False

        try:
            await self.store.insert_message(self._status_message(name, LEAVE_NOTICE, now))
        except StoreError as e:
            report.notice_failed[name] = f"{type(e).__name__}: {e}"
            self.logger.error("participant.leave_notice_failed", {"name": name, "error": str(e)})
        else:
            self.logger.info("participant.evicted", {"name": name})
        return True

    async def sweep(self) -> SweepReport:
        """
        Evict every participant whose silence exceeds the inactivity threshold.

        Evictions run concurrently (at most sweep_concurrency at a time); a
        failure on one participant is recorded in the report and does not stop
        the others.

        Raises:
            StoreUnavailable: the participant scan itself failed
        """
        now = self.clock()
        cutoff_ms = now - self.inactivity_threshold_ms

        try:
            participants = await self.store.list_participants()
        except StoreError as e:
            self.logger.error("sweep.scan_failed", {"error": str(e)})
            raise StoreUnavailable("sweep") from e

        report = SweepReport(checked=len(participants))
        stale = [p for p in participants if is_stale(p.last_status, now, self.inactivity_threshold_ms)]
        if not stale:
            return report

        semaphore = asyncio.Semaphore(self.sweep_concurrency)

        async def bounded_evict(participant: Participant) -> bool:
            async with semaphore:
                return await self._evict(participant.name, cutoff_ms, now, report)

        results = await asyncio.gather(*(bounded_evict(p) for p in stale), return_exceptions=True)

        for participant, result in zip(stale, results):
            if isinstance(result, BaseException):
                report.failed[participant.name] = f"{type(result).__name__}: {result}"
                self.logger.error("sweep.eviction_failed", {
                    "name": participant.name,
                    "error": str(result),
                    "error_type": type(result).__name__,
                })
            elif result:
                report.evicted.append(participant.name)

        self.logger.info("sweep.completed", report.to_dict())
        return report
