"""
Error Mapper
============
Centralizes mapping of service exceptions to a stable taxonomy with
human-readable messages and HTTP statuses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Dict, Any

from ..core.exceptions import ChatError


@dataclass(frozen=True)
class ErrorInfo:
    error_code: str
    error_message: str
    http_status: int = 400

    def to_body(self) -> Dict[str, Any]:
        return {
            "type": "error",
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


DEFAULT_ERRORS: Dict[str, ErrorInfo] = {
    # Validation
    "validation_error": ErrorInfo("validation_error", "Validation failed", 422),
    "unknown_sender": ErrorInfo("unknown_sender", "Sender is not an active participant", 422),

    # Participants / messages
    "participant_conflict": ErrorInfo("participant_conflict", "Participant name already in use", 409),
    "not_found": ErrorInfo("not_found", "Not found", 404),
    "forbidden": ErrorInfo("forbidden", "Only the author may change this message", 401),

    # Backend
    "store_unavailable": ErrorInfo("store_unavailable", "Service unavailable", 500),
    "internal_error": ErrorInfo("internal_error", "Internal server error", 500),
}

# Codes whose exception text must never reach the client
_OPAQUE_CODES = frozenset({"store_unavailable", "internal_error"})


class ErrorMapper:
    """Maps error codes / exceptions to ErrorInfo"""

    def __init__(self, overrides: Optional[Dict[str, ErrorInfo]] = None):
        self._map = dict(DEFAULT_ERRORS)
        if overrides:
            self._map.update(overrides)

    def map(self, error_code: str, message: Optional[str] = None, exc: Optional[BaseException] = None) -> ErrorInfo:
        base = self._map.get(error_code)
        if not base:
            # Unknown code => generic
            base = self._map["internal_error"]
        if base.error_code in _OPAQUE_CODES:
            return base
        if message:
            return ErrorInfo(error_code=base.error_code, error_message=message, http_status=base.http_status)
        if exc and str(exc).strip():
            return ErrorInfo(error_code=base.error_code, error_message=str(exc), http_status=base.http_status)
        return base

    def map_exception(self, exc: BaseException) -> ErrorInfo:
        """Map any exception; non-ChatError exceptions become an opaque 500."""
        if isinstance(exc, ChatError):
            return self.map(exc.error_code, exc=exc)
        return self._map["internal_error"]
