import json
import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone
from typing import Dict, Any, Optional, TYPE_CHECKING
from pathlib import Path

if TYPE_CHECKING:
    from ..infrastructure.config.settings import LoggingSettings

# One StructuredLogger per name; handlers attach to the shared logging.Logger
_logger_cache: Dict[str, 'StructuredLogger'] = {}
_cache_lock = threading.RLock()


class ChatJsonEncoder(json.JSONEncoder):
    """JSON encoder for values that show up in log payloads (datetime, Enum, exceptions, types)."""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, 'name') and hasattr(obj, 'value'):  # Enum-like
            return obj.value
        if isinstance(obj, BaseException):
            return f"{type(obj).__name__}: {obj}"
        if isinstance(obj, type):
            return obj.__name__
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        return super().default(obj)


class JsonFormatter(logging.Formatter):
    """Formats log records into a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            message_dict = {str(k): v for k, v in record.msg.items()}
        else:
            message_dict = {"message": record.getMessage()}

        log_object = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            **message_dict,
        }
        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, cls=ChatJsonEncoder)


class StructuredLogger:
    """
    Event-style logger: ``logger.info("participant.joined", {"name": name})``.

    Console and rotating file handlers are attached once per underlying
    logging.Logger, so re-creating a StructuredLogger for the same name does
    not duplicate output.
    """

    def __init__(self, name: str, config: Any, filename: Optional[str] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, str(getattr(config.level, 'value', config.level)).upper(), logging.INFO))
        self.logger.propagate = False

        console_enabled = getattr(config, 'console_enabled', True)
        file_enabled = getattr(config, 'file_enabled', False)
        structured_logging = getattr(config, 'structured_logging', True)
        max_file_size_mb = getattr(config, 'max_file_size_mb', 100)
        backup_count = getattr(config, 'backup_count', 5)

        log_file = None
        if file_enabled:
            log_dir = getattr(config, 'log_dir', 'logs')
            log_file = str(Path(log_dir) / (filename or f"{name}.jsonl"))

        self._setup_console_handler(console_enabled, structured_logging)
        self._setup_file_handler(log_file, max_file_size_mb, backup_count, structured_logging)

    @staticmethod
    def _formatter(structured: bool) -> logging.Formatter:
        if structured:
            return JsonFormatter()
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    def _setup_console_handler(self, enabled: bool, structured: bool):
        if not enabled:
            return

        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, logging.StreamHandler) and \
                    getattr(existing_handler, 'stream', None) is sys.stdout:
                return

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(self._formatter(structured))
        self.logger.addHandler(handler)

    def _setup_file_handler(self, log_file: Optional[str], max_size_mb: int, backup_count: int, structured: bool):
        if not log_file:
            return

        log_file_normalized = os.path.abspath(log_file)
        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, RotatingFileHandler) and \
                    os.path.abspath(existing_handler.baseFilename) == log_file_normalized:
                return

        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        try:
            handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding='utf-8'
            )
        except OSError as e:
            # Logging is not up yet, so stderr is the only channel left
            print(f"ERROR: Failed to create file handler for {log_file}: {e}", file=sys.stderr)
            return

        handler.setFormatter(self._formatter(structured))
        self.logger.addHandler(handler)

    def _log(self, level: int, event_type: str, data: Optional[Dict[str, Any]], exc_info=False):
        payload = {"event_type": event_type, "data": data or {}}
        self.logger.log(level, payload, exc_info=exc_info)

    def info(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.INFO, event_type, data)

    def warning(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.WARNING, event_type, data)

    def error(self, event_type: str, data: Dict[str, Any] = None, exc_info=False):
        """
        Log an error event.

        Args:
            event_type: Type of error event
            data: Optional error context data
            exc_info: Include exception info (default: False)
        """
        self._log(logging.ERROR, event_type, data, exc_info=exc_info)

    def debug(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.DEBUG, event_type, data)


class _FallbackConfig:
    level = "INFO"
    console_enabled = True
    file_enabled = False
    structured_logging = True
    log_dir = "logs"
    max_file_size_mb = 100
    backup_count = 5


def get_logger(name: str, config: Optional['LoggingSettings'] = None) -> StructuredLogger:
    """
    Get a cached structured logger instance for the given name.

    When no config is passed, logging settings are read from the working
    directory configuration (config/config.json, environment, .env).

    Args:
        name: Logger name (typically __name__ of calling module)
        config: Explicit logging settings, bypassing the working-directory lookup

    Returns:
        Cached StructuredLogger instance (singleton per name)
    """
    if name in _logger_cache:
        return _logger_cache[name]

    with _cache_lock:
        if name in _logger_cache:
            return _logger_cache[name]

        if config is None:
            from pydantic import ValidationError
            from ..infrastructure.config.config_loader import get_settings_from_working_directory
            try:
                config = get_settings_from_working_directory().logging
            except ValidationError as e:
                # Must still hand back a StructuredLogger so .info(event, data) keeps working
                print(f"WARNING: Invalid logging configuration for '{name}': {e}", file=sys.stderr)
                print("WARNING: Using console-only StructuredLogger with defaults", file=sys.stderr)
                config = _FallbackConfig()

        logger = StructuredLogger(name, config)
        _logger_cache[name] = logger
        return logger
