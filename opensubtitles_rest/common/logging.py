"""Structured JSON logging for opensubtitles_rest."""

import json
import logging
import os
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from filelock import FileLock

DEFAULT_LOG_PATH = "data/logs/opensubtitles_rest.jsonl"
LOG_PATH_ENV = "OPENSUBTITLES_LOG_PATH"

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Write failures are reported here, once per path.
_fallback = logging.getLogger(__name__)
_unwritable_paths: set[Path] = set()


def generate_id() -> str:
    """Generate a UUID with timestamp-based fallback.

    Returns:
        UUID string, or an ISO8601 timestamp with microseconds when no
        entropy source is available

    Example:
        >>> id = generate_id()
        >>> isinstance(id, str)
        True
    """
    try:
        return str(uuid.uuid4())
    except OSError:
        return datetime.now(tz=UTC).isoformat()


def set_run_id(run_id: str | None) -> None:
    """Set the run ID for the current context.

    Args:
        run_id: Run ID string or None to clear
    """
    _run_id.set(run_id)


def get_run_id() -> str | None:
    """Get the current run ID from context."""
    return _run_id.get()


def set_request_id(request_id: str | None) -> None:
    """Set the request ID for the current context.

    Args:
        request_id: Request ID string or None to clear

    Example:
        >>> set_request_id("req-456")
        >>> get_request_id()
        'req-456'
    """
    _request_id.set(request_id)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id.get()


class JSONLogger:
    """Logger that writes JSON Lines to a file with consistent metadata.

    A logger without a log path discards every entry. Failing to write an
    entry never raises; it is reported once per path through the standard
    library logger instead.
    """

    def __init__(self, name: str, log_path: str | Path | None = None):
        self.name = name
        self.log_path = log_path

    @property
    def log_path(self) -> Path | None:
        """Get the log file path, or None when logging is disabled."""
        return self._log_path

    @log_path.setter
    def log_path(self, value: str | Path | None) -> None:
        """Set the log file path. None disables logging."""
        if value is None:
            self._log_path = None
            self._lock_path = None
            return
        self._log_path = Path(value)
        self._lock_path = self._log_path.with_suffix(self._log_path.suffix + ".lock")

    def _serialize_value(self, value: Any) -> Any:
        """Convert non-serializable values to string representation.

        Args:
            value: Value to serialize

        Returns:
            JSON-serializable value
        """
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {str(k): self._serialize_value(v) for k, v in value.items()}
        return str(value)

    def _log(self, level: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        """Write a log entry as a JSON line.

        Args:
            level: Log level (e.g., "info", "error", "warning", "debug")
            message: Log message
            metadata: Optional metadata dict to include in log entry
        """
        if self._log_path is None:
            return

        entry = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": level,
            "logger": self.name,
            "message": message,
        }

        run_id = get_run_id()
        if run_id:
            entry["run_id"] = run_id

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        if metadata:
            entry["metadata"] = self._serialize_value(metadata)

        json_line = json.dumps(entry, ensure_ascii=False)

        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(self._lock_path):
                with self._log_path.open("a", encoding="utf-8") as f:
                    f.write(json_line + "\n")
        except OSError as e:
            if self._log_path not in _unwritable_paths:
                _unwritable_paths.add(self._log_path)
                _fallback.warning("Cannot write log file %s: %s", self._log_path, e)

    def info(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("info", message, metadata)

    def error(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("error", message, metadata)

    def warning(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("warning", message, metadata)

    def debug(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        self._log("debug", message, metadata)


_loggers: dict[str, JSONLogger] = {}
_log_path_override: Path | None = None


def get_log_path() -> Path | None:
    """Return the log file new loggers write to.

    A path set with set_log_path wins. Otherwise the ``OPENSUBTITLES_LOG_PATH``
    environment variable is used, and without it logging is disabled.
    """
    if _log_path_override is not None:
        return _log_path_override
    env_path = os.environ.get(LOG_PATH_ENV)
    return Path(env_path) if env_path else None


def get_logger(name: str) -> JSONLogger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name (typically module name, e.g., "opensubtitles_rest.client")

    Returns:
        JSONLogger instance writing to get_log_path()
    """
    if name not in _loggers:
        _loggers[name] = JSONLogger(name, get_log_path())
    return _loggers[name]


def set_log_path(log_path: str | Path | None) -> None:
    """Point every existing and future logger at a new log file.

    The process environment is left untouched.

    Args:
        log_path: Destination JSONL file, or None to fall back to the
            environment default
    """
    global _log_path_override

    _log_path_override = Path(log_path) if log_path is not None else None
    current = get_log_path()
    for logger in _loggers.values():
        logger.log_path = current
