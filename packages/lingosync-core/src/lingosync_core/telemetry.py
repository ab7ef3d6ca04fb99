"""Injected structured logging for engine components."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from lingosync_core.ports.logging import LogSinkProtocol
from lingosync_schemas.logs import LogEntry
from lingosync_schemas.primitives import JsonValue, LogLevel, RunId, Timestamp


def now_timestamp() -> Timestamp:
    """Return the current UTC time as an ISO-8601 string.

    Returns:
        Timestamp: Current timestamp with a ``Z`` suffix.
    """
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def now_millis() -> int:
    """Return the current time in epoch milliseconds.

    Returns:
        int: Milliseconds since the epoch.
    """
    return time.time_ns() // 1_000_000


class SyncLogger:
    """Build log entries for one run and forward them to a sink."""

    def __init__(
        self,
        *,
        run_id: RunId,
        log_sink: LogSinkProtocol | None,
        clock: Callable[[], Timestamp] = now_timestamp,
    ) -> None:
        """Initialize the logger.

        Args:
            run_id: Run identifier stamped on every entry.
            log_sink: Destination sink, or None to drop entries.
            clock: Timestamp provider.
        """
        self.run_id = run_id
        self._log_sink = log_sink
        self._clock = clock

    async def emit(
        self,
        level: LogLevel,
        event: str,
        message: str,
        data: Mapping[str, JsonValue] | None = None,
    ) -> None:
        """Emit one structured log entry."""
        if self._log_sink is None:
            return
        entry = LogEntry(
            timestamp=self._clock(),
            level=level,
            event=str(event),
            run_id=self.run_id,
            message=message,
            data=dict(data) if data is not None else None,
        )
        await self._log_sink.emit_log(entry)

    async def debug(
        self, event: str, message: str, data: Mapping[str, JsonValue] | None = None
    ) -> None:
        """Emit a debug entry."""
        await self.emit(LogLevel.DEBUG, event, message, data)

    async def info(
        self, event: str, message: str, data: Mapping[str, JsonValue] | None = None
    ) -> None:
        """Emit an info entry."""
        await self.emit(LogLevel.INFO, event, message, data)

    async def warn(
        self, event: str, message: str, data: Mapping[str, JsonValue] | None = None
    ) -> None:
        """Emit a warning entry."""
        await self.emit(LogLevel.WARN, event, message, data)

    async def error(
        self, event: str, message: str, data: Mapping[str, JsonValue] | None = None
    ) -> None:
        """Emit an error entry."""
        await self.emit(LogLevel.ERROR, event, message, data)
