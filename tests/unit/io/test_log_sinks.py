"""Unit tests for log sink adapters."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path

from lingosync_io.storage.filesystem import FileSystemLogStore
from lingosync_io.storage.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    NoopLogSink,
    RedactingLogSink,
    StorageLogSink,
    build_log_sink,
)
from lingosync_schemas.config import LoggingConfig
from lingosync_schemas.logs import LogEntry
from lingosync_schemas.primitives import LogLevel
from lingosync_schemas.redaction import REDACTED, Redactor
from tests.helpers.fakes import FIXED_TIMESTAMP, RUN_ID, RecordingLogSink


def _entry(message: str = "hello", data: dict[str, object] | None = None) -> LogEntry:
    return LogEntry(
        timestamp=FIXED_TIMESTAMP,
        level=LogLevel.INFO,
        event="run_started",
        run_id=RUN_ID,
        message=message,
        data=data,  # type: ignore[arg-type]
    )


def test_console_sink_writes_jsonl() -> None:
    """Console entries are one JSON object per line."""
    stream = io.StringIO()

    asyncio.run(ConsoleLogSink(stream=stream).emit_log(_entry()))

    line = stream.getvalue()
    assert line.endswith("\n")
    assert json.loads(line)["event"] == "run_started"


def test_build_log_sink_single_and_composite(tmp_path: Path) -> None:
    """One configured sink is returned directly, several are composed."""
    store = FileSystemLogStore(str(tmp_path))
    single = build_log_sink(
        LoggingConfig.model_validate({"sinks": [{"type": "file"}]}, strict=False),
        store,
    )
    both = build_log_sink(
        LoggingConfig.model_validate(
            {"sinks": [{"type": "console"}, {"type": "noop"}]}, strict=False
        ),
        store,
    )

    assert isinstance(single, StorageLogSink)
    assert isinstance(both, CompositeLogSink)


def test_build_log_sink_with_redactor_wraps_each_sink(tmp_path: Path) -> None:
    """Every sink is wrapped so no path bypasses redaction."""
    stream = io.StringIO()
    sink = build_log_sink(
        LoggingConfig.model_validate(
            {"sinks": [{"type": "console"}, {"type": "file"}]}, strict=False
        ),
        FileSystemLogStore(str(tmp_path)),
        stream=stream,
        redactor=Redactor(literal_values=["hunter2"]),
    )

    asyncio.run(sink.emit_log(_entry("password hunter2")))

    assert "hunter2" not in stream.getvalue()
    log_file = tmp_path / f"{RUN_ID}.jsonl"
    assert "hunter2" not in log_file.read_text(encoding="utf-8")
    assert REDACTED in log_file.read_text(encoding="utf-8")


def test_redacting_sink_scrubs_message_and_nested_data() -> None:
    """Literal secrets and secret-shaped strings are replaced."""
    recorder = RecordingLogSink()
    sink = RedactingLogSink(recorder, Redactor(literal_values=["s3cret-value"]))
    token = "sk-" + "a" * 24

    asyncio.run(
        sink.emit_log(
            _entry(
                f"using {token}",
                {"nested": {"key": "s3cret-value"}, "list": ["ok", token], "n": 3},
            )
        )
    )

    forwarded = recorder.entries[0]
    assert forwarded.message == f"using {REDACTED}"
    assert forwarded.data == {
        "nested": {"key": REDACTED},
        "list": ["ok", REDACTED],
        "n": 3,
    }


def test_composite_forwards_in_order() -> None:
    """Composite sinks deliver to every child."""
    first, second = RecordingLogSink(), RecordingLogSink()

    asyncio.run(CompositeLogSink([first, NoopLogSink(), second]).emit_log(_entry()))

    assert len(first.entries) == len(second.entries) == 1
