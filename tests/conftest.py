"""Common pytest configuration."""

from __future__ import annotations

import pytest

from tests.helpers.fakes import RecordingLogSink


@pytest.fixture
def log_sink() -> RecordingLogSink:
    """Provide a log sink that keeps entries in memory.

    Returns:
        RecordingLogSink: Empty recording sink.
    """
    return RecordingLogSink()
