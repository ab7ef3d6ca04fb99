"""Storage adapters for lingosync."""

from lingosync_io.storage.filesystem import (
    FileSystemCatalogStore,
    FileSystemLogStore,
    FileSystemPreviewStore,
)
from lingosync_io.storage.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    NoopLogSink,
    RedactingLogSink,
    StorageLogSink,
    build_log_sink,
)

__all__ = [
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileSystemCatalogStore",
    "FileSystemLogStore",
    "FileSystemPreviewStore",
    "NoopLogSink",
    "RedactingLogSink",
    "StorageLogSink",
    "build_log_sink",
]
