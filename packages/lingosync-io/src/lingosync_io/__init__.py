"""lingosync-io: storage, remote sheet, scan and export adapters."""

from lingosync_io.export import ModuleFileEmitter
from lingosync_io.remote import (
    GoogleSheetsClient,
    ServiceAccountTokenProvider,
    TokenProvider,
)
from lingosync_io.scan import MarkerExtractor, discover_source_files
from lingosync_io.storage import (
    CompositeLogSink,
    ConsoleLogSink,
    FileSystemCatalogStore,
    FileSystemLogStore,
    FileSystemPreviewStore,
    NoopLogSink,
    RedactingLogSink,
    StorageLogSink,
    build_log_sink,
)

__version__ = "0.1.0"

__all__ = [
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileSystemCatalogStore",
    "FileSystemLogStore",
    "FileSystemPreviewStore",
    "GoogleSheetsClient",
    "MarkerExtractor",
    "ModuleFileEmitter",
    "NoopLogSink",
    "RedactingLogSink",
    "ServiceAccountTokenProvider",
    "StorageLogSink",
    "TokenProvider",
    "build_log_sink",
    "discover_source_files",
]
