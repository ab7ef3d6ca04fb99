"""lingosync-core: catalog lifecycle and sync engine."""

from lingosync_core.deletion import (
    DeletionError,
    DeletionErrorCode,
    DeletionErrorInfo,
    DeletionWorkflow,
    build_preview,
    prune_catalog,
)
from lingosync_core.keys import format_compound_key, parse_compound_key
from lingosync_core.merge import MergeEngine
from lingosync_core.paths import PathClassifier
from lingosync_core.pipeline import SyncPipeline
from lingosync_core.remote_sync import RemoteSyncEngine, classify_error
from lingosync_core.telemetry import SyncLogger, now_millis, now_timestamp
from lingosync_core.unused import UnusedKeyAnalyzer
from lingosync_core.version import VERSION

__version__ = "0.1.0"

__all__ = [
    "VERSION",
    "DeletionError",
    "DeletionErrorCode",
    "DeletionErrorInfo",
    "DeletionWorkflow",
    "MergeEngine",
    "PathClassifier",
    "RemoteSyncEngine",
    "SyncLogger",
    "SyncPipeline",
    "UnusedKeyAnalyzer",
    "build_preview",
    "classify_error",
    "format_compound_key",
    "now_millis",
    "now_timestamp",
    "parse_compound_key",
    "prune_catalog",
]
