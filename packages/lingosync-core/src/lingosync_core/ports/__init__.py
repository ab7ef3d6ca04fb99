"""Port interfaces for lingosync core."""

from lingosync_core.ports.collaborators import (
    ExtractorProtocol,
    InteractionProtocol,
    PassthroughTranslator,
    TranslatorProtocol,
)
from lingosync_core.ports.export import ModuleEmitterProtocol
from lingosync_core.ports.logging import LogSinkProtocol
from lingosync_core.ports.remote import (
    RemoteSyncError,
    RemoteSyncErrorCode,
    RemoteSyncErrorDetails,
    RemoteSyncErrorInfo,
    SheetClientProtocol,
    build_remote_error,
)
from lingosync_core.ports.storage import (
    CatalogStoreProtocol,
    LogStoreProtocol,
    PreviewStoreProtocol,
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)

__all__ = [
    "CatalogStoreProtocol",
    "ExtractorProtocol",
    "InteractionProtocol",
    "LogSinkProtocol",
    "LogStoreProtocol",
    "ModuleEmitterProtocol",
    "PassthroughTranslator",
    "PreviewStoreProtocol",
    "RemoteSyncError",
    "RemoteSyncErrorCode",
    "RemoteSyncErrorDetails",
    "RemoteSyncErrorInfo",
    "SheetClientProtocol",
    "StorageError",
    "StorageErrorCode",
    "StorageErrorDetails",
    "StorageErrorInfo",
    "TranslatorProtocol",
    "build_remote_error",
]
