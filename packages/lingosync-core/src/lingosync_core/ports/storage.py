"""Protocol definitions and errors for catalog and preview persistence."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.logs import LogEntry
from lingosync_schemas.primitives import RunId
from lingosync_schemas.responses import ErrorDetails, ErrorResponse


class StorageErrorCode(StrEnum):
    """Categorized error codes for storage operations."""

    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    SERIALIZATION_ERROR = "serialization_error"
    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    INITIALIZATION_FAILED = "initialization_failed"


class StorageErrorDetails(BaseSchema):
    """Detailed storage error context."""

    operation: str | None = Field(None, description="Storage operation name")
    path: str | None = Field(None, description="Filesystem path")
    reason: str | None = Field(None, description="Additional error context")


class StorageErrorInfo(BaseSchema):
    """Structured storage error data."""

    code: StorageErrorCode = Field(..., description="Storage error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: StorageErrorDetails | None = Field(None, description="Error details")
    suggestions: list[str] = Field(
        default_factory=list, description="Remediation hints"
    )

    def to_error_response(self) -> ErrorResponse:
        """Convert storage error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field=self.details.operation,
                provided=self.details.path,
                valid_options=None,
            )
        return ErrorResponse(
            code=str(self.code),
            message=self.message,
            details=details,
            suggestions=self.suggestions,
        )


class StorageError(Exception):
    """Storage error with structured details."""

    def __init__(self, info: StorageErrorInfo) -> None:
        """Initialize the storage error.

        Args:
            info: Structured storage error information.
        """
        super().__init__(info.message)
        self.info = info

    @property
    def is_fatal(self) -> bool:
        """Whether the failure should stop the run instead of degrading."""
        return self.info.code in {
            StorageErrorCode.PERMISSION_DENIED,
            StorageErrorCode.INITIALIZATION_FAILED,
        }


@runtime_checkable
class CatalogStoreProtocol(Protocol):
    """Protocol for loading and persisting the catalog document."""

    async def load_catalog(self) -> Catalog:
        """Load the catalog, returning an empty catalog when absent."""
        raise NotImplementedError

    async def save_catalog(self, catalog: Catalog) -> None:
        """Persist the catalog atomically with canonical field ordering."""
        raise NotImplementedError


@runtime_checkable
class PreviewStoreProtocol(Protocol):
    """Protocol for deletion preview side files."""

    async def write_preview(self, preview: Catalog) -> str:
        """Persist a deletion preview and return its path."""
        raise NotImplementedError

    async def read_preview(self, path: str) -> Catalog:
        """Load a previously written deletion preview."""
        raise NotImplementedError

    async def remove_preview(self, path: str) -> None:
        """Delete a deletion preview if it still exists."""
        raise NotImplementedError


@runtime_checkable
class LogStoreProtocol(Protocol):
    """Protocol for persisting JSONL log entries."""

    async def append_log(self, entry: LogEntry) -> None:
        """Append a single log entry."""
        raise NotImplementedError

    def log_path(self, run_id: RunId) -> str:
        """Return the log file path for a run."""
        raise NotImplementedError
