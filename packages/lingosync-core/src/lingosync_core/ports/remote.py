"""Protocol definitions and errors for the remote sheet store."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.responses import ErrorDetails, ErrorResponse
from lingosync_schemas.sync import RowUpdate


class RemoteSyncErrorCode(StrEnum):
    """Categorized error codes for remote sheet operations."""

    AUTHENTICATION_ERROR = "authentication_error"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    VERSION_CONFLICT = "version_conflict"
    CONCURRENCY_ERROR = "concurrency_error"
    HEADER_MISMATCH = "header_mismatch"
    UNKNOWN_ERROR = "unknown_error"


RETRYABLE_CODES = frozenset({
    RemoteSyncErrorCode.VERSION_CONFLICT,
    RemoteSyncErrorCode.CONCURRENCY_ERROR,
})

DEFAULT_SUGGESTIONS: dict[RemoteSyncErrorCode, list[str]] = {
    RemoteSyncErrorCode.AUTHENTICATION_ERROR: [
        "Check that the service account key file exists and is valid",
        "Share the spreadsheet with the service account email",
        "Confirm the Google Sheets API is enabled for the project",
    ],
    RemoteSyncErrorCode.API_ERROR: [
        "Check the spreadsheet id and sheet name in the config",
        "Retry later if the Sheets API is degraded",
    ],
    RemoteSyncErrorCode.NETWORK_ERROR: [
        "Check your network connection",
        "Retry once connectivity is restored",
    ],
    RemoteSyncErrorCode.RATE_LIMITED: [
        "Wait a minute before retrying",
        "Reduce how often sync runs against the same spreadsheet",
    ],
    RemoteSyncErrorCode.VERSION_CONFLICT: [
        "Another writer changed the sheet, run sync again to rebase",
    ],
    RemoteSyncErrorCode.CONCURRENCY_ERROR: [
        "Another sync holds row locks, retry after it finishes",
        "Clear stale tokens from the lock column if no sync is running",
    ],
    RemoteSyncErrorCode.HEADER_MISMATCH: [
        "Make the sheet header match [key, languages..., mark]",
        "Or point the config at an empty sheet",
    ],
    RemoteSyncErrorCode.UNKNOWN_ERROR: [
        "Re-run with a file log sink and inspect the remote events",
    ],
}


class RemoteSyncErrorDetails(BaseSchema):
    """Detailed remote error context."""

    operation: str | None = Field(None, description="Remote operation name")
    status_code: int | None = Field(None, description="HTTP status if any")
    attempts: int | None = Field(None, description="Apply attempts used")
    reason: str | None = Field(None, description="Additional error context")


class RemoteSyncErrorInfo(BaseSchema):
    """Structured remote error data."""

    code: RemoteSyncErrorCode = Field(..., description="Remote error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: RemoteSyncErrorDetails | None = Field(None, description="Error details")
    suggestions: list[str] = Field(
        default_factory=list, description="Remediation hints"
    )
    retryable: bool = Field(False, description="Whether a retry may succeed")

    def to_error_response(self) -> ErrorResponse:
        """Convert remote error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field=self.details.operation,
                provided=(
                    str(self.details.status_code)
                    if self.details.status_code is not None
                    else None
                ),
                valid_options=None,
            )
        return ErrorResponse(
            code=str(self.code),
            message=self.message,
            details=details,
            suggestions=self.suggestions,
        )


class RemoteSyncError(Exception):
    """Remote sheet error with structured details."""

    def __init__(self, info: RemoteSyncErrorInfo) -> None:
        """Initialize the remote sync error.

        Args:
            info: Structured remote error information.
        """
        super().__init__(info.message)
        self.info = info

    @property
    def code(self) -> RemoteSyncErrorCode:
        """Error code of the failure."""
        return RemoteSyncErrorCode(self.info.code)

    @property
    def retryable(self) -> bool:
        """Whether the apply loop may retry after this failure."""
        return self.info.retryable


def build_remote_error(
    code: RemoteSyncErrorCode,
    message: str,
    *,
    operation: str | None = None,
    status_code: int | None = None,
    attempts: int | None = None,
    reason: str | None = None,
) -> RemoteSyncError:
    """Build a remote error with default suggestions for its code.

    Returns:
        RemoteSyncError: Error ready to raise.
    """
    details = None
    if any(
        value is not None for value in (operation, status_code, attempts, reason)
    ):
        details = RemoteSyncErrorDetails(
            operation=operation,
            status_code=status_code,
            attempts=attempts,
            reason=reason,
        )
    return RemoteSyncError(
        RemoteSyncErrorInfo(
            code=code,
            message=message,
            details=details,
            suggestions=list(DEFAULT_SUGGESTIONS.get(code, [])),
            retryable=code in RETRYABLE_CODES,
        )
    )


@runtime_checkable
class SheetClientProtocol(Protocol):
    """Protocol for row-level access to the remote sheet.

    Row indices are 0-based grid rows where row 0 is the header.
    """

    async def read_rows(self) -> list[list[str]]:
        """Read the configured range, header row included."""
        raise NotImplementedError

    async def update_rows(self, updates: Sequence[RowUpdate]) -> None:
        """Write several row ranges in one batched request."""
        raise NotImplementedError

    async def append_rows(self, rows: Sequence[Sequence[str]]) -> None:
        """Append rows after the last data row."""
        raise NotImplementedError

    async def delete_rows(self, row_indices: Sequence[int]) -> None:
        """Delete whole rows, in the order given, in one batched request."""
        raise NotImplementedError
