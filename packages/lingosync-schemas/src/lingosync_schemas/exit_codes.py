"""CLI exit code taxonomy and error-to-exit-code registry.

Exit code ranges:
- 0: Success
- 10-19: Client/input errors (config, validation)
- 20-29: Catalog errors (storage, deletion workflow)
- 30-39: Remote store errors (auth, API, network, concurrency)
- 99: Unexpected runtime errors
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """CLI exit codes by failure category."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 11
    STORAGE_ERROR = 20
    PERMISSION_ERROR = 21
    DELETION_ERROR = 22
    REMOTE_ERROR = 30
    AUTHENTICATION_ERROR = 31
    CONCURRENCY_ERROR = 32
    NETWORK_ERROR = 33
    RUNTIME_ERROR = 99


# Domain error codes are qualified with a domain prefix to avoid collisions.
# CLI-level codes are stored without a prefix.
ERROR_CODE_TO_EXIT_CODE: dict[str, ExitCode] = {
    # --- CLI-level codes (no prefix) ---
    "config_error": ExitCode.CONFIG_ERROR,
    "validation_error": ExitCode.VALIDATION_ERROR,
    "runtime_error": ExitCode.RUNTIME_ERROR,
    # --- Storage domain ---
    "storage.not_found": ExitCode.STORAGE_ERROR,
    "storage.io_error": ExitCode.STORAGE_ERROR,
    "storage.serialization_error": ExitCode.STORAGE_ERROR,
    "storage.validation_error": ExitCode.STORAGE_ERROR,
    "storage.permission_denied": ExitCode.PERMISSION_ERROR,
    "storage.initialization_failed": ExitCode.PERMISSION_ERROR,
    # --- Deletion domain ---
    "deletion.merge_failed": ExitCode.DELETION_ERROR,
    # --- Remote domain ---
    "remote.authentication_error": ExitCode.AUTHENTICATION_ERROR,
    "remote.api_error": ExitCode.REMOTE_ERROR,
    "remote.rate_limited": ExitCode.REMOTE_ERROR,
    "remote.header_mismatch": ExitCode.REMOTE_ERROR,
    "remote.network_error": ExitCode.NETWORK_ERROR,
    "remote.version_conflict": ExitCode.CONCURRENCY_ERROR,
    "remote.concurrency_error": ExitCode.CONCURRENCY_ERROR,
    "remote.unknown_error": ExitCode.REMOTE_ERROR,
}

DOMAIN_PREFIXES: dict[str, str] = {
    "StorageErrorCode": "storage",
    "DeletionErrorCode": "deletion",
    "RemoteSyncErrorCode": "remote",
}


def resolve_exit_code(
    error_code: str, *, domain: str | None = None
) -> ExitCode:
    """Resolve an error code string to its ExitCode.

    Args:
        error_code: The error code string (e.g. "config_error",
            "version_conflict").
        domain: Optional domain prefix (e.g. "storage", "remote").
            When provided, the lookup uses ``"{domain}.{error_code}"``
            first, falling back to an unqualified lookup.

    Returns:
        The matching ExitCode, or RUNTIME_ERROR if no mapping is found.
    """
    if domain:
        qualified = f"{domain}.{error_code}"
        if qualified in ERROR_CODE_TO_EXIT_CODE:
            return ERROR_CODE_TO_EXIT_CODE[qualified]

    if error_code in ERROR_CODE_TO_EXIT_CODE:
        return ERROR_CODE_TO_EXIT_CODE[error_code]

    return ExitCode.RUNTIME_ERROR
