"""Filesystem-backed storage adapters."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence
from pathlib import Path

import orjson

from lingosync_core.ports.storage import (
    CatalogStoreProtocol,
    LogStoreProtocol,
    PreviewStoreProtocol,
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from lingosync_core.telemetry import now_timestamp
from lingosync_schemas.catalog import (
    Catalog,
    CatalogFormatError,
    catalog_from_json,
    catalog_to_json,
)
from lingosync_schemas.logs import LogEntry
from lingosync_schemas.primitives import RunId, Timestamp

PREVIEW_PREFIX = "delete-preview-"


class FileSystemCatalogStore(CatalogStoreProtocol):
    """Catalog stored as one pretty-printed JSON document."""

    def __init__(
        self, output_dir: str, record_file: str, languages: Sequence[str]
    ) -> None:
        """Initialize the catalog store.

        Args:
            output_dir: Directory holding the catalog file.
            record_file: Catalog file name.
            languages: Configured languages, used for field ordering.
        """
        self._output_dir = Path(output_dir)
        self.path = self._output_dir / record_file
        self._languages = list(languages)

    async def load_catalog(self) -> Catalog:
        """Load the catalog, or an empty one if the file does not exist.

        Returns:
            Catalog: Parsed catalog.

        Raises:
            StorageError: If the file cannot be read or parsed.
        """
        try:
            return await asyncio.to_thread(_read_catalog_file, self.path)
        except (OSError, orjson.JSONDecodeError, CatalogFormatError) as exc:
            raise StorageError(
                _build_storage_error_info(exc, "load_catalog", self.path)
            ) from exc

    async def save_catalog(self, catalog: Catalog) -> None:
        """Persist the catalog atomically.

        Raises:
            StorageError: If the output directory or file cannot be written.
        """
        try:
            await asyncio.to_thread(_ensure_dir, self._output_dir)
        except OSError as exc:
            raise StorageError(
                StorageErrorInfo(
                    code=StorageErrorCode.INITIALIZATION_FAILED,
                    message=f"Cannot create output directory: {exc}",
                    details=StorageErrorDetails(
                        operation="save_catalog",
                        path=str(self._output_dir),
                        reason=type(exc).__name__,
                    ),
                    suggestions=[
                        "Check that the output directory is writable",
                        "Set project.output_dir to a writable location",
                    ],
                )
            ) from exc
        payload = catalog_to_json(catalog, self._languages)
        try:
            await asyncio.to_thread(_write_json_atomic, self.path, payload)
        except OSError as exc:
            raise StorageError(
                _build_storage_error_info(exc, "save_catalog", self.path)
            ) from exc


class FileSystemPreviewStore(PreviewStoreProtocol):
    """Deletion previews written as timestamped side files."""

    def __init__(
        self,
        output_dir: str,
        languages: Sequence[str],
        clock: Callable[[], Timestamp] = now_timestamp,
    ) -> None:
        """Initialize the preview store.

        Args:
            output_dir: Directory for preview files.
            languages: Configured languages, used for field ordering.
            clock: Timestamp provider for file names.
        """
        self._output_dir = Path(output_dir)
        self._languages = list(languages)
        self._clock = clock

    async def write_preview(self, preview: Catalog) -> str:
        """Write a preview file.

        Returns:
            str: Path of the written preview.

        Raises:
            StorageError: If the preview cannot be written.
        """
        stamp = self._clock().replace(":", "-").replace(".", "-")
        path = self._output_dir / f"{PREVIEW_PREFIX}{stamp}.json"
        payload = catalog_to_json(preview, self._languages)
        try:
            await asyncio.to_thread(_ensure_dir, self._output_dir)
            await asyncio.to_thread(_write_json_atomic, path, payload)
        except OSError as exc:
            raise StorageError(
                _build_storage_error_info(exc, "write_preview", path)
            ) from exc
        return str(path)

    async def read_preview(self, path: str) -> Catalog:
        """Read a preview file back.

        Returns:
            Catalog: Preview contents.

        Raises:
            StorageError: If the preview is missing or unreadable.
        """
        preview_path = Path(path)
        try:
            exists = await asyncio.to_thread(preview_path.exists)
            if not exists:
                raise StorageError(
                    StorageErrorInfo(
                        code=StorageErrorCode.NOT_FOUND,
                        message=f"Deletion preview not found: {path}",
                        details=StorageErrorDetails(
                            operation="read_preview", path=path
                        ),
                    )
                )
            return await asyncio.to_thread(_read_catalog_file, preview_path)
        except (OSError, orjson.JSONDecodeError, CatalogFormatError) as exc:
            raise StorageError(
                _build_storage_error_info(exc, "read_preview", preview_path)
            ) from exc

    async def remove_preview(self, path: str) -> None:
        """Delete a preview file if present.

        Raises:
            StorageError: If the file exists but cannot be removed.
        """
        preview_path = Path(path)
        try:
            await asyncio.to_thread(preview_path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(
                _build_storage_error_info(exc, "remove_preview", preview_path)
            ) from exc


class FileSystemLogStore(LogStoreProtocol):
    """Filesystem-backed JSONL log store, one file per run."""

    def __init__(self, logs_dir: str) -> None:
        """Initialize the log store."""
        self._logs_dir = Path(logs_dir)

    def log_path(self, run_id: RunId) -> str:
        """Return the JSONL path for a run.

        Returns:
            str: Log file path.
        """
        return str(self._logs_dir / f"{run_id}.jsonl")

    async def append_log(self, entry: LogEntry) -> None:
        """Append a single log entry.

        Raises:
            StorageError: If the log entry cannot be written.
        """
        path = Path(self.log_path(entry.run_id))
        try:
            await asyncio.to_thread(_append_jsonl, path, entry)
        except OSError as exc:
            raise StorageError(
                _build_storage_error_info(exc, "append_log", path)
            ) from exc


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _read_catalog_file(path: Path) -> Catalog:
    if not path.exists():
        return {}
    raw = path.read_bytes()
    if not raw.strip():
        return {}
    return catalog_from_json(orjson.loads(raw))


def _write_json_atomic(path: Path, payload: object) -> None:
    data = orjson.dumps(payload, option=orjson.OPT_INDENT_2) + b"\n"
    temp_path = path.with_name(f".{path.name}.tmp")
    temp_path.write_bytes(data)
    os.replace(temp_path, path)


def _append_jsonl(path: Path, entry: LogEntry) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(entry.model_dump_json(exclude_none=False) + "\n")


def _build_storage_error_info(
    exc: Exception, operation: str, path: Path
) -> StorageErrorInfo:
    if isinstance(exc, PermissionError):
        return StorageErrorInfo(
            code=StorageErrorCode.PERMISSION_DENIED,
            message=f"Permission denied: {path}",
            details=StorageErrorDetails(
                operation=operation, path=str(path), reason=str(exc)
            ),
            suggestions=["Check file permissions on the output directory"],
        )
    if isinstance(exc, orjson.JSONDecodeError):
        return StorageErrorInfo(
            code=StorageErrorCode.SERIALIZATION_ERROR,
            message=f"Invalid JSON in {path}: {exc}",
            details=StorageErrorDetails(
                operation=operation, path=str(path), reason="json_decode_error"
            ),
            suggestions=["Fix or remove the file, it is rebuilt from references"],
        )
    if isinstance(exc, CatalogFormatError):
        return StorageErrorInfo(
            code=StorageErrorCode.VALIDATION_ERROR,
            message=f"Unexpected catalog shape in {path}: {exc}",
            details=StorageErrorDetails(
                operation=operation, path=str(path), reason="catalog_format_error"
            ),
        )
    return StorageErrorInfo(
        code=StorageErrorCode.IO_ERROR,
        message=str(exc),
        details=StorageErrorDetails(operation=operation, path=str(path)),
    )
