"""Incremental sync of the catalog with a shared remote sheet.

Concurrency control is optimistic: the change set is computed against a
fingerprint of the remote snapshot, every apply attempt re-checks that
fingerprint, and rows being rewritten or deleted carry an advisory lock token
in a reserved column while the attempt runs. The locks are a cooperative
convention only; a client that ignores the lock column is not excluded.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from collections.abc import Awaitable, Callable, Sequence
from uuid import uuid4

from lingosync_core.keys import format_compound_key, parse_compound_key
from lingosync_core.ports.remote import (
    RemoteSyncError,
    RemoteSyncErrorCode,
    SheetClientProtocol,
    build_remote_error,
)
from lingosync_core.telemetry import SyncLogger, now_millis
from lingosync_schemas.catalog import Catalog, CatalogEntry, count_entries
from lingosync_schemas.config import RetryConfig
from lingosync_schemas.events import RemoteEvent
from lingosync_schemas.primitives import KEY_HEADER, MARK_FIELD, RemotePullStatus
from lingosync_schemas.results import PullResult
from lingosync_schemas.sync import ChangeSet, LockInfo, PushResult, RowUpdate, SheetRow

LOCK_TOKEN_PREFIX = "lingosync-lock"

type Grid = list[list[str]]


def classify_error(error: BaseException) -> RemoteSyncErrorCode:
    """Map an exception to a remote error code.

    Returns:
        RemoteSyncErrorCode: Code deciding retry versus abort.
    """
    if isinstance(error, RemoteSyncError):
        return error.code
    message = str(error).lower()
    if "version conflict" in message:
        return RemoteSyncErrorCode.VERSION_CONFLICT
    if "row locked" in message:
        return RemoteSyncErrorCode.CONCURRENCY_ERROR
    return RemoteSyncErrorCode.UNKNOWN_ERROR


def to_remote_error(error: BaseException, operation: str) -> RemoteSyncError:
    """Wrap any exception as a typed remote error.

    Returns:
        RemoteSyncError: The error itself if already typed, else a wrapper.
    """
    if isinstance(error, RemoteSyncError):
        return error
    return build_remote_error(
        classify_error(error),
        f"Remote {operation} failed: {error}",
        operation=operation,
        reason=type(error).__name__,
    )


def parse_mark(value: str) -> int:
    """Parse a mark cell, falling back to 0.

    Returns:
        int: Parsed mark.
    """
    text = value.strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        try:
            return int(float(text))
        except ValueError:
            return 0


class RemoteSyncEngine:
    """Map catalogs to sheet rows and push changes under concurrency control."""

    def __init__(
        self,
        *,
        client: SheetClientProtocol,
        languages: Sequence[str],
        logger: SyncLogger,
        lock_column: int,
        retry: RetryConfig | None = None,
        lock_ttl_ms: int = 600_000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], int] = now_millis,
        lock_id_factory: Callable[[], str] = lambda: uuid4().hex,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Row-level sheet client.
            languages: Configured languages, in column order.
            logger: Run logger.
            lock_column: 0-based index of the reserved lock column.
            retry: Apply retry policy.
            lock_ttl_ms: Age after which a foreign lock token is stale.
            sleep: Coroutine used for backoff.
            clock: Epoch millis provider.
            lock_id_factory: Lock identifier provider.
        """
        self._client = client
        self._languages = list(languages)
        self._logger = logger
        self._lock_column = lock_column
        self._retry = retry or RetryConfig()
        self._lock_ttl_ms = lock_ttl_ms
        self._sleep = sleep
        self._clock = clock
        self._lock_id_factory = lock_id_factory

    # -- row mapping -------------------------------------------------------

    def header(self) -> list[str]:
        """Return the expected header row.

        Returns:
            list[str]: ``[key, languages..., mark]``.
        """
        return [KEY_HEADER, *self._languages, MARK_FIELD]

    def entry_to_row(self, module_path: str, key: str, entry: CatalogEntry) -> SheetRow:
        """Convert one entry to a sheet row.

        Returns:
            SheetRow: Row addressed by the compound key.
        """
        compound_key = format_compound_key(module_path, key)
        values = [compound_key]
        values.extend(entry.translations.get(language, "") for language in self._languages)
        values.append(str(entry.mark if entry.mark is not None else 0))
        return SheetRow(compound_key=compound_key, values=values)

    def catalog_to_rows(self, catalog: Catalog) -> list[SheetRow]:
        """Convert a catalog to sheet rows in catalog order.

        Returns:
            list[SheetRow]: One row per entry.
        """
        return [
            self.entry_to_row(module_path, key, entry)
            for module_path, entries in catalog.items()
            for key, entry in entries.items()
        ]

    def rows_to_catalog(self, grid: Grid) -> tuple[Catalog, list[int]]:
        """Parse a sheet grid into a catalog.

        Columns are located through the header. Empty compound keys are
        ignored and malformed ones are skipped.

        Returns:
            tuple[Catalog, list[int]]: Parsed catalog and grid indices of
            skipped malformed rows.
        """
        catalog: Catalog = {}
        skipped: list[int] = []
        if not grid:
            return catalog, skipped
        header = [cell.strip() for cell in grid[0]]
        language_columns = {
            language: header.index(language)
            for language in self._languages
            if language in header
        }
        mark_column = header.index(MARK_FIELD) if MARK_FIELD in header else None
        for row_index, row in enumerate(grid[1:], start=1):
            if not row or not row[0].strip():
                continue
            parts = parse_compound_key(row[0].strip())
            if parts is None:
                skipped.append(row_index)
                continue
            translations = {
                language: row[column]
                for language, column in language_columns.items()
                if column < len(row) and row[column] != ""
            }
            mark = 0
            if mark_column is not None and mark_column < len(row):
                mark = parse_mark(row[mark_column])
            catalog.setdefault(parts.module_path, {})[parts.key] = CatalogEntry(
                translations=translations, mark=mark
            )
        return catalog, skipped

    def calculate_change_set(self, remote: Catalog, local: Catalog) -> ChangeSet:
        """Diff the local desired state against a remote snapshot.

        Returns:
            ChangeSet: Rows to add, rows to rewrite and keys to delete.
        """
        remote_rows = {row.compound_key: row for row in self.catalog_to_rows(remote)}
        local_rows = {row.compound_key: row for row in self.catalog_to_rows(local)}
        added: list[SheetRow] = []
        modified: list[SheetRow] = []
        for compound_key, row in local_rows.items():
            remote_row = remote_rows.get(compound_key)
            if remote_row is None:
                added.append(row)
            elif remote_row.values != row.values:
                modified.append(row)
        deleted_keys = [key for key in remote_rows if key not in local_rows]
        return ChangeSet(added=added, modified=modified, deleted_keys=deleted_keys)

    def calculate_data_version(self, catalog: Catalog) -> str:
        """Fingerprint catalog content for optimistic concurrency checks.

        Returns:
            str: Hex digest independent of module, key and field order.
        """
        canonical = []
        for module_path in sorted(catalog):
            entries = catalog[module_path]
            for key in sorted(entries):
                entry = entries[key]
                canonical.append([
                    module_path,
                    key,
                    sorted(entry.translations.items()),
                    entry.mark if entry.mark is not None else 0,
                ])
        payload = json.dumps(canonical, ensure_ascii=False, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    # -- pull --------------------------------------------------------------

    async def pull(self) -> PullResult:
        """Read the remote sheet, degrading to an empty snapshot on failure.

        Returns:
            PullResult: Remote catalog and pull status.
        """
        await self._logger.info(RemoteEvent.PULL_STARTED, "Pulling remote sheet")
        try:
            grid = await self._client.read_rows()
        except RemoteSyncError as exc:
            await self._logger.warn(
                RemoteEvent.PULL_DEGRADED,
                f"Remote pull failed, continuing with local data: {exc}",
                {"code": str(exc.code), "suggestions": list(exc.info.suggestions)},
            )
            return PullResult(catalog={}, status=RemotePullStatus.DEGRADED)
        catalog, skipped = self.rows_to_catalog(grid)
        for row_index in skipped:
            await self._logger.warn(
                RemoteEvent.ROW_SKIPPED,
                f"Skipping remote row {row_index + 1} with a malformed key",
                {"row": row_index + 1, "value": grid[row_index][0]},
            )
        await self._logger.info(
            RemoteEvent.PULL_COMPLETED,
            "Remote sheet pulled",
            {"entries": count_entries(catalog), "skipped_rows": len(skipped)},
        )
        return PullResult(
            catalog=catalog,
            status=RemotePullStatus.PULLED,
            skipped_rows=len(skipped),
        )

    # -- push --------------------------------------------------------------

    async def push(self, catalog: Catalog) -> PushResult:
        """Push the local catalog as an incremental change set.

        Returns:
            PushResult: Applied change counts.

        Raises:
            RemoteSyncError: When the push fails after retries.
        """
        try:
            grid = await self._client.read_rows()
            remote, _ = self.rows_to_catalog(grid)
            change_set = self.calculate_change_set(remote, catalog)
            if change_set.is_empty:
                await self._logger.info(
                    RemoteEvent.PUSH_SKIPPED, "Remote sheet already up to date"
                )
                return PushResult(skipped=True)
            expected_version = self.calculate_data_version(remote)
            result = await self.apply_incremental_changes_with_concurrency_control(
                change_set, expected_version
            )
        except Exception as exc:
            error = to_remote_error(exc, "push")
            await self._logger.error(
                RemoteEvent.PUSH_FAILED,
                f"Remote push failed: {error}",
                {"code": str(error.code), "suggestions": list(error.info.suggestions)},
            )
            if error is exc:
                raise
            raise error from exc
        await self._logger.info(
            RemoteEvent.PUSH_COMPLETED,
            "Remote sheet updated",
            result.model_dump(),
        )
        return result

    async def apply_incremental_changes_with_concurrency_control(
        self, change_set: ChangeSet, expected_version: str
    ) -> PushResult:
        """Apply a change set with version checks, row locks and retries.

        Returns:
            PushResult: Applied change counts.

        Raises:
            RemoteSyncError: Non-retryable failures immediately, retryable
                ones once the attempt bound is exhausted.
        """
        max_attempts = self._retry.max_attempts
        last_error: RemoteSyncError | None = None
        for attempt in range(1, max_attempts + 1):
            await self._logger.debug(
                RemoteEvent.ATTEMPT_STARTED,
                f"Apply attempt {attempt}/{max_attempts}",
                {"attempt": attempt},
            )
            try:
                result = await self._apply_once(change_set, expected_version)
            except Exception as exc:
                error = to_remote_error(exc, "apply")
                if not error.retryable:
                    if error is exc:
                        raise
                    raise error from exc
                last_error = error
                await self._logger.warn(
                    RemoteEvent.ATTEMPT_FAILED,
                    f"Apply attempt {attempt} failed: {error}",
                    {"attempt": attempt, "code": str(error.code)},
                )
                if attempt < max_attempts:
                    await self._sleep(self._retry.delay_for(attempt))
                continue
            return result.model_copy(update={"attempts": attempt})

        code = (
            last_error.code
            if last_error is not None
            else RemoteSyncErrorCode.UNKNOWN_ERROR
        )
        raise build_remote_error(
            code,
            f"Remote apply gave up after {max_attempts} attempts: {last_error}",
            operation="apply",
            attempts=max_attempts,
            reason=str(last_error) if last_error is not None else None,
        )

    async def _apply_once(
        self, change_set: ChangeSet, expected_version: str
    ) -> PushResult:
        grid = await self._client.read_rows()
        remote, _ = self.rows_to_catalog(grid)
        if self.calculate_data_version(remote) != expected_version:
            raise build_remote_error(
                RemoteSyncErrorCode.VERSION_CONFLICT,
                "Remote version conflict: the sheet changed since the diff",
                operation="apply",
            )
        await self._ensure_header(grid)

        row_index = _index_rows(grid)
        deleted_rows = sorted(
            {row_index[key] for key in change_set.deleted_keys if key in row_index},
            reverse=True,
        )
        modified_rows = [
            (row_index[row.compound_key], row)
            for row in change_set.modified
            if row.compound_key in row_index
        ]
        appended = [
            row for row in change_set.modified if row.compound_key not in row_index
        ]
        appended.extend(change_set.added)

        touched = sorted(set(deleted_rows) | {index for index, _ in modified_rows})
        lock = await self._acquire_locks(grid, touched) if touched else None
        try:
            if deleted_rows:
                await self._client.delete_rows(deleted_rows)
            if modified_rows:
                await self._client.update_rows([
                    RowUpdate(
                        row_index=_shift(index, deleted_rows),
                        start_column=0,
                        values=row.values,
                    )
                    for index, row in modified_rows
                ])
            if appended:
                await self._client.append_rows([row.values for row in appended])
        finally:
            if lock is not None:
                await self._release_locks(lock)
        return PushResult(
            added=len(appended),
            modified=len(modified_rows),
            deleted=len(deleted_rows),
        )

    async def _ensure_header(self, grid: Grid) -> None:
        expected = self.header()
        if grid and [cell.strip() for cell in grid[0][: len(expected)]] == expected:
            return
        has_data = any(row and row[0].strip() for row in grid[1:])
        if has_data:
            raise build_remote_error(
                RemoteSyncErrorCode.HEADER_MISMATCH,
                "Remote header does not match the configured languages",
                operation="apply",
                reason=",".join(grid[0]) if grid else None,
            )
        await self._client.update_rows([RowUpdate(row_index=0, values=expected)])

    async def _acquire_locks(self, grid: Grid, rows: Sequence[int]) -> LockInfo:
        now = self._clock()
        lock_id = self._lock_id_factory()
        for row in rows:
            holder = _cell(grid, row, self._lock_column)
            if holder and not self._is_stale(holder, now):
                raise build_remote_error(
                    RemoteSyncErrorCode.CONCURRENCY_ERROR,
                    f"Remote row locked by another writer (row {row + 1})",
                    operation="lock",
                    reason=holder,
                )
        token = f"{LOCK_TOKEN_PREFIX}:{lock_id}:{now}"
        await self._client.update_rows([
            RowUpdate(row_index=row, start_column=self._lock_column, values=[token])
            for row in rows
        ])
        lock = LockInfo(
            lock_id=lock_id, token=token, locked_rows=list(rows), locked_at=now
        )
        await self._logger.debug(
            RemoteEvent.LOCKS_ACQUIRED,
            f"Locked {len(rows)} remote rows",
            {"lock_id": lock_id, "rows": list(rows)},
        )
        return lock

    async def _release_locks(self, lock: LockInfo) -> None:
        # Rows may have shifted after deletions, so find cells by token.
        try:
            grid = await self._client.read_rows()
            rows = [
                index
                for index in range(len(grid))
                if _cell(grid, index, self._lock_column) == lock.token
            ]
            if rows:
                await self._client.update_rows([
                    RowUpdate(
                        row_index=row, start_column=self._lock_column, values=[""]
                    )
                    for row in rows
                ])
        except RemoteSyncError as exc:
            await self._logger.warn(
                RemoteEvent.LOCK_RELEASE_FAILED,
                f"Could not clear lock tokens, they expire after the lock TTL: {exc}",
                {"lock_id": lock.lock_id, "code": str(exc.code)},
            )
            return
        await self._logger.debug(
            RemoteEvent.LOCKS_RELEASED,
            f"Released {len(rows)} remote row locks",
            {"lock_id": lock.lock_id},
        )

    def _is_stale(self, token: str, now: int) -> bool:
        prefix, _, rest = token.partition(":")
        if prefix != LOCK_TOKEN_PREFIX:
            return False
        _, _, stamp = rest.rpartition(":")
        try:
            locked_at = int(stamp)
        except ValueError:
            return False
        return now - locked_at > self._lock_ttl_ms


def _index_rows(grid: Grid) -> dict[str, int]:
    index: dict[str, int] = {}
    for row_index, row in enumerate(grid[1:], start=1):
        if row and row[0].strip():
            index[row[0].strip()] = row_index
    return index


def _shift(row_index: int, deleted_rows: Sequence[int]) -> int:
    return row_index - sum(1 for deleted in deleted_rows if deleted < row_index)


def _cell(grid: Grid, row: int, column: int) -> str:
    if row >= len(grid) or column >= len(grid[row]):
        return ""
    return grid[row][column].strip()
