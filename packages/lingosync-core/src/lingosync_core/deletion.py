"""User-gated deletion of unused catalog entries."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from enum import StrEnum

from pydantic import Field

from lingosync_core.keys import parse_compound_key
from lingosync_core.merge import MergeEngine
from lingosync_core.paths import PathClassifier
from lingosync_core.ports.collaborators import InteractionProtocol
from lingosync_core.ports.storage import (
    CatalogStoreProtocol,
    PreviewStoreProtocol,
    StorageError,
)
from lingosync_core.telemetry import SyncLogger, now_millis
from lingosync_core.unused import UnusedKeyAnalyzer
from lingosync_schemas.base import BaseSchema
from lingosync_schemas.catalog import Catalog, copy_catalog
from lingosync_schemas.events import DeletionEvent
from lingosync_schemas.primitives import DeletionState, MergeFailurePolicy
from lingosync_schemas.references import Reference
from lingosync_schemas.responses import ErrorResponse
from lingosync_schemas.results import DeletionOutcome, UnusedKeyReport


class DeletionErrorCode(StrEnum):
    """Categorized error codes for the deletion workflow."""

    MERGE_FAILED = "merge_failed"


class DeletionErrorInfo(BaseSchema):
    """Structured deletion workflow error data."""

    code: DeletionErrorCode = Field(..., description="Deletion error code")
    message: str = Field(..., min_length=1, description="Error message")
    state: DeletionState = Field(..., description="State the workflow failed in")

    def to_error_response(self) -> ErrorResponse:
        """Convert deletion error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        return ErrorResponse(
            code=str(self.code),
            message=self.message,
            suggestions=[
                "Inspect the catalog file for manual edits",
                "Set merge.on_merge_failure = 'regenerate' to rebuild instead",
            ],
        )


class DeletionError(Exception):
    """Deletion workflow error with structured details."""

    def __init__(self, info: DeletionErrorInfo) -> None:
        """Initialize the deletion error.

        Args:
            info: Structured deletion error information.
        """
        super().__init__(info.message)
        self.info = info


def build_preview(catalog: Catalog, compound_keys: Iterable[str]) -> Catalog:
    """Return the catalog subset addressed by the given compound keys.

    Returns:
        Catalog: Preview catalog with copies of the selected entries.
    """
    preview: Catalog = {}
    for compound_key in compound_keys:
        parts = parse_compound_key(compound_key)
        if parts is None:
            continue
        entry = catalog.get(parts.module_path, {}).get(parts.key)
        if entry is None:
            continue
        preview.setdefault(parts.module_path, {})[parts.key] = entry.model_copy(
            deep=True
        )
    return preview


def prune_catalog(catalog: Catalog, preview: Catalog) -> tuple[Catalog, list[str]]:
    """Remove every preview entry from a copy of the catalog.

    Modules left empty are dropped.

    Returns:
        tuple[Catalog, list[str]]: Pruned catalog and deleted compound keys.
    """
    pruned = copy_catalog(catalog)
    deleted: list[str] = []
    for module_path, entries in preview.items():
        module = pruned.get(module_path)
        if module is None:
            continue
        for key in entries:
            if module.pop(key, None) is not None:
                deleted.append(f"[{module_path}][{key}]")
        if not module:
            del pruned[module_path]
    return pruned, deleted


class DeletionWorkflow:
    """Analyze, select, preview, confirm, then prune and absorb in one save.

    Nothing is mutated before the Interaction confirms, and a confirmed
    deletion is persisted in the same write as the newly scanned references.
    """

    def __init__(
        self,
        *,
        store: CatalogStoreProtocol,
        preview_store: PreviewStoreProtocol,
        classifier: PathClassifier,
        analyzer: UnusedKeyAnalyzer,
        merge_engine: MergeEngine,
        interaction: InteractionProtocol,
        logger: SyncLogger,
        failure_policy: MergeFailurePolicy = MergeFailurePolicy.REGENERATE,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Initialize the workflow.

        Args:
            store: Catalog persistence.
            preview_store: Deletion preview persistence.
            classifier: Classifier for scanned references.
            analyzer: Unused entry analyzer.
            merge_engine: Merge engine used to absorb references.
            interaction: Selection and confirmation collaborator.
            logger: Run logger.
            failure_policy: Regenerate from references or re-raise on failure.
            clock: Epoch millis provider.
        """
        self._store = store
        self._preview_store = preview_store
        self._classifier = classifier
        self._analyzer = analyzer
        self._merge = merge_engine
        self._interaction = interaction
        self._logger = logger
        self._failure_policy = MergeFailurePolicy(failure_policy)
        self._clock = clock
        self.state = DeletionState.ANALYZED

    async def run(self, references: Sequence[Reference]) -> DeletionOutcome:
        """Run the workflow against the persisted catalog.

        Returns:
            DeletionOutcome: Terminal state and the persisted catalog.

        Raises:
            StorageError: On fatal storage failures (permissions, init).
            DeletionError: When failing loudly is configured.
        """
        self.state = DeletionState.ANALYZED
        try:
            return await self._run(references)
        except StorageError as exc:
            if exc.is_fatal:
                raise
            return await self._handle_failure(exc, references)
        except Exception as exc:
            return await self._handle_failure(exc, references)

    async def _run(self, references: Sequence[Reference]) -> DeletionOutcome:
        existing = await self._store.load_catalog()
        classification = self._classifier.classify(references)
        usage = self._classifier.usage_stamps(references, self._clock())

        if not existing:
            catalog = await self._merge.absorb({}, classification, usage)
            return await self._finish(DeletionState.DONE, catalog)

        report = await self._analyzer.analyze(existing, references)
        unused_keys = report.unused_keys()
        if not unused_keys:
            catalog = await self._merge.absorb(existing, classification, usage)
            return await self._finish(DeletionState.DONE, catalog, report=report)

        await self._transition(DeletionState.SELECTING)
        allowed = set(unused_keys)
        chosen = await self._ask_selection(unused_keys)
        selected = [key for key in dict.fromkeys(chosen) if key in allowed]
        if not selected:
            catalog = await self._merge.absorb(existing, classification, usage)
            return await self._finish(
                DeletionState.PRESERVED_DONE, catalog, report=report
            )

        preview_path = await self._preview_store.write_preview(
            build_preview(existing, selected)
        )
        await self._transition(DeletionState.PREVIEW_GENERATED)
        await self._logger.info(
            DeletionEvent.PREVIEW_WRITTEN,
            f"Deletion preview written to {preview_path}",
            {"path": preview_path, "entries": len(selected)},
        )
        try:
            await self._transition(DeletionState.CONFIRMING)
            confirmed = await self._ask_confirmation(selected, preview_path)
            if not confirmed:
                await self._logger.info(
                    DeletionEvent.DECLINED,
                    "Deletion declined, catalog preserved",
                    {"selected": len(selected)},
                )
                catalog = await self._merge.absorb(existing, classification, usage)
                return await self._finish(
                    DeletionState.PRESERVED_WITH_SELECTION,
                    catalog,
                    report=report,
                    selected=selected,
                    preview_path=preview_path,
                )
            approved = await self._preview_store.read_preview(preview_path)
            pruned, deleted = prune_catalog(existing, approved)
            catalog = await self._merge.absorb(pruned, classification, usage)
            await self._logger.info(
                DeletionEvent.APPLIED,
                f"{len(deleted)} entries deleted",
                {"deleted": deleted},
            )
            return await self._finish(
                DeletionState.DELETED,
                catalog,
                report=report,
                selected=selected,
                deleted=deleted,
                preview_path=preview_path,
            )
        finally:
            await self._preview_store.remove_preview(preview_path)

    async def _ask_selection(self, unused_keys: list[str]) -> list[str]:
        try:
            return list(await self._interaction.select_keys_for_deletion(unused_keys))
        except Exception as exc:
            await self._interaction_failed("select", exc)
            return []

    async def _ask_confirmation(self, selected: list[str], preview_path: str) -> bool:
        try:
            return bool(
                await self._interaction.confirm_deletion(selected, preview_path)
            )
        except Exception as exc:
            await self._interaction_failed("confirm", exc)
            return False

    async def _interaction_failed(self, step: str, error: Exception) -> None:
        # An unanswered prompt counts as a decline, never as a merge failure.
        await self._logger.warn(
            DeletionEvent.INTERACTION_FAILED,
            f"Interaction failed during {step}, keeping all entries: {error}",
            {"step": step, "error_type": type(error).__name__},
        )

    async def _handle_failure(
        self, error: Exception, references: Sequence[Reference]
    ) -> DeletionOutcome:
        failed_state = self.state
        await self._logger.error(
            DeletionEvent.FAILED,
            f"Deletion workflow failed in state {failed_state}: {error}",
            {"state": str(failed_state), "error_type": type(error).__name__},
        )
        if self._failure_policy == MergeFailurePolicy.FAIL:
            raise DeletionError(
                DeletionErrorInfo(
                    code=DeletionErrorCode.MERGE_FAILED,
                    message=f"Deletion workflow failed: {error}",
                    state=failed_state,
                )
            ) from error

        try:
            existing = await self._store.load_catalog()
        except StorageError as exc:
            if exc.is_fatal:
                raise
            existing = {}
        classification = self._classifier.classify(references)
        usage = self._classifier.usage_stamps(references, self._clock())
        catalog = await self._merge.build_catalog(classification, existing)
        catalog = self._merge.stamp_last_used(catalog, usage)
        await self._logger.warn(
            DeletionEvent.REGENERATED,
            "Catalog regenerated from current references",
            {"modules": len(catalog)},
        )
        return await self._finish(DeletionState.REGENERATED, catalog)

    async def _finish(
        self,
        state: DeletionState,
        catalog: Catalog,
        *,
        report: UnusedKeyReport | None = None,
        selected: list[str] | None = None,
        deleted: list[str] | None = None,
        preview_path: str | None = None,
    ) -> DeletionOutcome:
        await self._store.save_catalog(catalog)
        await self._transition(state)
        return DeletionOutcome(
            state=state,
            catalog=catalog,
            report=report,
            selected=selected or [],
            deleted=deleted or [],
            preview_path=preview_path,
        )

    async def _transition(self, state: DeletionState) -> None:
        previous = self.state
        self.state = state
        await self._logger.debug(
            DeletionEvent.STATE_CHANGED,
            f"Deletion workflow {previous} -> {state}",
            {"from": str(previous), "to": str(state)},
        )
