"""One sync run: pull, scan, prune and absorb, emit, push."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from lingosync_core.deletion import DeletionWorkflow
from lingosync_core.merge import MergeEngine
from lingosync_core.ports.collaborators import ExtractorProtocol, InteractionProtocol
from lingosync_core.ports.export import ModuleEmitterProtocol
from lingosync_core.ports.storage import CatalogStoreProtocol, StorageError
from lingosync_core.remote_sync import RemoteSyncEngine
from lingosync_core.telemetry import SyncLogger
from lingosync_schemas.catalog import Catalog, count_entries
from lingosync_schemas.events import CatalogEvent, EmitEvent, RunEvent
from lingosync_schemas.primitives import DeletionState, RemotePullStatus
from lingosync_schemas.references import Reference
from lingosync_schemas.results import PullResult, SyncReport
from lingosync_schemas.sync import PushResult


class SyncPipeline:
    """Sequential sync run over injected collaborators."""

    def __init__(
        self,
        *,
        store: CatalogStoreProtocol,
        merge_engine: MergeEngine,
        workflow: DeletionWorkflow,
        extractor: ExtractorProtocol,
        emitter: ModuleEmitterProtocol,
        interaction: InteractionProtocol,
        logger: SyncLogger,
        remote: RemoteSyncEngine | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Catalog persistence.
            merge_engine: Merge engine for the remote pull-merge.
            workflow: Deletion workflow that also absorbs new references.
            extractor: Source file scanner.
            emitter: Module file writer.
            interaction: Collaborator gating deletion and push.
            logger: Run logger.
            remote: Remote sync engine, None for local-only runs.
        """
        self._store = store
        self._merge = merge_engine
        self._workflow = workflow
        self._extractor = extractor
        self._emitter = emitter
        self._interaction = interaction
        self._logger = logger
        self._remote = remote

    async def run(self, files: Sequence[Path]) -> SyncReport:
        """Run a full sync over the given source files.

        Returns:
            SyncReport: Run summary.
        """
        await self._logger.info(
            RunEvent.STARTED, "Sync run started", {"files": len(files)}
        )
        try:
            report = await self._run(files)
        except Exception as exc:
            await self._logger.error(
                RunEvent.FAILED,
                f"Sync run failed: {exc}",
                {"error_type": type(exc).__name__},
            )
            raise
        await self._logger.info(
            RunEvent.COMPLETED, "Sync run completed", report.model_dump(mode="json")
        )
        return report

    async def pull_remote(self) -> PullResult:
        """Pull the remote sheet and merge it into the persisted catalog.

        Returns:
            PullResult: Pull outcome.
        """
        if self._remote is None:
            return PullResult(status=RemotePullStatus.SKIPPED)
        pulled = await self._remote.pull()
        if pulled.catalog:
            existing = await self._load_for_pull()
            merged = await self._merge.merge_remote(existing, pulled.catalog)
            await self._store.save_catalog(merged)
        return pulled

    async def _load_for_pull(self) -> Catalog:
        try:
            return await self._store.load_catalog()
        except StorageError as exc:
            if exc.is_fatal:
                raise
            await self._logger.warn(
                CatalogEvent.UNREADABLE,
                f"Local catalog unreadable, rebuilding from remote: {exc}",
                {"code": str(exc.info.code)},
            )
            return {}

    async def scan(self, files: Sequence[Path]) -> list[Reference]:
        """Scan source files for references.

        Returns:
            list[Reference]: References, new text folded in.
        """
        references: list[Reference] = []
        for file in files:
            result = await self._extractor.scan(file)
            references.extend(result.all_references())
        return references

    async def push(self) -> PushResult | None:
        """Push the persisted catalog if the Interaction agrees.

        Returns:
            PushResult | None: Push outcome, None when not pushed.
        """
        if self._remote is None:
            return None
        if not await self._interaction.confirm_remote_sync():
            return None
        catalog = await self._store.load_catalog()
        return await self._remote.push(catalog)

    async def _run(self, files: Sequence[Path]) -> SyncReport:
        pulled = await self.pull_remote()
        references = await self.scan(files)
        outcome = await self._workflow.run(references)
        emitted = await self._emitter.emit(outcome.catalog)
        await self._logger.info(
            EmitEvent.COMPLETED,
            f"{len(emitted)} module files written",
            {"files": emitted},
        )
        pushed = None
        if self._remote is not None and await self._interaction.confirm_remote_sync():
            pushed = await self._remote.push(outcome.catalog)
        report = outcome.report
        return SyncReport(
            run_id=self._logger.run_id,
            remote_pull=RemotePullStatus(pulled.status),
            remote_entries=count_entries(pulled.catalog),
            references=len(references),
            modules=len(outcome.catalog),
            entries=count_entries(outcome.catalog),
            unused=len(report.unused) if report is not None else 0,
            force_kept=len(report.force_kept) if report is not None else 0,
            deletion_state=DeletionState(outcome.state),
            deleted=len(outcome.deleted),
            emitted_files=emitted,
            push=pushed,
        )
