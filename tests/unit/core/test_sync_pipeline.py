"""Unit tests for the sync pipeline."""

import asyncio
from pathlib import Path

import pytest

from lingosync_core.deletion import DeletionWorkflow
from lingosync_core.merge import MergeEngine
from lingosync_core.paths import PathClassifier
from lingosync_core.pipeline import SyncPipeline
from lingosync_core.ports.remote import RemoteSyncErrorCode, build_remote_error
from lingosync_core.ports.storage import StorageError, StorageErrorCode
from lingosync_core.remote_sync import RemoteSyncEngine
from lingosync_core.telemetry import SyncLogger
from lingosync_core.unused import UnusedKeyAnalyzer
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.config import RetryConfig
from lingosync_schemas.events import CatalogEvent, EmitEvent, RunEvent
from lingosync_schemas.primitives import DeletionState, RemotePullStatus
from lingosync_schemas.references import NewText, Reference, ScanResult
from tests.helpers.fakes import (
    NOW_MILLIS,
    FakeSheetClient,
    InMemoryCatalogStore,
    InMemoryPreviewStore,
    RecordingLogSink,
    ScriptedInteraction,
    build_logger,
    entry,
    ref,
)


class _MappingExtractor:
    def __init__(self, results: dict[str, ScanResult]) -> None:
        self._results = results

    async def scan(self, file: Path) -> ScanResult:
        return self._results.get(str(file), ScanResult())


class _RecordingEmitter:
    def __init__(self, fail: bool = False) -> None:
        self.catalogs: list[Catalog] = []
        self._fail = fail

    async def emit(self, catalog: Catalog) -> list[str]:
        if self._fail:
            raise OSError("read-only output")
        self.catalogs.append(catalog)
        return [f"out/{module}" for module in catalog]


def _pipeline(
    store: InMemoryCatalogStore,
    interaction: ScriptedInteraction,
    *,
    extractor: _MappingExtractor,
    emitter: _RecordingEmitter | None = None,
    client: FakeSheetClient | None = None,
    logger: SyncLogger | None = None,
) -> SyncPipeline:
    logger = logger or build_logger()
    classifier = PathClassifier(project_root=Path("/work"), root_dir="src")
    merge_engine = MergeEngine(languages=["en", "zh"], logger=logger)
    workflow = DeletionWorkflow(
        store=store,
        preview_store=InMemoryPreviewStore(),
        classifier=classifier,
        analyzer=UnusedKeyAnalyzer(
            classifier=classifier, logger=logger, clock=lambda: NOW_MILLIS
        ),
        merge_engine=merge_engine,
        interaction=interaction,
        logger=logger,
        clock=lambda: NOW_MILLIS,
    )
    remote = None
    if client is not None:
        remote = RemoteSyncEngine(
            client=client,
            languages=["en", "zh"],
            logger=logger,
            lock_column=6,
            retry=RetryConfig(max_attempts=1),
            clock=lambda: NOW_MILLIS,
        )
    return SyncPipeline(
        store=store,
        merge_engine=merge_engine,
        workflow=workflow,
        extractor=extractor,
        emitter=emitter or _RecordingEmitter(),
        interaction=interaction,
        logger=logger,
        remote=remote,
    )


FILES = [Path("src/a/b.ts")]
HELLO_SCAN = _MappingExtractor({"src/a/b.ts": ScanResult(references=[ref("Hello", "src/a/b.ts")])})


def _remote_grid() -> list[list[str]]:
    return [
        ["key", "en", "zh", "mark"],
        ["[a/b.ts][Hello]", "Hello there", "你好", "3"],
    ]


def test_remote_values_flow_into_catalog_and_module_files() -> None:
    """Remote edits win, the compound key stays put and nothing is re-pushed."""
    store = InMemoryCatalogStore({"a/b.ts": {"Hello": entry(en="Hello", zh="你好", mark=1)}})
    client = FakeSheetClient(_remote_grid())
    emitter = _RecordingEmitter()
    interaction = ScriptedInteraction()

    report = asyncio.run(
        _pipeline(
            store, interaction, extractor=HELLO_SCAN, emitter=emitter, client=client
        ).run(FILES)
    )

    assert report.remote_pull == RemotePullStatus.PULLED
    assert report.remote_entries == 1
    assert list(store.catalog) == ["a/b.ts"]
    assert store.catalog["a/b.ts"]["Hello"].translations["en"] == "Hello there"
    assert store.catalog["a/b.ts"]["Hello"].mark == 3
    assert store.catalog["a/b.ts"]["Hello"].last_used == NOW_MILLIS
    assert emitter.catalogs[0]["a/b.ts"]["Hello"].translations["en"] == "Hello there"
    assert report.emitted_files == ["out/a/b.ts"]
    assert report.push is not None
    assert report.push.skipped
    assert interaction.push_prompts == 1


def test_declined_push_leaves_remote_untouched() -> None:
    """Declining the push skips every remote write."""
    store = InMemoryCatalogStore()
    client = FakeSheetClient(_remote_grid())
    interaction = ScriptedInteraction(confirm_push=False)
    extractor = _MappingExtractor({
        "src/a/b.ts": ScanResult(
            references=[ref("Hello", "src/a/b.ts")],
            new_text=[NewText(key="Welcome", source_file="src/a/b.ts")],
        )
    })

    report = asyncio.run(
        _pipeline(store, interaction, extractor=extractor, client=client).run(FILES)
    )

    assert report.push is None
    assert "Welcome" in store.catalog["a/b.ts"]
    assert client.update_calls == []
    assert client.appended == []
    assert client.grid == _remote_grid()


def test_degraded_pull_continues_with_local_data() -> None:
    """An unreachable remote does not stop the local sync."""
    store = InMemoryCatalogStore({"a/b.ts": {"Hello": entry(en="Hello")}})
    client = FakeSheetClient()
    client.read_error = build_remote_error(RemoteSyncErrorCode.NETWORK_ERROR, "offline")
    interaction = ScriptedInteraction(confirm_push=False)

    report = asyncio.run(
        _pipeline(store, interaction, extractor=HELLO_SCAN, client=client).run(FILES)
    )

    assert report.remote_pull == RemotePullStatus.DEGRADED
    assert report.remote_entries == 0
    assert report.deletion_state == DeletionState.DONE
    assert report.entries == 1


def test_local_only_run_reports_skipped_remote() -> None:
    """Without a remote engine the pull and push are skipped."""
    store = InMemoryCatalogStore({
        "a/b.ts": {"Hello": entry(en="Hello")},
        "gone.ts": {"Old": entry(en="Old")},
    })
    interaction = ScriptedInteraction(select_all=True, confirm_delete=True)
    sink = RecordingLogSink()

    report = asyncio.run(
        _pipeline(
            store, interaction, extractor=HELLO_SCAN, logger=build_logger(sink)
        ).run(FILES)
    )

    assert report.remote_pull == RemotePullStatus.SKIPPED
    assert report.unused == 1
    assert report.deleted == 1
    assert report.deletion_state == DeletionState.DELETED
    assert report.push is None
    assert interaction.push_prompts == 0
    assert list(store.catalog) == ["a/b.ts"]
    events = sink.events()
    assert events[0] == RunEvent.STARTED
    assert EmitEvent.COMPLETED in events
    assert events[-1] == RunEvent.COMPLETED


def test_scan_folds_new_text_into_references() -> None:
    """New text becomes references after the existing ones."""
    extractor = _MappingExtractor({
        "src/x.ts": ScanResult(
            references=[ref("A", "src/x.ts")],
            new_text=[NewText(key="B", source_file="src/x.ts")],
        )
    })
    pipeline = _pipeline(
        InMemoryCatalogStore(), ScriptedInteraction(), extractor=extractor
    )

    references = asyncio.run(pipeline.scan([Path("src/x.ts"), Path("src/none.ts")]))

    assert [item.key for item in references] == ["A", "B"]
    assert all(isinstance(item, Reference) for item in references)


def test_failed_run_is_logged_and_raised() -> None:
    """Failures propagate after a run_failed entry."""
    sink = RecordingLogSink()
    pipeline = _pipeline(
        InMemoryCatalogStore(),
        ScriptedInteraction(),
        extractor=HELLO_SCAN,
        emitter=_RecordingEmitter(fail=True),
        logger=build_logger(sink),
    )

    with pytest.raises(OSError, match="read-only output"):
        asyncio.run(pipeline.run(FILES))

    assert sink.events()[-1] == RunEvent.FAILED


def test_unreadable_catalog_is_rebuilt_from_remote_and_references() -> None:
    """A corrupt local catalog does not abort a run that pulled rows."""
    store = InMemoryCatalogStore({"a/b.ts": {"Hello": entry(en="Hello")}})
    store.fail_load = StorageErrorCode.SERIALIZATION_ERROR
    store.fail_load_times = 1
    client = FakeSheetClient(_remote_grid())
    sink = RecordingLogSink()

    report = asyncio.run(
        _pipeline(
            store,
            ScriptedInteraction(),
            extractor=HELLO_SCAN,
            client=client,
            logger=build_logger(sink),
        ).run(FILES)
    )

    assert report.remote_pull == RemotePullStatus.PULLED
    assert report.deletion_state == DeletionState.DONE
    assert store.catalog["a/b.ts"]["Hello"].translations["en"] == "Hello there"
    assert store.catalog["a/b.ts"]["Hello"].mark == 3
    assert CatalogEvent.UNREADABLE in sink.events()
    assert sink.events()[-1] == RunEvent.COMPLETED


def test_fatal_catalog_error_during_pull_propagates() -> None:
    """Permission failures on load still stop the run."""
    store = InMemoryCatalogStore()
    store.fail_load = StorageErrorCode.PERMISSION_DENIED
    store.fail_load_times = 1
    client = FakeSheetClient(_remote_grid())

    with pytest.raises(StorageError):
        asyncio.run(
            _pipeline(
                store, ScriptedInteraction(), extractor=HELLO_SCAN, client=client
            ).run(FILES)
        )

    assert store.saves == []
