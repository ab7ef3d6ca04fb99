"""Unit tests for filesystem storage adapters."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from uuid import UUID

import pytest

from lingosync_core.ports.storage import StorageError, StorageErrorCode
from lingosync_io.storage.filesystem import (
    FileSystemCatalogStore,
    FileSystemLogStore,
    FileSystemPreviewStore,
)
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.logs import LogEntry
from lingosync_schemas.primitives import LogLevel
from tests.helpers.fakes import FIXED_TIMESTAMP, RUN_ID, entry

LANGUAGES = ["en", "zh"]


def _store(tmp_path: Path) -> FileSystemCatalogStore:
    return FileSystemCatalogStore(str(tmp_path / "out"), "i18n.json", LANGUAGES)


def test_missing_catalog_loads_empty(tmp_path: Path) -> None:
    """A project without a catalog file starts from an empty catalog."""
    assert asyncio.run(_store(tmp_path).load_catalog()) == {}


def test_blank_catalog_file_loads_empty(tmp_path: Path) -> None:
    """A whitespace-only file is treated as empty."""
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("  \n", encoding="utf-8")

    assert asyncio.run(store.load_catalog()) == {}


def test_save_writes_canonical_json(tmp_path: Path) -> None:
    """Saved entries order languages first and mark last."""
    store = _store(tmp_path)
    catalog: Catalog = {
        "a.ts": {"Hi": entry(zh="嗨", en="Hi", mark=2, last_used=1700000000000)}
    }

    asyncio.run(store.save_catalog(catalog))

    raw = store.path.read_text(encoding="utf-8")
    payload = json.loads(raw)
    assert list(payload["a.ts"]["Hi"]) == ["en", "zh", "lastUsed", "mark"]
    assert "嗨" in raw
    assert raw.endswith("\n")
    assert not list(store.path.parent.glob(".*.tmp"))


def test_save_then_load_preserves_extras(tmp_path: Path) -> None:
    """Unknown fields survive a save and load cycle."""
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps({"a.ts": {"Hi": {"en": "Hi", "_lastUsed": 5, "note": {"x": 1}}}}),
        encoding="utf-8",
    )

    loaded = asyncio.run(store.load_catalog())
    asyncio.run(store.save_catalog(loaded))
    reloaded = json.loads(store.path.read_text(encoding="utf-8"))

    assert loaded["a.ts"]["Hi"].last_used == 5
    assert reloaded["a.ts"]["Hi"] == {
        "en": "Hi",
        "note": {"x": 1},
        "lastUsed": 5,
        "mark": 0,
    }


def test_corrupt_catalog_is_serialization_error(tmp_path: Path) -> None:
    """Invalid JSON is reported as a recoverable serialization error."""
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(store.load_catalog())

    assert exc_info.value.info.code == StorageErrorCode.SERIALIZATION_ERROR
    assert not exc_info.value.is_fatal


def test_wrong_shape_is_validation_error(tmp_path: Path) -> None:
    """A JSON document that is not module -> key -> entry is rejected."""
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"a.ts": ["Hi"]}), encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(store.load_catalog())

    assert exc_info.value.info.code == StorageErrorCode.VALIDATION_ERROR


def test_unwritable_output_dir_is_fatal(tmp_path: Path) -> None:
    """An output path blocked by a regular file cannot be initialized."""
    blocker = tmp_path / "out"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(_store(tmp_path).save_catalog({"a.ts": {"Hi": entry(en="Hi")}}))

    assert exc_info.value.info.code == StorageErrorCode.INITIALIZATION_FAILED
    assert exc_info.value.is_fatal


def test_preview_write_read_remove(tmp_path: Path) -> None:
    """Previews are timestamped side files that can be read back and removed."""
    previews = FileSystemPreviewStore(
        str(tmp_path), LANGUAGES, clock=lambda: "2026-03-01T12:00:00.5Z"
    )
    preview: Catalog = {"b.ts": {"Orphan": entry(en="Orphan", zh="孤")}}

    path = asyncio.run(previews.write_preview(preview))
    loaded = asyncio.run(previews.read_preview(path))
    asyncio.run(previews.remove_preview(path))

    assert Path(path).name == "delete-preview-2026-03-01T12-00-00-5Z.json"
    assert loaded["b.ts"]["Orphan"].translations == {"en": "Orphan", "zh": "孤"}
    assert not Path(path).exists()
    asyncio.run(previews.remove_preview(path))


def test_missing_preview_is_not_found(tmp_path: Path) -> None:
    """Reading a vanished preview fails with not_found."""
    previews = FileSystemPreviewStore(str(tmp_path), LANGUAGES)

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(previews.read_preview(str(tmp_path / "gone.json")))

    assert exc_info.value.info.code == StorageErrorCode.NOT_FOUND


def test_log_store_appends_jsonl_per_run(tmp_path: Path) -> None:
    """Each run gets its own JSONL file."""
    store = FileSystemLogStore(str(tmp_path / "logs"))
    other_run = UUID("0192f1a8-7c1e-4f3a-9b1d-2f6a7c8e9d02")
    for run_id, message in [(RUN_ID, "one"), (RUN_ID, "two"), (other_run, "three")]:
        asyncio.run(
            store.append_log(
                LogEntry(
                    timestamp=FIXED_TIMESTAMP,
                    level=LogLevel.INFO,
                    event="run_started",
                    run_id=run_id,
                    message=message,
                )
            )
        )

    lines = Path(store.log_path(RUN_ID)).read_text(encoding="utf-8").splitlines()

    assert [json.loads(line)["message"] for line in lines] == ["one", "two"]
    assert json.loads(lines[0])["data"] is None
    assert Path(store.log_path(other_run)).exists()
