"""Unit tests for per-module translation file emission."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from lingosync_core.ports.storage import StorageError, StorageErrorCode
from lingosync_io.export.module_files import ModuleFileEmitter
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.primitives import ModuleFormat
from tests.helpers.fakes import entry

CATALOG: Catalog = {
    "components/Header.ts": {
        "Hello": entry(en="Hello", zh="你好"),
        "Bye": entry(en="Bye"),
    },
    "common": {"Ok": entry(en="Ok", zh="好")},
}


def test_emit_ts_modules(tmp_path: Path) -> None:
    """TypeScript modules export translations grouped by language."""
    emitter = ModuleFileEmitter(str(tmp_path), ["en", "zh"])

    written = asyncio.run(emitter.emit(CATALOG))

    assert written == [
        str(tmp_path / "components" / "Header.ts"),
        str(tmp_path / "common.ts"),
    ]
    contents = (tmp_path / "components" / "Header.ts").read_text(encoding="utf-8")
    assert contents.startswith("const translations = {")
    assert contents.endswith("export default translations;\n")
    assert '"zh": {\n    "Hello": "你好",\n    "Bye": "Bye"' in contents


def test_emit_json_modules(tmp_path: Path) -> None:
    """JSON output swaps the suffix and falls back to the key text."""
    emitter = ModuleFileEmitter(str(tmp_path), ["en", "zh"], ModuleFormat.JSON)

    asyncio.run(emitter.emit(CATALOG))

    payload = json.loads(
        (tmp_path / "components" / "Header.json").read_text(encoding="utf-8")
    )
    assert payload == {
        "en": {"Hello": "Hello", "Bye": "Bye"},
        "zh": {"Hello": "你好", "Bye": "Bye"},
    }
    assert (tmp_path / "common.json").exists()


@pytest.mark.parametrize("module_path", ["../escape.ts", "/etc/passwd"])
def test_module_paths_cannot_escape_output_dir(
    tmp_path: Path, module_path: str
) -> None:
    """Module paths that leave the output directory are rejected."""
    emitter = ModuleFileEmitter(str(tmp_path / "out"), ["en"])

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(emitter.emit({module_path: {"Hi": entry(en="Hi")}}))

    assert exc_info.value.info.code == StorageErrorCode.VALIDATION_ERROR
    assert not (tmp_path / "escape.ts").exists()
