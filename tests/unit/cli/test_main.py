"""Unit tests for lingosync-cli."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from lingosync_cli.main import app
from lingosync_core import VERSION
from lingosync_schemas.exit_codes import ExitCode
from lingosync_schemas.logs import LogEntry

runner = CliRunner()

BASE_CONFIG = """\
[project]
languages = ["en", "zh"]

[logging]
sinks = [{ type = "file" }]
"""


def _write_project(tmp_path: Path, config: str = BASE_CONFIG) -> Path:
    config_path = tmp_path / "lingosync.toml"
    config_path.write_text(config, encoding="utf-8")
    source = tmp_path / "src" / "components" / "Header.tsx"
    source.parent.mkdir(parents=True)
    source.write_text(
        "export const Header = () => t('Hello') + t('Bye');\n", encoding="utf-8"
    )
    return config_path


def _write_catalog(tmp_path: Path, payload: dict[str, object]) -> Path:
    catalog_path = tmp_path / "src" / "translate" / "i18n-complete-record.json"
    catalog_path.parent.mkdir(parents=True, exist_ok=True)
    catalog_path.write_text(json.dumps(payload), encoding="utf-8")
    return catalog_path


def _read_log_entries(logs_dir: Path) -> list[LogEntry]:
    entries: list[LogEntry] = []
    for path in sorted(logs_dir.glob("*.jsonl")):
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if line.strip():
                    entries.append(LogEntry.model_validate_json(line))
    return entries


ORPHAN_CATALOG = {"gone.ts": {"Old": {"en": "Old", "zh": "旧", "mark": 0}}}


def test_version_command() -> None:
    """Version prints the package version."""
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert str(VERSION) in result.stdout


def test_sync_builds_catalog_and_module_files(tmp_path: Path) -> None:
    """A first sync creates the catalog and one module file per source file."""
    config_path = _write_project(tmp_path)

    result = runner.invoke(
        app, ["sync", "--config", str(config_path), "--yes", "--no-remote", "--json"]
    )

    assert result.exit_code == 0, result.stdout
    response = json.loads(result.stdout)
    assert response["error"] is None
    data = response["data"]
    assert data["remote_pull"] == "skipped"
    assert data["references"] == 2
    assert data["entries"] == 2
    assert data["deletion_state"] == "done"
    assert data["push"] is None

    translate_dir = tmp_path / "src" / "translate"
    catalog = json.loads(
        (translate_dir / "i18n-complete-record.json").read_text(encoding="utf-8")
    )
    hello = catalog["components/Header.ts"]["Hello"]
    assert hello["en"] == "Hello"
    assert hello["zh"] == "Hello"
    assert hello["mark"] == 0
    assert isinstance(hello["lastUsed"], int)
    module_file = translate_dir / "components" / "Header.ts"
    assert module_file.exists()
    assert data["emitted_files"] == [str(module_file.resolve())]

    events = [entry.event for entry in _read_log_entries(tmp_path / ".lingosync" / "logs")]
    assert events[0] == "command_started"
    assert "run_started" in events
    assert "run_completed" in events
    assert events[-1] == "command_completed"


def test_sync_twice_is_stable(tmp_path: Path) -> None:
    """Emitted module files are not scanned on the next run."""
    config_path = _write_project(tmp_path)
    args = ["sync", "--config", str(config_path), "--yes", "--no-remote", "--json"]

    runner.invoke(app, args)
    result = runner.invoke(app, args)

    assert result.exit_code == 0
    assert json.loads(result.stdout)["data"]["references"] == 2


def test_sync_with_yes_keeps_unused_entries(tmp_path: Path) -> None:
    """Non-interactive runs never delete unless asked to."""
    config_path = _write_project(tmp_path)
    catalog_path = _write_catalog(tmp_path, ORPHAN_CATALOG)

    result = runner.invoke(
        app, ["sync", "--config", str(config_path), "--yes", "--no-remote", "--json"]
    )

    assert result.exit_code == 0
    data = json.loads(result.stdout)["data"]
    assert data["unused"] == 1
    assert data["deletion_state"] == "preserved_done"
    catalog = json.loads(catalog_path.read_text(encoding="utf-8"))
    assert catalog["gone.ts"]["Old"]["zh"] == "旧"


def test_sync_with_delete_unused_prunes(tmp_path: Path) -> None:
    """--delete-unused with --yes deletes every unused entry."""
    config_path = _write_project(tmp_path)
    catalog_path = _write_catalog(tmp_path, ORPHAN_CATALOG)

    result = runner.invoke(
        app,
        [
            "sync",
            "--config",
            str(config_path),
            "--yes",
            "--delete-unused",
            "--no-remote",
            "--json",
        ],
    )

    assert result.exit_code == 0
    data = json.loads(result.stdout)["data"]
    assert data["deletion_state"] == "deleted"
    assert data["deleted"] == 1
    catalog = json.loads(catalog_path.read_text(encoding="utf-8"))
    assert "gone.ts" not in catalog
    assert not list(catalog_path.parent.glob("delete-preview-*.json"))


def test_unused_reports_without_writing(tmp_path: Path) -> None:
    """The unused command is read-only."""
    config_path = _write_project(tmp_path)
    catalog_path = _write_catalog(tmp_path, ORPHAN_CATALOG)
    before = catalog_path.read_text(encoding="utf-8")

    result = runner.invoke(app, ["unused", "--config", str(config_path), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)["data"]
    assert data["unused"] == [{"module_path": "gone.ts", "key": "Old"}]
    assert catalog_path.read_text(encoding="utf-8") == before


def test_emit_writes_module_files(tmp_path: Path) -> None:
    """Emit regenerates module files from the stored catalog."""
    config_path = _write_project(tmp_path)
    _write_catalog(tmp_path, ORPHAN_CATALOG)

    result = runner.invoke(app, ["emit", "--config", str(config_path), "--json"])

    assert result.exit_code == 0
    files = json.loads(result.stdout)["data"]["files"]
    assert [Path(path).name for path in files] == ["gone.ts"]
    assert "旧" in Path(files[0]).read_text(encoding="utf-8")


def test_missing_config_is_config_error(tmp_path: Path) -> None:
    """A missing config file exits with the config error code."""
    result = runner.invoke(
        app, ["sync", "--config", str(tmp_path / "nope.toml"), "--yes", "--json"]
    )

    assert result.exit_code == ExitCode.CONFIG_ERROR
    response = json.loads(result.stdout)
    assert response["data"] is None
    assert response["error"]["code"] == "config_error"
    assert response["error"]["exit_code"] == 10


def test_invalid_config_is_validation_error(tmp_path: Path) -> None:
    """Schema violations exit with the validation error code."""
    config_path = _write_project(
        tmp_path, '[project]\nlanguages = ["en", "en"]\n'
    )

    result = runner.invoke(app, ["emit", "--config", str(config_path), "--json"])

    assert result.exit_code == ExitCode.VALIDATION_ERROR
    error = json.loads(result.stdout)["error"]
    assert error["code"] == "validation_error"
    assert "languages must not contain duplicates" in error["message"]


def test_invalid_toml_is_config_error(tmp_path: Path) -> None:
    """Unparsable TOML is a config error."""
    config_path = _write_project(tmp_path, "[project\n")

    result = runner.invoke(app, ["emit", "--config", str(config_path), "--json"])

    assert result.exit_code == ExitCode.CONFIG_ERROR


def test_output_dir_outside_project_is_rejected(tmp_path: Path) -> None:
    """Configured paths must stay inside the project directory."""
    config_path = _write_project(
        tmp_path,
        BASE_CONFIG.replace(
            "[project]\n", '[project]\noutput_dir = "../elsewhere"\n'
        ),
    )

    result = runner.invoke(app, ["emit", "--config", str(config_path), "--json"])

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "within project" in json.loads(result.stdout)["error"]["message"]


def test_pull_without_remote_is_config_error(tmp_path: Path) -> None:
    """Remote commands need a [remote] section."""
    config_path = _write_project(tmp_path)

    result = runner.invoke(app, ["pull", "--config", str(config_path), "--json"])

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "[remote]" in json.loads(result.stdout)["error"]["message"]


def test_remote_without_key_file_is_config_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A remote section needs a service account key."""
    monkeypatch.delenv("LINGOSYNC_SHEETS_KEY_FILE", raising=False)
    config_path = _write_project(
        tmp_path,
        BASE_CONFIG
        + '\n[remote]\nspreadsheet_id = "sheet-1"\nsheet_name = "translations"\n',
    )

    result = runner.invoke(
        app, ["push", "--config", str(config_path), "--yes", "--json"]
    )

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "LINGOSYNC_SHEETS_KEY_FILE" in json.loads(result.stdout)["error"]["message"]


def test_error_without_json_prints_message(tmp_path: Path) -> None:
    """Errors render as text with the same exit code."""
    result = runner.invoke(app, ["emit", "--config", str(tmp_path / "nope.toml")])

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "Config not found" in result.output
