"""CLI entry point - thin adapter over lingosync-core."""

from __future__ import annotations

import asyncio
import os
import tomllib
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import NamedTuple, TypeVar
from uuid import uuid4

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from lingosync_cli.interaction import AutoInteraction, ConsoleInteraction
from lingosync_core import (
    VERSION,
    DeletionError,
    DeletionWorkflow,
    MergeEngine,
    PathClassifier,
    RemoteSyncEngine,
    SyncLogger,
    SyncPipeline,
    UnusedKeyAnalyzer,
)
from lingosync_core.ports import (
    InteractionProtocol,
    PassthroughTranslator,
    RemoteSyncError,
    StorageError,
    TranslatorProtocol,
)
from lingosync_io import (
    FileSystemCatalogStore,
    FileSystemLogStore,
    FileSystemPreviewStore,
    GoogleSheetsClient,
    MarkerExtractor,
    ModuleFileEmitter,
    ServiceAccountTokenProvider,
    build_log_sink,
    discover_source_files,
)
from lingosync_llm import OpenAICompatibleTranslator
from lingosync_schemas.catalog import count_entries
from lingosync_schemas.config import SyncConfig, column_index
from lingosync_schemas.events import CommandEvent
from lingosync_schemas.exit_codes import ExitCode, resolve_exit_code
from lingosync_schemas.primitives import JsonValue, RunId, SelectionMode
from lingosync_schemas.redaction import Redactor
from lingosync_schemas.responses import ApiResponse, ErrorResponse, MetaInfo
from lingosync_schemas.results import (
    EmitResult,
    PullResult,
    SyncReport,
    UnusedKeyReport,
)
from lingosync_schemas.sync import PushResult

CONFIG_OPTION = typer.Option(
    Path("lingosync.toml"),
    "--config",
    "-c",
    help="Path to lingosync TOML config",
)
YES_OPTION = typer.Option(
    False, "--yes", "-y", help="Answer prompts without asking"
)
DELETE_UNUSED_OPTION = typer.Option(
    False,
    "--delete-unused",
    help="With --yes, delete every unused entry instead of keeping them",
)
NO_REMOTE_OPTION = typer.Option(
    False, "--no-remote", help="Skip the remote pull and push"
)
JSON_OPTION = typer.Option(
    False, "--json", help="Print the ApiResponse JSON envelope"
)

ResponseT = TypeVar("ResponseT")

app = typer.Typer(
    help="Translation catalog lifecycle and sheet sync",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Lingosync CLI."""


@app.command()
def version() -> None:
    """Display version information."""
    rprint(f"[bold]lingosync[/bold] v{VERSION}")


@app.command()
def sync(
    config_path: Path = CONFIG_OPTION,
    yes: bool = YES_OPTION,
    delete_unused: bool = DELETE_UNUSED_OPTION,
    no_remote: bool = NO_REMOTE_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Pull, scan, prune, emit module files and push in one run."""
    interaction = _build_interaction(yes=yes, delete_unused=delete_unused)
    response: ApiResponse[SyncReport] = _execute(
        "sync",
        config_path,
        {
            "yes": yes,
            "delete_unused": delete_unused,
            "no_remote": no_remote,
        },
        interaction=interaction,
        use_remote=not no_remote,
        action=_sync_async,
    )
    _finish(response, json_output=json_output)


@app.command()
def pull(
    config_path: Path = CONFIG_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Pull the remote sheet and merge it into the local catalog."""
    response: ApiResponse[PullResult] = _execute(
        "pull",
        config_path,
        {},
        interaction=AutoInteraction(),
        use_remote=True,
        action=_pull_async,
    )
    _finish(response, json_output=json_output)


@app.command()
def push(
    config_path: Path = CONFIG_OPTION,
    yes: bool = YES_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Push the local catalog to the remote sheet incrementally."""
    interaction = _build_interaction(yes=yes, delete_unused=False)
    response: ApiResponse[PushResult] = _execute(
        "push",
        config_path,
        {"yes": yes},
        interaction=interaction,
        use_remote=True,
        action=_push_async,
    )
    _finish(response, json_output=json_output)


@app.command()
def unused(
    config_path: Path = CONFIG_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Report unused and force-kept entries without changing anything."""
    response: ApiResponse[UnusedKeyReport] = _execute(
        "unused",
        config_path,
        {},
        interaction=AutoInteraction(),
        use_remote=False,
        action=_unused_async,
    )
    _finish(response, json_output=json_output)


@app.command()
def emit(
    config_path: Path = CONFIG_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Regenerate module files from the catalog."""
    response: ApiResponse[EmitResult] = _execute(
        "emit",
        config_path,
        {},
        interaction=AutoInteraction(),
        use_remote=False,
        action=_emit_async,
    )
    _finish(response, json_output=json_output)


class _ConfigError(Exception):
    """Raised when the CLI configuration is missing or unusable."""


class _Runtime(NamedTuple):
    config: SyncConfig
    config_dir: Path
    source_root: Path
    output_dir: Path
    logger: SyncLogger
    store: FileSystemCatalogStore
    analyzer: UnusedKeyAnalyzer
    emitter: ModuleFileEmitter
    pipeline: SyncPipeline
    remote: RemoteSyncEngine | None


def _execute(
    command: str,
    config_path: Path,
    args: dict[str, JsonValue],
    *,
    interaction: InteractionProtocol,
    use_remote: bool,
    action: Callable[[_Runtime], Awaitable[ResponseT]],
) -> ApiResponse[ResponseT]:
    try:
        runtime = _build_runtime(
            config_path,
            interaction=interaction,
            use_remote=use_remote,
            run_id=uuid4(),
        )
        args = {"config_path": str(config_path), **args}
        result = asyncio.run(_run_logged(runtime, command, args, action))
        return ApiResponse(
            data=result, error=None, meta=MetaInfo(timestamp=_now_timestamp())
        )
    except Exception as exc:
        return _error_response(_error_from_exception(exc))


async def _run_logged(
    runtime: _Runtime,
    command: str,
    args: dict[str, JsonValue],
    action: Callable[[_Runtime], Awaitable[ResponseT]],
) -> ResponseT:
    logger = runtime.logger
    await logger.info(
        CommandEvent.STARTED,
        f"Command {command} started",
        {"command": command, "args": args},
    )
    try:
        result = await action(runtime)
    except Exception as exc:
        await logger.error(
            CommandEvent.FAILED,
            f"Command {command} failed: {exc}",
            {"command": command, "error_type": type(exc).__name__},
        )
        raise
    await logger.info(
        CommandEvent.COMPLETED,
        f"Command {command} completed",
        {"command": command},
    )
    return result


async def _sync_async(runtime: _Runtime) -> SyncReport:
    files = await _discover_files(runtime)
    return await runtime.pipeline.run(files)


async def _pull_async(runtime: _Runtime) -> PullResult:
    _require_remote(runtime)
    return await runtime.pipeline.pull_remote()


async def _push_async(runtime: _Runtime) -> PushResult:
    _require_remote(runtime)
    result = await runtime.pipeline.push()
    if result is None:
        return PushResult(skipped=True)
    return result


async def _unused_async(runtime: _Runtime) -> UnusedKeyReport:
    files = await _discover_files(runtime)
    references = await runtime.pipeline.scan(files)
    catalog = await runtime.store.load_catalog()
    return await runtime.analyzer.analyze(catalog, references)


async def _emit_async(runtime: _Runtime) -> EmitResult:
    catalog = await runtime.store.load_catalog()
    files = await runtime.emitter.emit(catalog)
    return EmitResult(files=files)


async def _discover_files(runtime: _Runtime) -> list[Path]:
    scan = runtime.config.scan
    files = await asyncio.to_thread(
        discover_source_files, runtime.source_root, scan.include, scan.ignore
    )
    # Emitted module files live under the output dir and are never scanned.
    return [path for path in files if not path.is_relative_to(runtime.output_dir)]


def _require_remote(runtime: _Runtime) -> None:
    if runtime.remote is None:
        raise _ConfigError("No [remote] section configured")


def _build_interaction(*, yes: bool, delete_unused: bool) -> InteractionProtocol:
    if not yes:
        return ConsoleInteraction()
    return AutoInteraction(
        selection_mode=SelectionMode.ALL if delete_unused else SelectionMode.SKIP,
        auto_confirm_delete=delete_unused,
        confirm_remote_sync=True,
    )


def _build_runtime(
    config_path: Path,
    *,
    interaction: InteractionProtocol,
    use_remote: bool,
    run_id: RunId,
) -> _Runtime:
    config = _load_sync_config(config_path)
    config_dir = config_path.parent.resolve()
    source_root = _resolve_path(Path(config.project.root_dir), config_dir)
    output_dir = _resolve_path(Path(config.project.output_dir), config_dir)
    logs_dir = _resolve_path(Path(config.logging.logs_dir), config_dir)
    languages = config.project.languages

    api_key = _translator_api_key(config)
    redactor = Redactor(literal_values=[api_key] if api_key else [])
    log_sink = build_log_sink(
        config.logging, FileSystemLogStore(str(logs_dir)), redactor=redactor
    )
    logger = SyncLogger(run_id=run_id, log_sink=log_sink)

    store = FileSystemCatalogStore(
        str(output_dir), config.catalog.record_file, languages
    )
    classifier = PathClassifier(
        project_root=config_dir,
        root_dir=config.project.root_dir,
        source_extensions=config.scan.source_extensions,
        module_extension=config.scan.module_extension,
    )
    analyzer = UnusedKeyAnalyzer(
        classifier=classifier,
        logger=logger,
        expiration_days=config.unused.expiration_days,
        force_keep=config.unused.force_keep,
    )
    merge_engine = MergeEngine(
        languages=languages,
        logger=logger,
        source_language=config.project.source_language,
        translator=_build_translator(config, api_key),
        migration_threshold=config.merge.migration_threshold,
        migration_policy=config.merge.migration_policy,
    )
    workflow = DeletionWorkflow(
        store=store,
        preview_store=FileSystemPreviewStore(str(output_dir), languages),
        classifier=classifier,
        analyzer=analyzer,
        merge_engine=merge_engine,
        interaction=interaction,
        logger=logger,
        failure_policy=config.merge.on_merge_failure,
    )
    remote = _build_remote(config, config_dir, logger) if use_remote else None
    emitter = ModuleFileEmitter(
        str(output_dir), languages, config.catalog.module_format
    )
    pipeline = SyncPipeline(
        store=store,
        merge_engine=merge_engine,
        workflow=workflow,
        extractor=MarkerExtractor(
            start_marker=config.scan.start_marker,
            end_marker=config.scan.end_marker,
        ),
        emitter=emitter,
        interaction=interaction,
        logger=logger,
        remote=remote,
    )
    return _Runtime(
        config=config,
        config_dir=config_dir,
        source_root=source_root,
        output_dir=output_dir,
        logger=logger,
        store=store,
        analyzer=analyzer,
        emitter=emitter,
        pipeline=pipeline,
        remote=remote,
    )


def _translator_api_key(config: SyncConfig) -> str | None:
    if config.translator is None:
        return None
    return os.getenv(config.translator.api_key_env) or None


def _build_translator(
    config: SyncConfig, api_key: str | None
) -> TranslatorProtocol:
    translator = config.translator
    if translator is None or api_key is None:
        return PassthroughTranslator()
    return OpenAICompatibleTranslator(
        model_id=translator.model_id,
        base_url=translator.base_url,
        api_key=api_key,
        timeout_s=translator.timeout_s,
    )


def _build_remote(
    config: SyncConfig, config_dir: Path, logger: SyncLogger
) -> RemoteSyncEngine | None:
    remote = config.remote
    if remote is None:
        return None
    key_file = remote.key_file or os.getenv(remote.key_file_env)
    if not key_file:
        raise _ConfigError(
            "Service account key file not configured: set remote.key_file "
            f"or {remote.key_file_env}"
        )
    key_path = Path(key_file)
    if not key_path.is_absolute():
        key_path = config_dir / key_path
    client = GoogleSheetsClient(
        spreadsheet_id=remote.spreadsheet_id,
        sheet_name=remote.sheet_name,
        token_provider=ServiceAccountTokenProvider(str(key_path)),
        read_range=remote.read_range,
        timeout_s=remote.timeout_s,
    )
    return RemoteSyncEngine(
        client=client,
        languages=config.project.languages,
        logger=logger,
        lock_column=column_index(remote.lock_column),
        retry=remote.retry,
        lock_ttl_ms=int(remote.lock_ttl_s * 1000),
    )


def _load_sync_config(config_path: Path) -> SyncConfig:
    _load_dotenv(config_path)
    if not config_path.exists():
        raise _ConfigError(f"Config not found: {config_path}")
    try:
        with open(config_path, "rb") as handle:
            payload: dict[str, JsonValue] = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise _ConfigError(f"Failed to read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise _ConfigError("Config root must be a TOML table")
    return SyncConfig.model_validate(payload, strict=False)


def _load_dotenv(config_path: Path) -> None:
    env_path = config_path.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _resolve_path(path: Path, base_dir: Path) -> Path:
    base_dir = base_dir.resolve()
    resolved = path if path.is_absolute() else base_dir / path
    resolved = resolved.resolve()
    try:
        resolved.relative_to(base_dir)
    except ValueError as exc:
        raise _ConfigError(f"Path must stay within project: {resolved}") from exc
    return resolved


def _now_timestamp() -> str:
    timestamp = datetime.now(UTC).isoformat()
    return timestamp.replace("+00:00", "Z")


def _finish(response: ApiResponse[ResponseT], *, json_output: bool) -> None:
    """Print a command response and exit with its mapped code.

    Raises:
        typer.Exit: When the response carries an error.
    """
    if json_output:
        print(response.model_dump_json())
    elif response.error is not None:
        _render_error(response.error)
    else:
        _render_result(response.data, Console())
    if response.error is not None:
        code = response.error.exit_code or ExitCode.RUNTIME_ERROR
        raise typer.Exit(code=int(code))


def _render_result(data: object, console: Console) -> None:
    if isinstance(data, SyncReport):
        _render_sync_report(data, console)
    elif isinstance(data, PullResult):
        console.print(
            f"Remote pull {data.status}: {count_entries(data.catalog)} entries"
            f" ({data.skipped_rows} rows skipped)"
        )
    elif isinstance(data, PushResult):
        _render_push_result(data, console)
    elif isinstance(data, UnusedKeyReport):
        _render_unused_report(data, console)
    elif isinstance(data, EmitResult):
        console.print(f"{len(data.files)} module files written")
        for path in data.files:
            console.print(f"  {path}")


def _render_sync_report(report: SyncReport, console: Console) -> None:
    table = Table(title="Sync summary", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run", str(report.run_id))
    table.add_row(
        "Remote pull", f"{report.remote_pull} ({report.remote_entries} entries)"
    )
    table.add_row("References", str(report.references))
    table.add_row("Catalog", f"{report.entries} entries in {report.modules} modules")
    table.add_row("Unused", f"{report.unused} ({report.force_kept} force-kept)")
    table.add_row("Deletion", f"{report.deletion_state} ({report.deleted} deleted)")
    table.add_row("Module files", str(len(report.emitted_files)))
    table.add_row("Push", _describe_push(report.push))
    console.print(table)


def _render_push_result(result: PushResult, console: Console) -> None:
    console.print(f"Push: {_describe_push(result)}")


def _describe_push(result: PushResult | None) -> str:
    if result is None:
        return "not pushed"
    if result.skipped:
        return "nothing to push"
    return (
        f"{result.added} added, {result.modified} modified, "
        f"{result.deleted} deleted in {result.attempts} attempt(s)"
    )


def _render_unused_report(report: UnusedKeyReport, console: Console) -> None:
    console.print(
        f"{report.used_count} of {report.total_count} entries referenced, "
        f"{len(report.unused)} unused, {len(report.force_kept)} force-kept"
    )
    if report.unused:
        table = Table(title="Unused entries")
        table.add_column("Module")
        table.add_column("Key")
        for parts in report.unused:
            table.add_row(parts.module_path, parts.key)
        console.print(table)
    for compound_key in report.force_kept_keys():
        console.print(f"[dim]kept[/dim] {compound_key}")


def _render_error(error: ErrorResponse) -> None:
    rprint(f"[red]Error:[/red] {error.message}")
    for suggestion in error.suggestions:
        rprint(f"  [yellow]-[/yellow] {suggestion}")


def _error_response(error: ErrorResponse) -> ApiResponse[ResponseT]:
    return ApiResponse(
        data=None,
        error=error,
        meta=MetaInfo(timestamp=_now_timestamp()),
    )


def _error_from_exception(exc: Exception) -> ErrorResponse:
    if isinstance(exc, StorageError):
        return _with_exit_code(exc.info.to_error_response(), domain="storage")
    if isinstance(exc, DeletionError):
        return _with_exit_code(exc.info.to_error_response(), domain="deletion")
    if isinstance(exc, RemoteSyncError):
        return _with_exit_code(exc.info.to_error_response(), domain="remote")
    if isinstance(exc, ValidationError):
        message = "Config validation failed"
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = first.get("loc", [])
            label = ".".join(str(part) for part in loc) if loc else ""
            detail = first.get("msg", "")
            if label and detail:
                message = f"Config validation failed: {label} - {detail}"
            elif detail:
                message = f"Config validation failed: {detail}"
        return _with_exit_code(
            ErrorResponse(code="validation_error", message=message, details=None)
        )
    if isinstance(exc, _ConfigError):
        return _with_exit_code(
            ErrorResponse(code="config_error", message=str(exc), details=None)
        )
    if isinstance(exc, ValueError):
        return _with_exit_code(
            ErrorResponse(code="validation_error", message=str(exc), details=None)
        )
    return _with_exit_code(
        ErrorResponse(
            code="runtime_error",
            message=str(exc) or type(exc).__name__,
            details=None,
        )
    )


def _with_exit_code(
    error: ErrorResponse, *, domain: str | None = None
) -> ErrorResponse:
    exit_code = resolve_exit_code(error.code, domain=domain)
    return error.model_copy(update={"exit_code": int(exit_code)})


if __name__ == "__main__":
    app()
