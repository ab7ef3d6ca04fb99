"""Configuration schemas for lingosync projects."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.primitives import (
    ColumnLetter,
    LanguageCode,
    LogSinkType,
    MergeFailurePolicy,
    MigrationPolicy,
    ModuleFormat,
)

DEFAULT_RECORD_FILE = "i18n-complete-record.json"
DEFAULT_READ_RANGE = "A1:Z10000"


def column_index(letter: str) -> int:
    """Convert a column letter (``A``, ``Z``, ``AA``) to a 0-based index.

    Returns:
        int: 0-based column index.
    """
    index = 0
    for char in letter:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_letter(index: int) -> str:
    """Convert a 0-based column index to its column letter.

    Returns:
        str: Column letter.
    """
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class ProjectConfig(BaseSchema):
    """Source tree and language layout."""

    root_dir: str = Field("src", min_length=1, description="Source root directory")
    output_dir: str = Field(
        "src/translate", min_length=1, description="Catalog and module file output"
    )
    languages: list[LanguageCode] = Field(
        ..., min_length=1, description="Configured languages in column order"
    )
    source_language: LanguageCode = Field(
        "en", description="Language whose value defaults to the key text"
    )

    @model_validator(mode="after")
    def validate_languages(self) -> ProjectConfig:
        """Ensure languages are unique and include the source language.

        Returns:
            ProjectConfig: Validated project configuration.

        Raises:
            ValueError: If languages repeat or the source language is missing.
        """
        if len(set(self.languages)) != len(self.languages):
            raise ValueError("languages must not contain duplicates")
        if self.source_language not in self.languages:
            raise ValueError("source_language must be one of languages")
        return self


class ScanConfig(BaseSchema):
    """Settings for the marker-based extractor."""

    include: list[str] = Field(
        default_factory=lambda: ["**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx"],
        description="Glob patterns (relative to root_dir) to scan",
    )
    ignore: list[str] = Field(
        default_factory=lambda: ["**/node_modules/**"],
        description="Glob patterns (relative to root_dir) to skip",
    )
    start_marker: str = Field("t(", min_length=1, description="Call start marker")
    end_marker: str = Field(")", min_length=1, description="Call end marker")
    source_extensions: list[str] = Field(
        default_factory=lambda: [".ts", ".tsx", ".js", ".jsx"],
        description="Extensions rewritten to the module extension",
    )
    module_extension: str = Field(
        ".ts", pattern=r"^\.[A-Za-z0-9]+$", description="Canonical module extension"
    )


class CatalogConfig(BaseSchema):
    """Catalog file and module file output settings."""

    record_file: str = Field(
        DEFAULT_RECORD_FILE, min_length=1, description="Catalog file name"
    )
    module_format: ModuleFormat = Field(
        ModuleFormat.TS, description="Per-module file format (ts|json)"
    )


class MergeConfig(BaseSchema):
    """Merge and migration behavior."""

    migration_threshold: float = Field(
        0.8, gt=0, le=1, description="Key overlap ratio that marks a rename"
    )
    migration_policy: MigrationPolicy = Field(
        MigrationPolicy.FIRST_MATCH, description="Rename candidate selection"
    )
    on_merge_failure: MergeFailurePolicy = Field(
        MergeFailurePolicy.REGENERATE,
        description="Regenerate from references or fail loudly",
    )

    @field_validator("migration_policy", mode="before")
    @classmethod
    def _coerce_policy(cls, value: object) -> MigrationPolicy:
        if isinstance(value, str) and not isinstance(value, MigrationPolicy):
            return MigrationPolicy(value)
        return value  # type: ignore[return-value]

    @field_validator("on_merge_failure", mode="before")
    @classmethod
    def _coerce_failure_policy(cls, value: object) -> MergeFailurePolicy:
        if isinstance(value, str) and not isinstance(value, MergeFailurePolicy):
            return MergeFailurePolicy(value)
        return value  # type: ignore[return-value]


class UnusedConfig(BaseSchema):
    """Unused entry detection settings."""

    expiration_days: int | None = Field(
        None, ge=1, description="Grace period for unreferenced entries"
    )
    force_keep: dict[str, list[str]] = Field(
        default_factory=dict, description="Module path to keys never pruned"
    )


class RetryConfig(BaseSchema):
    """Retry policy for remote apply attempts."""

    max_attempts: int = Field(3, ge=1, description="Maximum apply attempts")
    base_delay_s: float = Field(1.0, ge=0, description="Initial backoff in seconds")
    max_delay_s: float = Field(
        30.0, ge=0, description="Maximum backoff delay in seconds"
    )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the given 1-based attempt.

        Returns:
            float: Delay in seconds.
        """
        return min(self.base_delay_s * (2 ** (attempt - 1)), self.max_delay_s)


class RemoteConfig(BaseSchema):
    """Google Sheets remote store settings."""

    spreadsheet_id: str = Field(..., min_length=1, description="Spreadsheet id")
    sheet_name: str = Field(..., min_length=1, description="Sheet (tab) title")
    key_file: str | None = Field(
        None, description="Service account key file path"
    )
    key_file_env: str = Field(
        "LINGOSYNC_SHEETS_KEY_FILE",
        min_length=1,
        description="Env var holding the key file path when key_file is unset",
    )
    read_range: str = Field(
        DEFAULT_READ_RANGE,
        pattern=r"^[A-Z]{1,3}\d+:[A-Z]{1,3}\d+$",
        description="A1 range read on pull",
    )
    lock_column: ColumnLetter = Field(
        "Z", description="Reserved column holding advisory lock tokens"
    )
    lock_ttl_s: float = Field(
        600.0, gt=0, description="Age after which a foreign lock token is stale"
    )
    timeout_s: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    retry: RetryConfig = Field(
        default_factory=RetryConfig, description="Apply retry policy"
    )

    @property
    def last_read_row(self) -> int:
        """Last 1-based row covered by ``read_range``."""
        end = self.read_range.split(":")[1]
        return int(end.lstrip("ABCDEFGHIJKLMNOPQRSTUVWXYZ"))

    @property
    def last_read_column(self) -> int:
        """Last 0-based column covered by ``read_range``."""
        end = self.read_range.split(":")[1]
        return column_index(end.rstrip("0123456789"))


class TranslatorConfig(BaseSchema):
    """OpenAI-compatible translation endpoint."""

    base_url: str = Field(..., min_length=1, description="Endpoint base URL")
    model_id: str = Field(..., min_length=1, description="Model identifier")
    api_key_env: str = Field(
        "LINGOSYNC_TRANSLATOR_API_KEY",
        min_length=1,
        description="Env var holding the API key",
    )
    timeout_s: float = Field(60.0, gt=0, description="Request timeout in seconds")


class LogSinkConfig(BaseSchema):
    """Configuration for a single log sink."""

    type: LogSinkType = Field(..., description="Log sink type (console|file|noop)")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LogSinkType:
        if isinstance(value, LogSinkType):
            return value
        if isinstance(value, str):
            return LogSinkType(value)
        return value  # type: ignore[return-value]


class LoggingConfig(BaseSchema):
    """Logging configuration for CLI commands."""

    logs_dir: str = Field(
        ".lingosync/logs", min_length=1, description="Directory for JSONL logs"
    )
    sinks: list[LogSinkConfig] = Field(
        default_factory=lambda: [LogSinkConfig(type=LogSinkType.CONSOLE)],
        min_length=1,
        description="Log sinks to enable",
    )

    @model_validator(mode="after")
    def validate_sink_types(self) -> LoggingConfig:
        """Ensure log sink types are unique.

        Returns:
            LoggingConfig: Validated logging configuration.

        Raises:
            ValueError: If sink types are duplicated.
        """
        sink_types = [sink.type for sink in self.sinks]
        if len(set(sink_types)) != len(sink_types):
            raise ValueError("log sinks must not contain duplicates")
        return self


class SyncConfig(BaseSchema):
    """Top-level lingosync configuration."""

    project: ProjectConfig = Field(..., description="Project layout")
    scan: ScanConfig = Field(default_factory=ScanConfig, description="Scanning")
    catalog: CatalogConfig = Field(
        default_factory=CatalogConfig, description="Catalog output"
    )
    merge: MergeConfig = Field(default_factory=MergeConfig, description="Merging")
    unused: UnusedConfig = Field(
        default_factory=UnusedConfig, description="Unused detection"
    )
    remote: RemoteConfig | None = Field(None, description="Remote sheet, optional")
    translator: TranslatorConfig | None = Field(
        None, description="Translation endpoint, optional"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging"
    )

    @model_validator(mode="after")
    def validate_lock_column(self) -> SyncConfig:
        """Ensure the lock column sits to the right of the mark column.

        Returns:
            SyncConfig: Validated configuration.

        Raises:
            ValueError: If the lock column overlaps data columns.
        """
        if self.remote is None:
            return self
        mark_index = len(self.project.languages) + 1
        lock_index = column_index(self.remote.lock_column)
        if lock_index <= mark_index:
            raise ValueError(
                "remote.lock_column must be to the right of the mark column"
            )
        if lock_index > self.remote.last_read_column:
            raise ValueError("remote.lock_column must be inside remote.read_range")
        return self
