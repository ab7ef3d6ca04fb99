"""Primitive types and enums shared across lingosync schemas."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import Field

ISO_8601_PATTERN = (
    r"^\d{4}-\d{2}-\d{2}T"
    r"\d{2}:\d{2}:\d{2}"
    r"(?:\.\d+)?"
    r"(?:Z|[+-]\d{2}:\d{2})$"
)
LANGUAGE_CODE_PATTERN = r"^[a-z]{2,3}(?:-[A-Za-z0-9]{2,8})*$"
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"
COLUMN_LETTER_PATTERN = r"^[A-Z]{1,3}$"

COMMON_MODULE = "common"
MARK_FIELD = "mark"
LAST_USED_FIELD = "lastUsed"
LEGACY_LAST_USED_FIELD = "_lastUsed"
KEY_HEADER = "key"

type RunId = UUID
type Timestamp = Annotated[str, Field(pattern=ISO_8601_PATTERN)]
type LanguageCode = Annotated[str, Field(pattern=LANGUAGE_CODE_PATTERN)]
type EventName = Annotated[str, Field(pattern=EVENT_NAME_PATTERN)]
type ColumnLetter = Annotated[str, Field(pattern=COLUMN_LETTER_PATTERN)]
type ModulePath = Annotated[str, Field(min_length=1)]
type CompoundKey = Annotated[str, Field(min_length=4)]
type EpochMillis = Annotated[int, Field(ge=0)]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]


class LogLevel(StrEnum):
    """Log level values for JSONL logs."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogSinkType(StrEnum):
    """Supported log sink types."""

    CONSOLE = "console"
    FILE = "file"
    NOOP = "noop"


class MigrationPolicy(StrEnum):
    """How a renamed module path picks its predecessor."""

    FIRST_MATCH = "first_match"
    BEST_OVERLAP = "best_overlap"


class MergeFailurePolicy(StrEnum):
    """What the deletion workflow does when analysis or merging fails."""

    REGENERATE = "regenerate"
    FAIL = "fail"


class ModuleFormat(StrEnum):
    """Output format for per-module translation files."""

    TS = "ts"
    JSON = "json"


class DeletionState(StrEnum):
    """States of the user-gated deletion workflow."""

    ANALYZED = "analyzed"
    DONE = "done"
    SELECTING = "selecting"
    PRESERVED_DONE = "preserved_done"
    PREVIEW_GENERATED = "preview_generated"
    CONFIRMING = "confirming"
    DELETED = "deleted"
    PRESERVED_WITH_SELECTION = "preserved_with_selection"
    REGENERATED = "regenerated"


class UsageResolution(StrEnum):
    """Which strategy resolved a reference to a catalog module."""

    EXACT = "exact"
    SUFFIX = "suffix"
    BASENAME = "basename"
    ALL_CANDIDATES = "all_candidates"


class RemotePullStatus(StrEnum):
    """Outcome of pulling the remote sheet at the start of a run."""

    SKIPPED = "skipped"
    PULLED = "pulled"
    DEGRADED = "degraded"


class SelectionMode(StrEnum):
    """Non-interactive deletion selection modes."""

    ALL = "all"
    SKIP = "skip"
