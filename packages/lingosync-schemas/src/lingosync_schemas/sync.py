"""Schemas for remote sheet rows, change sets and advisory locks."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.primitives import EpochMillis


class CompoundKeyParts(BaseSchema):
    """A compound key split into module path and key."""

    model_config = ConfigDict(str_strip_whitespace=False)

    module_path: str = Field(..., min_length=1, description="Module path")
    key: str = Field(..., min_length=1, description="Translation key")

    def __str__(self) -> str:
        """Return the ``[module][key]`` form."""
        return f"[{self.module_path}][{self.key}]"


class SheetRow(BaseSchema):
    """One data row of the remote sheet."""

    model_config = ConfigDict(str_strip_whitespace=False)

    compound_key: str = Field(..., min_length=1, description="[module][key]")
    values: list[str] = Field(
        ..., description="Full row: compound key, languages, mark"
    )


class ChangeSet(BaseSchema):
    """Rows to add, rows to rewrite and compound keys to delete remotely."""

    added: list[SheetRow] = Field(default_factory=list, description="New rows")
    modified: list[SheetRow] = Field(
        default_factory=list, description="Rows whose content changed"
    )
    deleted_keys: list[str] = Field(
        default_factory=list, description="Compound keys absent locally"
    )

    @property
    def is_empty(self) -> bool:
        """Whether the change set holds nothing to apply."""
        return not (self.added or self.modified or self.deleted_keys)


class RowUpdate(BaseSchema):
    """A write of consecutive cells on one grid row."""

    model_config = ConfigDict(str_strip_whitespace=False)

    row_index: int = Field(..., ge=0, description="0-based grid row (header is 0)")
    start_column: int = Field(0, ge=0, description="0-based first column")
    values: list[str] = Field(..., min_length=1, description="Cell values")


class LockInfo(BaseSchema):
    """Advisory row locks held by one apply attempt."""

    lock_id: str = Field(..., min_length=1, description="Lock identifier")
    token: str = Field(..., min_length=1, description="Token written into cells")
    locked_rows: list[int] = Field(
        default_factory=list, description="0-based grid rows locked"
    )
    locked_at: EpochMillis = Field(..., description="Epoch millis lock was taken")


class PushResult(BaseSchema):
    """Outcome of an incremental push."""

    added: int = Field(0, ge=0, description="Rows appended")
    modified: int = Field(0, ge=0, description="Rows rewritten")
    deleted: int = Field(0, ge=0, description="Rows deleted")
    attempts: int = Field(0, ge=0, description="Apply attempts used")
    skipped: bool = Field(False, description="True when nothing needed pushing")
