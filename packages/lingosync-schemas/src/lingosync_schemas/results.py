"""Result payloads for analysis, deletion and sync runs."""

from __future__ import annotations

from pydantic import Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.primitives import (
    DeletionState,
    RemotePullStatus,
    RunId,
)
from lingosync_schemas.sync import CompoundKeyParts, PushResult


class UnusedKeyReport(BaseSchema):
    """Unused and force-kept entries found by the analyzer."""

    unused: list[CompoundKeyParts] = Field(
        default_factory=list, description="Entries eligible for deletion"
    )
    force_kept: list[CompoundKeyParts] = Field(
        default_factory=list, description="Unused entries on the force-keep list"
    )
    uncertain: list[CompoundKeyParts] = Field(
        default_factory=list,
        description="Entries kept only by the all-candidates fallback",
    )
    total_count: int = Field(0, ge=0, description="Entries analyzed")
    used_count: int = Field(0, ge=0, description="Entries with a resolved reference")

    def unused_keys(self) -> list[str]:
        """Return unused entries as compound keys.

        Returns:
            list[str]: ``[module][key]`` strings.
        """
        return [str(parts) for parts in self.unused]

    def force_kept_keys(self) -> list[str]:
        """Return force-kept entries as compound keys.

        Returns:
            list[str]: ``[module][key]`` strings.
        """
        return [str(parts) for parts in self.force_kept]


class DeletionOutcome(BaseSchema):
    """Final state and catalog of one deletion workflow run."""

    state: DeletionState = Field(..., description="Terminal workflow state")
    catalog: Catalog = Field(..., description="Catalog as persisted")
    report: UnusedKeyReport | None = Field(
        None, description="Analysis report when analysis ran"
    )
    selected: list[str] = Field(
        default_factory=list, description="Compound keys chosen for deletion"
    )
    deleted: list[str] = Field(
        default_factory=list, description="Compound keys actually deleted"
    )
    preview_path: str | None = Field(None, description="Preview file used")


class SyncReport(BaseSchema):
    """Summary of one full sync run."""

    run_id: RunId = Field(..., description="Run identifier")
    remote_pull: RemotePullStatus = Field(..., description="Remote pull outcome")
    remote_entries: int = Field(0, ge=0, description="Entries pulled from remote")
    references: int = Field(0, ge=0, description="References scanned")
    modules: int = Field(0, ge=0, description="Modules in final catalog")
    entries: int = Field(0, ge=0, description="Entries in final catalog")
    unused: int = Field(0, ge=0, description="Unused entries detected")
    force_kept: int = Field(0, ge=0, description="Force-kept entries")
    deletion_state: DeletionState = Field(..., description="Deletion outcome")
    deleted: int = Field(0, ge=0, description="Entries deleted")
    emitted_files: list[str] = Field(
        default_factory=list, description="Module files written"
    )
    push: PushResult | None = Field(None, description="Push outcome if pushed")


class PullResult(BaseSchema):
    """Remote snapshot read at the start of a run."""

    catalog: Catalog = Field(default_factory=dict, description="Remote catalog")
    status: RemotePullStatus = Field(..., description="Pull outcome")
    skipped_rows: int = Field(0, ge=0, description="Malformed rows skipped")


class EmitResult(BaseSchema):
    """Module files written by an emit."""

    files: list[str] = Field(default_factory=list, description="Written paths")
