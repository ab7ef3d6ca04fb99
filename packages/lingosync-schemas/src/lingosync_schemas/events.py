"""Event taxonomy for sync run observability."""

from __future__ import annotations

from enum import StrEnum


class RunEvent(StrEnum):
    """Event names for the run lifecycle."""

    STARTED = "run_started"
    COMPLETED = "run_completed"
    FAILED = "run_failed"


class CatalogEvent(StrEnum):
    """Event names for catalog persistence."""

    LOADED = "catalog_loaded"
    SAVED = "catalog_saved"
    MISSING = "catalog_missing"
    UNREADABLE = "catalog_unreadable"


class MergeEvent(StrEnum):
    """Event names for merge operations."""

    BUILT = "merge_catalog_built"
    MIGRATION_DETECTED = "merge_migration_detected"
    TRANSLATION_FAILED = "merge_translation_failed"
    REMOTE_MERGED = "merge_remote_merged"


class UnusedEvent(StrEnum):
    """Event names for unused key analysis."""

    ANALYZED = "unused_analyzed"
    UNCERTAIN = "unused_uncertain_resolution"


class DeletionEvent(StrEnum):
    """Event names for the deletion workflow."""

    STATE_CHANGED = "deletion_state_changed"
    PREVIEW_WRITTEN = "deletion_preview_written"
    APPLIED = "deletion_applied"
    DECLINED = "deletion_declined"
    INTERACTION_FAILED = "deletion_interaction_failed"
    FAILED = "deletion_failed"
    REGENERATED = "deletion_regenerated"


class RemoteEvent(StrEnum):
    """Event names for remote sheet sync."""

    PULL_STARTED = "remote_pull_started"
    PULL_COMPLETED = "remote_pull_completed"
    PULL_DEGRADED = "remote_pull_degraded"
    ROW_SKIPPED = "remote_row_skipped"
    PUSH_SKIPPED = "remote_push_skipped"
    ATTEMPT_STARTED = "remote_attempt_started"
    ATTEMPT_FAILED = "remote_attempt_failed"
    LOCKS_ACQUIRED = "remote_locks_acquired"
    LOCKS_RELEASED = "remote_locks_released"
    LOCK_RELEASE_FAILED = "remote_lock_release_failed"
    PUSH_COMPLETED = "remote_push_completed"
    PUSH_FAILED = "remote_push_failed"


class EmitEvent(StrEnum):
    """Event names for module file emission."""

    COMPLETED = "emit_completed"


class CommandEvent(StrEnum):
    """Event names for CLI command lifecycle."""

    STARTED = "command_started"
    COMPLETED = "command_completed"
    FAILED = "command_failed"
