"""Detect catalog entries that are no longer referenced."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from pathlib import PurePosixPath

from lingosync_core.paths import PathClassifier
from lingosync_core.telemetry import SyncLogger, now_millis
from lingosync_schemas.catalog import Catalog, CatalogEntry, count_entries
from lingosync_schemas.events import UnusedEvent
from lingosync_schemas.primitives import UsageResolution
from lingosync_schemas.references import Reference
from lingosync_schemas.results import UnusedKeyReport
from lingosync_schemas.sync import CompoundKeyParts

DAY_MILLIS = 86_400_000

type EntryId = tuple[str, str]


class UnusedKeyAnalyzer:
    """Flag entries without references, by presence and optionally by age.

    Resolution is deliberately biased towards keeping entries: when a
    reference cannot be tied to a specific module, every module holding the
    key counts as used.
    """

    def __init__(
        self,
        *,
        classifier: PathClassifier,
        logger: SyncLogger,
        expiration_days: int | None = None,
        force_keep: Mapping[str, Sequence[str]] | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Initialize the analyzer.

        Args:
            classifier: Path classifier used to normalize reference paths.
            logger: Run logger.
            expiration_days: Grace period for unreferenced entries, None to
                flag every unreferenced entry.
            force_keep: Module path to keys that are never flagged.
            clock: Epoch millis provider.
        """
        self._classifier = classifier
        self._logger = logger
        self._expiration_days = expiration_days
        self._force_keep = {
            module_path: set(keys) for module_path, keys in (force_keep or {}).items()
        }
        self._clock = clock

    async def analyze(
        self, catalog: Catalog, references: Iterable[Reference]
    ) -> UnusedKeyReport:
        """Compute unused, force-kept and uncertain entries.

        Returns:
            UnusedKeyReport: Analysis result.
        """
        used, uncertain = self.resolve_usage(catalog, references)
        now = self._clock()
        unused: list[CompoundKeyParts] = []
        force_kept: list[CompoundKeyParts] = []
        for module_path, entries in catalog.items():
            for key, entry in entries.items():
                if (module_path, key) in used:
                    continue
                if self._expiration_days is not None and not self.is_expired(
                    entry, now
                ):
                    continue
                parts = CompoundKeyParts(module_path=module_path, key=key)
                if key in self._force_keep.get(module_path, ()):
                    force_kept.append(parts)
                else:
                    unused.append(parts)
        report = UnusedKeyReport(
            unused=unused,
            force_kept=force_kept,
            uncertain=[
                CompoundKeyParts(module_path=module_path, key=key)
                for module_path, key in sorted(uncertain)
            ],
            total_count=count_entries(catalog),
            used_count=len(used),
        )
        await self._logger.info(
            UnusedEvent.ANALYZED,
            f"{len(unused)} unused entries found",
            {
                "total": report.total_count,
                "used": report.used_count,
                "unused": len(unused),
                "force_kept": len(force_kept),
                "uncertain": len(report.uncertain),
                "expiration_days": self._expiration_days,
            },
        )
        if uncertain:
            await self._logger.debug(
                UnusedEvent.UNCERTAIN,
                "Entries kept because their references could not be resolved",
                {"entries": [f"[{m}][{k}]" for m, k in sorted(uncertain)]},
            )
        return report

    def resolve_usage(
        self, catalog: Catalog, references: Iterable[Reference]
    ) -> tuple[set[EntryId], set[EntryId]]:
        """Resolve references to the catalog entries they keep alive.

        Returns:
            tuple[set[EntryId], set[EntryId]]: Used entries, and the subset
            kept only by the all-candidates fallback.
        """
        candidates_by_key: dict[str, list[str]] = {}
        for module_path, entries in catalog.items():
            for key in entries:
                candidates_by_key.setdefault(key, []).append(module_path)

        used: set[EntryId] = set()
        resolved: set[EntryId] = set()
        fallback: set[EntryId] = set()
        for reference in references:
            candidates = candidates_by_key.get(reference.key)
            if not candidates:
                continue
            modules, resolution = self.resolve_reference(reference, candidates)
            entry_ids = {(module_path, reference.key) for module_path in modules}
            used.update(entry_ids)
            if resolution == UsageResolution.ALL_CANDIDATES:
                fallback.update(entry_ids)
            else:
                resolved.update(entry_ids)
        return used, fallback - resolved

    def resolve_reference(
        self, reference: Reference, candidates: Sequence[str]
    ) -> tuple[list[str], UsageResolution]:
        """Pick the candidate modules a reference belongs to.

        Strategies run in order: exact module path, path suffix in either
        direction, same file stem, then every candidate.

        Returns:
            tuple[list[str], UsageResolution]: Matching modules and the
            strategy that matched.
        """
        normalized = self._classifier.module_path_for(reference.file_path)
        if normalized in candidates:
            return [normalized], UsageResolution.EXACT

        normalized_stem = _strip_suffix(normalized)
        suffix_matches = [
            candidate
            for candidate in candidates
            if _suffix_match(normalized_stem, _strip_suffix(candidate))
        ]
        if suffix_matches:
            return suffix_matches, UsageResolution.SUFFIX

        basename = PurePosixPath(normalized).stem
        basename_matches = [
            candidate
            for candidate in candidates
            if PurePosixPath(candidate).stem == basename
        ]
        if basename_matches:
            return basename_matches, UsageResolution.BASENAME

        return list(candidates), UsageResolution.ALL_CANDIDATES

    def is_expired(self, entry: CatalogEntry, now: int) -> bool:
        """Whether an unreferenced entry is past the grace period.

        Returns:
            bool: True when ``lastUsed`` is missing, unparsable or too old.
        """
        if self._expiration_days is None:
            return True
        last_used = parse_last_used(entry.last_used)
        if last_used is None:
            return True
        return now - last_used > self._expiration_days * DAY_MILLIS


def parse_last_used(value: int | str | None) -> int | None:
    """Interpret a ``lastUsed`` value as epoch millis.

    Integers and numeric strings are epoch millis, other strings are tried as
    ISO-8601 timestamps.

    Returns:
        int | None: Epoch millis, or None if missing or unparsable.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = value.strip()
    if not text:
        return None
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def _strip_suffix(module_path: str) -> str:
    path = PurePosixPath(module_path)
    return path.with_suffix("").as_posix() if path.suffix else module_path


def _suffix_match(left: str, right: str) -> bool:
    if left == right:
        return True
    return left.endswith("/" + right) or right.endswith("/" + left)
