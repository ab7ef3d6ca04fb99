"""Reconcile existing, newly scanned and remote catalog data."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from lingosync_core.paths import Classification, UsageStamps
from lingosync_core.ports.collaborators import TranslatorProtocol
from lingosync_core.telemetry import SyncLogger
from lingosync_schemas.catalog import Catalog, CatalogEntry, copy_catalog
from lingosync_schemas.events import MergeEvent
from lingosync_schemas.primitives import MigrationPolicy


def overlay_entry(base: CatalogEntry, overlay: CatalogEntry) -> CatalogEntry:
    """Return ``base`` with every field present in ``overlay`` written over it.

    Returns:
        CatalogEntry: New merged entry.
    """
    return CatalogEntry(
        translations={**base.translations, **overlay.translations},
        mark=overlay.mark if overlay.mark is not None else base.mark,
        last_used=(
            overlay.last_used if overlay.last_used is not None else base.last_used
        ),
        extras={**base.extras, **overlay.extras},
    )


def overlay_catalog(base: Catalog, overlay: Catalog) -> Catalog:
    """Union two catalogs, ``overlay`` winning field by field.

    Nothing in ``base`` is removed.

    Returns:
        Catalog: New merged catalog.
    """
    merged = copy_catalog(base)
    for module_path, entries in overlay.items():
        module = merged.setdefault(module_path, {})
        for key, entry in entries.items():
            current = module.get(key)
            module[key] = (
                entry.model_copy(deep=True)
                if current is None
                else overlay_entry(current, entry)
            )
    return merged


class MergeEngine:
    """Build, merge and migrate catalogs."""

    def __init__(
        self,
        *,
        languages: Sequence[str],
        logger: SyncLogger,
        source_language: str = "en",
        translator: TranslatorProtocol | None = None,
        migration_threshold: float = 0.8,
        migration_policy: MigrationPolicy = MigrationPolicy.FIRST_MATCH,
    ) -> None:
        """Initialize the merge engine.

        Args:
            languages: Configured language codes.
            logger: Run logger.
            source_language: Language whose value is the literal key text.
            translator: Translator for new entries, None to copy the key text.
            migration_threshold: Minimum key overlap ratio for a rename.
            migration_policy: How to choose among rename candidates.
        """
        self._languages = list(languages)
        self._logger = logger
        self._source_language = source_language
        self._translator = translator
        self._migration_threshold = migration_threshold
        self._migration_policy = MigrationPolicy(migration_policy)

    async def build_catalog(
        self,
        classification: Classification,
        existing: Catalog,
        migrations: Mapping[str, str] | None = None,
    ) -> Catalog:
        """Build a catalog for the classified keys.

        Existing entries are reused verbatim, looked up in the same module,
        then the migration source module, then any module. Missing entries
        are synthesized.

        Returns:
            Catalog: Catalog holding exactly the classified keys.
        """
        migrations = migrations or {}
        synthesized: dict[str, CatalogEntry] = {}
        reused = 0
        catalog: Catalog = {}
        for module_path, keys in classification.items():
            module: dict[str, CatalogEntry] = {}
            for key in keys:
                found = _lookup(existing, module_path, key, migrations.get(module_path))
                if found is not None:
                    module[key] = found.model_copy(deep=True)
                    reused += 1
                    continue
                if key not in synthesized:
                    synthesized[key] = await self._synthesize(key)
                module[key] = synthesized[key].model_copy(deep=True)
            catalog[module_path] = module
        await self._logger.info(
            MergeEvent.BUILT,
            "Catalog built from classified references",
            {
                "modules": len(catalog),
                "reused": reused,
                "synthesized": len(synthesized),
            },
        )
        return catalog

    def merge_local(self, new: Catalog, existing: Catalog) -> Catalog:
        """Merge a freshly built catalog into the existing one.

        Fields present in ``new`` override, absent fields are kept and no
        entry is ever removed.

        Returns:
            Catalog: Merged catalog.
        """
        return overlay_catalog(existing, new)

    async def merge_remote(self, existing: Catalog, remote: Catalog) -> Catalog:
        """Merge a remote snapshot into the local catalog.

        Remote values win for overlapping entries, local-only fields survive.

        Returns:
            Catalog: Merged catalog.
        """
        merged = overlay_catalog(existing, remote)
        await self._logger.info(
            MergeEvent.REMOTE_MERGED,
            "Remote snapshot merged into catalog",
            {
                "remote_modules": len(remote),
                "merged_modules": len(merged),
            },
        )
        return merged

    async def detect_migrations(
        self, existing: Catalog, classification: Classification
    ) -> dict[str, str]:
        """Find new module paths that look like renames of vanished ones.

        Returns:
            dict[str, str]: New module path to the old path it replaces.
        """
        vanished = [path for path in existing if path not in classification]
        migrations: dict[str, str] = {}
        if not vanished:
            return migrations
        for new_path, keys in classification.items():
            if new_path in existing or not keys:
                continue
            new_keys = set(keys)
            chosen: str | None = None
            best_ratio = 0.0
            for old_path in vanished:
                overlap = len(new_keys & existing[old_path].keys())
                if overlap == 0:
                    continue
                ratio = overlap / len(new_keys)
                if ratio < self._migration_threshold:
                    continue
                if self._migration_policy == MigrationPolicy.FIRST_MATCH:
                    chosen, best_ratio = old_path, ratio
                    break
                if ratio > best_ratio:
                    chosen, best_ratio = old_path, ratio
            if chosen is not None:
                migrations[new_path] = chosen
                await self._logger.info(
                    MergeEvent.MIGRATION_DETECTED,
                    f"Module {chosen} looks renamed to {new_path}",
                    {"from": chosen, "to": new_path, "overlap": round(best_ratio, 4)},
                )
        return migrations

    def apply_migrations(
        self,
        existing: Catalog,
        classification: Classification,
        migrations: Mapping[str, str],
    ) -> Catalog:
        """Move overlapping entries from old module paths to their new paths.

        Old modules lose only the moved keys and disappear once empty.

        Returns:
            Catalog: Catalog with migrated entries.
        """
        migrated = copy_catalog(existing)
        moved: dict[str, set[str]] = {}
        for new_path, old_path in migrations.items():
            source = existing.get(old_path, {})
            target = migrated.setdefault(new_path, {})
            for key in classification.get(new_path, []):
                if key in source and key not in target:
                    target[key] = source[key].model_copy(deep=True)
                    moved.setdefault(old_path, set()).add(key)
        for old_path, keys in moved.items():
            module = migrated.get(old_path)
            if module is None:
                continue
            for key in keys:
                module.pop(key, None)
            if not module:
                del migrated[old_path]
        return migrated

    def stamp_last_used(self, catalog: Catalog, usage: UsageStamps) -> Catalog:
        """Record the latest reference time on referenced entries.

        Returns:
            Catalog: Same catalog, updated in place.
        """
        for (module_path, key), stamp in usage.items():
            entry = catalog.get(module_path, {}).get(key)
            if entry is not None:
                entry.last_used = stamp
        return catalog

    async def absorb(
        self,
        existing: Catalog,
        classification: Classification,
        usage: UsageStamps,
    ) -> Catalog:
        """Fold newly classified references into an existing catalog.

        Returns:
            Catalog: Existing catalog plus migrated, reused and new entries.
        """
        migrations = await self.detect_migrations(existing, classification)
        base = (
            self.apply_migrations(existing, classification, migrations)
            if migrations
            else existing
        )
        built = await self.build_catalog(classification, base, migrations)
        merged = self.merge_local(built, base)
        return self.stamp_last_used(merged, usage)

    async def _synthesize(self, key: str) -> CatalogEntry:
        translations: dict[str, str] = {}
        for language in self._languages:
            if language == self._source_language:
                translations[language] = key
                continue
            translations[language] = await self._translate(key, language)
        return CatalogEntry(translations=translations, mark=0)

    async def _translate(self, text: str, to_lang: str) -> str:
        if self._translator is None:
            return text
        try:
            translated = await self._translator.translate(
                text, self._source_language, to_lang
            )
        except Exception as exc:
            await self._logger.warn(
                MergeEvent.TRANSLATION_FAILED,
                f"Translation to {to_lang} failed, keeping source text",
                {"key": text, "language": to_lang, "error": str(exc)},
            )
            return text
        if not translated.strip():
            return text
        return translated


def _lookup(
    existing: Catalog, module_path: str, key: str, migrated_from: str | None
) -> CatalogEntry | None:
    entry = existing.get(module_path, {}).get(key)
    if entry is not None:
        return entry
    if migrated_from is not None:
        entry = existing.get(migrated_from, {}).get(key)
        if entry is not None:
            return entry
    for entries in existing.values():
        if key in entries:
            return entries[key]
    return None
