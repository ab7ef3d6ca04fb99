"""Map source file references to catalog module paths."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath

from lingosync_schemas.primitives import COMMON_MODULE
from lingosync_schemas.references import Reference

type Classification = dict[str, list[str]]
type UsageStamps = dict[tuple[str, str], int]


class PathClassifier:
    """Normalize file paths into module paths and bucket keys by module."""

    def __init__(
        self,
        *,
        project_root: Path,
        root_dir: str,
        source_extensions: Sequence[str] = (".ts", ".tsx", ".js", ".jsx"),
        module_extension: str = ".ts",
    ) -> None:
        """Initialize the classifier.

        Args:
            project_root: Directory that relative reference paths start from.
            root_dir: Source root, relative to the project root, stripped from
                module paths.
            source_extensions: Extensions rewritten to ``module_extension``.
            module_extension: Canonical extension of module paths.
        """
        self._project_root = PurePosixPath(project_root.as_posix())
        self._root_parts = PurePosixPath(_posix(root_dir)).parts
        self._source_extensions = frozenset(source_extensions)
        self._module_extension = module_extension

    def module_path_for(self, file_path: str) -> str:
        """Return the module path a source file's keys belong to.

        Returns:
            str: POSIX module path relative to the source root.
        """
        path = PurePosixPath(_posix(file_path))
        if path.is_absolute():
            path = self._relativize(path)
        parts = path.parts
        root_len = len(self._root_parts)
        if root_len and parts[:root_len] == self._root_parts:
            parts = parts[root_len:]
        if not parts:
            return COMMON_MODULE
        path = PurePosixPath(*parts)
        if path.suffix in self._source_extensions:
            path = path.with_suffix(self._module_extension)
        return path.as_posix()

    def classify(self, references: Iterable[Reference]) -> Classification:
        """Bucket keys by every module path their references touch.

        References whose path has no module part, such as text found at the
        source root itself, land in the ``common`` bucket.

        Returns:
            Classification: Module path to keys, first-seen order.
        """
        classification: Classification = {}
        seen: dict[str, set[str]] = {}
        for reference in references:
            module_path = self.module_path_for(reference.file_path)
            keys = seen.setdefault(module_path, set())
            if reference.key in keys:
                continue
            keys.add(reference.key)
            classification.setdefault(module_path, []).append(reference.key)
        return classification

    def usage_stamps(
        self, references: Iterable[Reference], default_millis: int
    ) -> UsageStamps:
        """Return the newest scan time per (module path, key).

        References without a scan timestamp count as ``default_millis``.

        Returns:
            UsageStamps: Latest epoch millis per referenced entry.
        """
        stamps: UsageStamps = {}
        for reference in references:
            entry_id = (self.module_path_for(reference.file_path), reference.key)
            stamp = reference.scan_timestamp or default_millis
            if stamp > stamps.get(entry_id, -1):
                stamps[entry_id] = stamp
        return stamps

    def _relativize(self, path: PurePosixPath) -> PurePosixPath:
        try:
            return path.relative_to(self._project_root)
        except ValueError:
            pass
        parts = path.parts
        root_len = len(self._root_parts)
        if root_len:
            # Outside the project: anchor at the last occurrence of root_dir.
            for start in range(len(parts) - root_len, 0, -1):
                if parts[start : start + root_len] == self._root_parts:
                    return PurePosixPath(*parts[start:])
        return PurePosixPath(*parts[1:])


def _posix(value: str) -> str:
    return value.replace("\\", "/")
