"""Marker-based extractor and source file discovery."""

from __future__ import annotations

import asyncio
import fnmatch
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from lingosync_core.ports.collaborators import ExtractorProtocol
from lingosync_core.telemetry import now_millis
from lingosync_schemas.references import Reference, ScanResult

_ESCAPE_PATTERN = re.compile(r"\\(.)")


def build_marker_pattern(start_marker: str, end_marker: str) -> re.Pattern[str]:
    """Compile the call-site pattern for a marker pair.

    Matches ``<start>"key"<end>`` with any quote style and optional extra
    arguments after the key.

    Returns:
        re.Pattern[str]: Compiled pattern with ``key`` and ``quote`` groups.
    """
    guard = r"(?<![\w$])" if re.match(r"[\w$]", start_marker) else ""
    return re.compile(
        guard
        + re.escape(start_marker)
        + r"\s*(?P<quote>['\"`])(?P<key>(?:\\.|(?!(?P=quote)).)+?)(?P=quote)"
        + r"\s*(?:,[^\n]*?)?"
        + re.escape(end_marker)
    )


class MarkerExtractor(ExtractorProtocol):
    """Find ``t("...")`` style call sites line by line."""

    def __init__(
        self,
        *,
        start_marker: str = "t(",
        end_marker: str = ")",
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Initialize the extractor.

        Args:
            start_marker: Text opening a translation call.
            end_marker: Text closing a translation call.
            clock: Epoch millis provider for scan timestamps.
        """
        self._pattern = build_marker_pattern(start_marker, end_marker)
        self._clock = clock

    async def scan(self, file: Path) -> ScanResult:
        """Scan one file.

        Returns:
            ScanResult: References found; new text is never produced.
        """
        text = await asyncio.to_thread(file.read_text, encoding="utf-8")
        return self.scan_text(text, str(file), self._clock())

    def scan_text(self, text: str, file_path: str, scan_timestamp: int) -> ScanResult:
        """Scan source text already in memory.

        Returns:
            ScanResult: References in source order.
        """
        references: list[Reference] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            for match in self._pattern.finditer(line):
                key = _ESCAPE_PATTERN.sub(r"\1", match.group("key"))
                if not key.strip():
                    continue
                references.append(
                    Reference(
                        key=key,
                        file_path=file_path,
                        line=line_number,
                        column=match.start() + 1,
                        call_expression=match.group(0),
                        scan_timestamp=scan_timestamp,
                    )
                )
        return ScanResult(references=references)


def discover_source_files(
    root: Path, include: Iterable[str], ignore: Iterable[str] = ()
) -> list[Path]:
    """List files under ``root`` matching include globs and no ignore glob.

    Returns:
        list[Path]: Sorted, de-duplicated file paths.
    """
    ignore_patterns = list(ignore)
    found: set[Path] = set()
    for pattern in include:
        for path in root.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if _is_ignored(relative, ignore_patterns):
                continue
            found.add(path)
    return sorted(found)


def _is_ignored(relative: str, patterns: list[str]) -> bool:
    for pattern in patterns:
        if fnmatch.fnmatch(relative, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatch(relative, pattern[3:]):
            return True
    return False
