"""Unit tests for unused entry detection."""

import asyncio
from pathlib import Path

import pytest

from lingosync_core.paths import PathClassifier
from lingosync_core.unused import UnusedKeyAnalyzer, parse_last_used
from lingosync_schemas.catalog import Catalog
from lingosync_schemas.primitives import UsageResolution
from tests.helpers.fakes import DAY, NOW_MILLIS, build_logger, entry, ref


def _analyzer(
    expiration_days: int | None = None,
    force_keep: dict[str, list[str]] | None = None,
) -> UnusedKeyAnalyzer:
    classifier = PathClassifier(project_root=Path("/work"), root_dir="src")
    return UnusedKeyAnalyzer(
        classifier=classifier,
        logger=build_logger(),
        expiration_days=expiration_days,
        force_keep=force_keep,
        clock=lambda: NOW_MILLIS,
    )


def test_key_in_two_modules_only_unreferenced_one_is_unused() -> None:
    """References resolving to comp/B.ts leave only comp/A.ts unused."""
    catalog: Catalog = {
        "comp/A.ts": {"key": entry(en="key")},
        "comp/B.ts": {"key": entry(en="key")},
    }

    report = asyncio.run(
        _analyzer().analyze(catalog, [ref("key", "src/comp/B.ts")])
    )

    assert report.unused_keys() == ["[comp/A.ts][key]"]
    assert report.used_count == 1
    assert report.total_count == 2


def test_expiration_without_last_used_is_unused() -> None:
    """With a grace period, an entry never stamped counts as expired."""
    catalog: Catalog = {"a.ts": {"Old": entry(en="Old")}}

    report = asyncio.run(_analyzer(expiration_days=7).analyze(catalog, []))

    assert report.unused_keys() == ["[a.ts][Old]"]


def test_expiration_keeps_recently_used_entries() -> None:
    """Unreferenced entries inside the grace period are kept."""
    catalog: Catalog = {
        "a.ts": {
            "Recent": entry(en="Recent", last_used=NOW_MILLIS - 2 * DAY),
            "Stale": entry(en="Stale", last_used=NOW_MILLIS - 9 * DAY),
            "Iso": entry(en="Iso", last_used="2020-01-01T00:00:00Z"),
        }
    }

    report = asyncio.run(_analyzer(expiration_days=7).analyze(catalog, []))

    assert report.unused_keys() == ["[a.ts][Stale]", "[a.ts][Iso]"]


def test_referenced_entries_never_expire() -> None:
    """A resolved reference keeps an entry whatever its lastUsed says."""
    catalog: Catalog = {
        "a.ts": {
            "Stale": entry(en="Stale", last_used=NOW_MILLIS - 30 * DAY),
            "Unstamped": entry(en="Unstamped"),
            "Garbled": entry(en="Garbled", last_used="last tuesday"),
        }
    }
    references = [
        ref("Stale", "src/a.ts"),
        ref("Unstamped", "src/a.ts"),
        ref("Garbled", "src/a.ts"),
    ]

    report = asyncio.run(_analyzer(expiration_days=7).analyze(catalog, references))

    assert report.unused_keys() == []
    assert report.used_count == 3


def test_unparsable_last_used_counts_as_expired() -> None:
    """An unreadable lastUsed string is treated like a missing stamp."""
    catalog: Catalog = {
        "a.ts": {
            "Garbled": entry(en="Garbled", last_used="last tuesday"),
            "Fresh": entry(en="Fresh", last_used=str(NOW_MILLIS - DAY)),
            "Used": entry(en="Used", last_used="not a date"),
        }
    }

    report = asyncio.run(
        _analyzer(expiration_days=7).analyze(catalog, [ref("Used", "src/a.ts")])
    )

    assert report.unused_keys() == ["[a.ts][Garbled]"]


def test_force_keep_entries_are_reported_separately() -> None:
    """Force-kept entries never appear in the unused list."""
    catalog: Catalog = {
        "a.ts": {"Brand": entry(en="Brand"), "Gone": entry(en="Gone")}
    }

    report = asyncio.run(
        _analyzer(force_keep={"a.ts": ["Brand"]}).analyze(catalog, [])
    )

    assert report.unused_keys() == ["[a.ts][Gone]"]
    assert report.force_kept_keys() == ["[a.ts][Brand]"]


def test_suffix_resolution_matches_partial_paths() -> None:
    """A reference path that ends with a candidate path resolves to it."""
    analyzer = _analyzer()

    modules, resolution = analyzer.resolve_reference(
        ref("Hi", "packages/web/src/comp/A.tsx"), ["comp/A.ts", "comp/B.ts"]
    )

    assert modules == ["comp/A.ts"]
    assert resolution == UsageResolution.SUFFIX


def test_basename_resolution_matches_same_stem() -> None:
    """Different directories with the same file stem resolve by basename."""
    modules, resolution = _analyzer().resolve_reference(
        ref("Hi", "src/moved/Header.ts"), ["layout/Header.ts", "other/Footer.ts"]
    )

    assert modules == ["layout/Header.ts"]
    assert resolution == UsageResolution.BASENAME


def test_unresolvable_reference_keeps_all_candidates_and_flags_them() -> None:
    """With no path match, every candidate is kept but marked uncertain."""
    catalog: Catalog = {
        "x/One.ts": {"Hi": entry(en="Hi")},
        "y/Two.ts": {"Hi": entry(en="Hi")},
    }

    report = asyncio.run(
        _analyzer().analyze(catalog, [ref("Hi", "src/z/Three.ts")])
    )

    assert report.unused == []
    assert [str(parts) for parts in report.uncertain] == [
        "[x/One.ts][Hi]",
        "[y/Two.ts][Hi]",
    ]


def test_reference_to_unknown_key_is_ignored() -> None:
    """References to keys not in the catalog do not count as usage."""
    catalog: Catalog = {"a.ts": {"Hi": entry(en="Hi")}}

    report = asyncio.run(_analyzer().analyze(catalog, [ref("Other", "src/a.ts")]))

    assert report.unused_keys() == ["[a.ts][Hi]"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        (1700000000000, 1700000000000),
        ("1700000000000", 1700000000000),
        ("2026-01-01T00:00:00Z", 1767225600000),
        ("2026-01-01T00:00:00", 1767225600000),
        ("not a date", None),
    ],
)
def test_parse_last_used(value: int | str | None, expected: int | None) -> None:
    """Epoch millis, numeric strings and ISO-8601 timestamps are understood."""
    assert parse_last_used(value) == expected
