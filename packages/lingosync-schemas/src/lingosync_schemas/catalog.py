"""Catalog entry schema and the flat JSON form used on disk."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from pydantic import ConfigDict, Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.primitives import (
    LAST_USED_FIELD,
    LEGACY_LAST_USED_FIELD,
    MARK_FIELD,
    JsonValue,
)


class CatalogEntry(BaseSchema):
    """Translations for one key inside one module path.

    ``mark`` and ``last_used`` are ``None`` when the payload that produced
    the entry did not carry them, which lets merges tell "absent" apart
    from "zero".
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    translations: dict[str, str] = Field(
        default_factory=dict, description="Language code to translated text"
    )
    mark: int | None = Field(None, description="Reviewer annotation")
    last_used: int | str | None = Field(
        None,
        description="Epoch millis of the last confirmed reference (raw if unparsable)",
    )
    extras: dict[str, JsonValue] = Field(
        default_factory=dict, description="Unknown fields carried through untouched"
    )


type ModuleEntries = dict[str, CatalogEntry]
type Catalog = dict[str, ModuleEntries]


class CatalogFormatError(ValueError):
    """Raised when a JSON payload does not have the catalog shape."""


def _coerce_mark(value: JsonValue) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def _coerce_last_used(value: JsonValue) -> int | str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        return value
    return None


def entry_from_json(payload: Mapping[str, JsonValue]) -> CatalogEntry:
    """Build an entry from its flat JSON object.

    String fields are translations, ``mark`` and ``lastUsed`` (or the legacy
    ``_lastUsed``) are metadata and anything else is kept as an extra.

    Returns:
        CatalogEntry: Parsed entry.
    """
    translations: dict[str, str] = {}
    extras: dict[str, JsonValue] = {}
    mark: int | None = None
    last_used: int | str | None = None
    for field_name, value in payload.items():
        if field_name == MARK_FIELD:
            mark = _coerce_mark(value)
        elif field_name in {LAST_USED_FIELD, LEGACY_LAST_USED_FIELD}:
            coerced = _coerce_last_used(value)
            if coerced is not None:
                last_used = coerced
        elif isinstance(value, str):
            translations[field_name] = value
        else:
            extras[field_name] = value
    return CatalogEntry(
        translations=translations, mark=mark, last_used=last_used, extras=extras
    )


def entry_to_json(
    entry: CatalogEntry, languages: Sequence[str]
) -> dict[str, JsonValue]:
    """Serialize an entry with canonical field ordering.

    Configured languages come first in configured order, then any other
    language fields, then extras and ``lastUsed``. ``mark`` is always last.

    Returns:
        dict[str, JsonValue]: Ordered JSON object.
    """
    payload: dict[str, JsonValue] = {}
    for language in languages:
        if language in entry.translations:
            payload[language] = entry.translations[language]
    for language, text in entry.translations.items():
        if language not in payload:
            payload[language] = text
    for field_name, value in entry.extras.items():
        if field_name not in payload:
            payload[field_name] = value
    if entry.last_used is not None:
        payload[LAST_USED_FIELD] = entry.last_used
    payload[MARK_FIELD] = entry.mark if entry.mark is not None else 0
    return payload


def catalog_from_json(payload: object) -> Catalog:
    """Parse a whole catalog document.

    Returns:
        Catalog: Parsed catalog, module and key order preserved.

    Raises:
        CatalogFormatError: If the document is not module -> key -> object.
    """
    if not isinstance(payload, dict):
        raise CatalogFormatError("catalog document must be a JSON object")
    catalog: Catalog = {}
    for module_path, entries in payload.items():
        if not isinstance(entries, dict):
            raise CatalogFormatError(
                f"module {module_path!r} must map keys to entry objects"
            )
        module: ModuleEntries = {}
        for key, entry_payload in entries.items():
            if not isinstance(entry_payload, dict):
                raise CatalogFormatError(
                    f"entry {key!r} in module {module_path!r} must be an object"
                )
            module[key] = entry_from_json(entry_payload)
        catalog[module_path] = module
    return catalog


def catalog_to_json(
    catalog: Catalog, languages: Sequence[str]
) -> dict[str, dict[str, dict[str, JsonValue]]]:
    """Serialize a catalog with canonical entry ordering.

    Returns:
        dict[str, dict[str, dict[str, JsonValue]]]: JSON-ready document.
    """
    return {
        module_path: {
            key: entry_to_json(entry, languages) for key, entry in entries.items()
        }
        for module_path, entries in catalog.items()
    }


def copy_catalog(catalog: Catalog) -> Catalog:
    """Return a deep copy of a catalog.

    Returns:
        Catalog: Independent copy.
    """
    return {
        module_path: {key: entry.model_copy(deep=True) for key, entry in entries.items()}
        for module_path, entries in catalog.items()
    }


def count_entries(catalog: Catalog) -> int:
    """Count (module, key) entries in a catalog.

    Returns:
        int: Number of entries.
    """
    return sum(len(entries) for entries in catalog.values())
