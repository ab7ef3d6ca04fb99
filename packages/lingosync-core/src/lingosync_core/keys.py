"""Compound key formatting and parsing."""

from __future__ import annotations

from lingosync_schemas.sync import CompoundKeyParts


def format_compound_key(module_path: str, key: str) -> str:
    """Return the ``[module_path][key]`` form used by remote rows.

    Returns:
        str: Compound key.
    """
    return f"[{module_path}][{key}]"


def parse_compound_key(text: str) -> CompoundKeyParts | None:
    """Split a compound key into module path and key.

    The split happens at the first ``][`` so bracketed path segments such as
    ``app/[locale]/page.ts`` and keys containing brackets both survive.

    Returns:
        CompoundKeyParts | None: Parsed parts, or None if malformed.
    """
    if not (text.startswith("[") and text.endswith("]")):
        return None
    split = text.find("][", 1)
    if split <= 1:
        return None
    module_path = text[1:split]
    key = text[split + 2 : -1]
    if not key:
        return None
    return CompoundKeyParts(module_path=module_path, key=key)
