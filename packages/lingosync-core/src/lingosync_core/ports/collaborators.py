"""Protocol definitions for collaborators the engine consumes."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from lingosync_schemas.references import ScanResult


@runtime_checkable
class ExtractorProtocol(Protocol):
    """Protocol for scanning one source file for key references."""

    async def scan(self, file: Path) -> ScanResult:
        """Return references and newly discovered text in a file."""
        raise NotImplementedError


@runtime_checkable
class InteractionProtocol(Protocol):
    """Protocol for the minimal confirm/select contract."""

    async def select_keys_for_deletion(
        self, compound_keys: Sequence[str]
    ) -> list[str]:
        """Return the compound keys the user chose to delete."""
        raise NotImplementedError

    async def confirm_deletion(
        self, compound_keys: Sequence[str], preview_path: str
    ) -> bool:
        """Return whether the previewed deletion should be applied."""
        raise NotImplementedError

    async def confirm_remote_sync(self) -> bool:
        """Return whether the final catalog should be pushed."""
        raise NotImplementedError


@runtime_checkable
class TranslatorProtocol(Protocol):
    """Protocol for machine translation of new text.

    Implementations may raise; callers fall back to the source text.
    """

    async def translate(self, text: str, from_lang: str, to_lang: str) -> str:
        """Translate text between two language codes."""
        raise NotImplementedError


class PassthroughTranslator:
    """Translator that returns the source text unchanged."""

    async def translate(self, text: str, from_lang: str, to_lang: str) -> str:
        """Return ``text`` as is.

        Returns:
            str: The source text.
        """
        return text
