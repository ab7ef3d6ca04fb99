"""Interaction implementations for the CLI."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from lingosync_core.ports.collaborators import InteractionProtocol
from lingosync_schemas.primitives import SelectionMode

SELECT_ALL = "all"
SELECT_NONE = "none"


class AutoInteraction(InteractionProtocol):
    """Policy-driven answers for non-interactive runs."""

    def __init__(
        self,
        *,
        selection_mode: SelectionMode = SelectionMode.SKIP,
        auto_confirm_delete: bool = False,
        confirm_remote_sync: bool = True,
    ) -> None:
        """Initialize the policy.

        Args:
            selection_mode: ``all`` selects every unused entry, ``skip`` none.
            auto_confirm_delete: Whether previewed deletions are applied.
            confirm_remote_sync: Whether the final catalog is pushed.
        """
        self._selection_mode = SelectionMode(selection_mode)
        self._auto_confirm_delete = auto_confirm_delete
        self._confirm_remote_sync = confirm_remote_sync

    async def select_keys_for_deletion(
        self, compound_keys: Sequence[str]
    ) -> list[str]:
        """Select every key or none, per policy.

        Returns:
            list[str]: Selected compound keys.
        """
        if self._selection_mode == SelectionMode.ALL:
            return list(compound_keys)
        return []

    async def confirm_deletion(
        self, compound_keys: Sequence[str], preview_path: str
    ) -> bool:
        """Answer the deletion confirmation per policy.

        Returns:
            bool: Configured answer.
        """
        return self._auto_confirm_delete

    async def confirm_remote_sync(self) -> bool:
        """Answer the push confirmation per policy.

        Returns:
            bool: Configured answer.
        """
        return self._confirm_remote_sync


class ConsoleInteraction(InteractionProtocol):
    """Rich prompts on the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize with an optional console (stderr by default)."""
        self._console = console or Console(stderr=True)

    async def select_keys_for_deletion(
        self, compound_keys: Sequence[str]
    ) -> list[str]:
        """List unused entries and ask which to delete.

        Returns:
            list[str]: Selected compound keys, possibly empty.
        """
        keys = list(compound_keys)
        if not keys:
            return []
        table = Table(title="Unused entries")
        table.add_column("#", justify="right")
        table.add_column("Entry")
        for index, compound_key in enumerate(keys, start=1):
            table.add_row(str(index), compound_key)
        self._console.print(table)
        while True:
            answer = await asyncio.to_thread(
                Prompt.ask,
                "Delete which entries? (all, none, or numbers like 1,3-5)",
                console=self._console,
                default=SELECT_NONE,
            )
            try:
                return parse_selection(answer, keys)
            except ValueError:
                self._console.print(
                    f"[red]Could not read {answer!r}, "
                    "answer all, none, or numbers like 1,3-5[/red]"
                )

    async def confirm_deletion(
        self, compound_keys: Sequence[str], preview_path: str
    ) -> bool:
        """Ask for final confirmation after the preview is written.

        Returns:
            bool: True to apply the deletion.
        """
        self._console.print(
            f"{len(compound_keys)} entries staged for deletion. "
            f"Preview: [bold]{preview_path}[/bold]"
        )
        return await asyncio.to_thread(
            Confirm.ask,
            "Apply the deletion?",
            console=self._console,
            default=False,
        )

    async def confirm_remote_sync(self) -> bool:
        """Ask whether to push the catalog to the remote sheet.

        Returns:
            bool: True to push.
        """
        return await asyncio.to_thread(
            Confirm.ask,
            "Push the catalog to the remote sheet?",
            console=self._console,
            default=True,
        )


def parse_selection(answer: str, compound_keys: Sequence[str]) -> list[str]:
    """Interpret a selection answer against a numbered key list.

    Accepts ``all``, ``none`` (or blank), and comma separated 1-based numbers
    or ranges. Out-of-range numbers are ignored.

    Returns:
        list[str]: Selected keys in list order.

    Raises:
        ValueError: If the answer contains a non-numeric token.
    """
    text = answer.strip().lower()
    if text in ("", SELECT_NONE):
        return []
    if text == SELECT_ALL:
        return list(compound_keys)
    chosen: set[int] = set()
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        if "-" in token:
            start_text, end_text = token.split("-", 1)
            start, end = int(start_text), int(end_text)
            chosen.update(range(min(start, end), max(start, end) + 1))
        else:
            chosen.add(int(token))
    return [
        compound_key
        for index, compound_key in enumerate(compound_keys, start=1)
        if index in chosen
    ]
