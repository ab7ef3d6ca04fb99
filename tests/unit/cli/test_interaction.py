"""Unit tests for CLI interaction policies."""

import asyncio
import io

import pytest
from rich.console import Console
from rich.prompt import Prompt

from lingosync_cli.interaction import (
    AutoInteraction,
    ConsoleInteraction,
    parse_selection,
)
from lingosync_schemas.primitives import SelectionMode

KEYS = ["[a.ts][One]", "[a.ts][Two]", "[b.ts][Three]", "[b.ts][Four]"]


@pytest.mark.parametrize(
    ("answer", "expected"),
    [
        ("", []),
        ("none", []),
        (" ALL ", KEYS),
        ("1", ["[a.ts][One]"]),
        ("3,1", ["[a.ts][One]", "[b.ts][Three]"]),
        ("2-3", ["[a.ts][Two]", "[b.ts][Three]"]),
        ("4-3, 9", ["[b.ts][Three]", "[b.ts][Four]"]),
    ],
)
def test_parse_selection(answer: str, expected: list[str]) -> None:
    """Selections accept keywords, numbers and ranges in list order."""
    assert parse_selection(answer, KEYS) == expected


def test_parse_selection_rejects_words() -> None:
    """Anything else is a validation error."""
    with pytest.raises(ValueError):
        parse_selection("first", KEYS)


def test_auto_interaction_defaults_keep_everything() -> None:
    """The default policy selects nothing and declines deletion."""
    interaction = AutoInteraction()

    assert asyncio.run(interaction.select_keys_for_deletion(KEYS)) == []
    assert asyncio.run(interaction.confirm_deletion(KEYS, "p.json")) is False
    assert asyncio.run(interaction.confirm_remote_sync()) is True


def test_auto_interaction_select_all() -> None:
    """The all policy selects and confirms every entry."""
    interaction = AutoInteraction(
        selection_mode=SelectionMode.ALL,
        auto_confirm_delete=True,
        confirm_remote_sync=False,
    )

    assert asyncio.run(interaction.select_keys_for_deletion(KEYS)) == KEYS
    assert asyncio.run(interaction.confirm_deletion(KEYS, "p.json")) is True
    assert asyncio.run(interaction.confirm_remote_sync()) is False


def test_console_interaction_skips_prompt_for_nothing() -> None:
    """No prompt is shown when nothing is unused."""
    stream = io.StringIO()
    interaction = ConsoleInteraction(Console(file=stream))

    assert asyncio.run(interaction.select_keys_for_deletion([])) == []
    assert stream.getvalue() == ""


def test_console_interaction_reprompts_on_unreadable_answer(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A mistyped selection is asked again instead of failing the run."""
    answers = iter(["1,x", "2"])
    prompts: list[str] = []

    def _ask(prompt: str, **kwargs: object) -> str:
        prompts.append(prompt)
        return next(answers)

    monkeypatch.setattr(Prompt, "ask", _ask)
    stream = io.StringIO()
    interaction = ConsoleInteraction(Console(file=stream))

    selected = asyncio.run(interaction.select_keys_for_deletion(KEYS))

    assert selected == ["[a.ts][Two]"]
    assert len(prompts) == 2
    assert "Could not read" in stream.getvalue()
