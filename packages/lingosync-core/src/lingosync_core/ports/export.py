"""Protocol definitions for writing per-module translation files."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lingosync_schemas.catalog import Catalog


@runtime_checkable
class ModuleEmitterProtocol(Protocol):
    """Protocol for emitting one translation file per catalog module."""

    async def emit(self, catalog: Catalog) -> list[str]:
        """Write module files and return their paths."""
        raise NotImplementedError
