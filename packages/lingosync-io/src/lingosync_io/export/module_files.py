"""Write one translation file per catalog module."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import orjson

from lingosync_core.ports.export import ModuleEmitterProtocol
from lingosync_core.ports.storage import (
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from lingosync_schemas.catalog import Catalog, ModuleEntries
from lingosync_schemas.primitives import ModuleFormat

TS_TEMPLATE = "const translations = {body};\n\nexport default translations;\n"


class ModuleFileEmitter(ModuleEmitterProtocol):
    """Emit ``{language: {key: text}}`` files under the output directory."""

    def __init__(
        self,
        output_dir: str,
        languages: Sequence[str],
        module_format: ModuleFormat = ModuleFormat.TS,
    ) -> None:
        """Initialize the emitter.

        Args:
            output_dir: Root directory for module files.
            languages: Languages to emit, in order.
            module_format: ``ts`` for an ES module, ``json`` for plain JSON.
        """
        self._output_dir = Path(output_dir)
        self._languages = list(languages)
        self._format = ModuleFormat(module_format)

    def render(self, entries: ModuleEntries) -> str:
        """Render one module's file contents.

        Missing translations fall back to the key text.

        Returns:
            str: File contents.
        """
        grouped = {
            language: {
                key: entry.translations.get(language) or key
                for key, entry in entries.items()
            }
            for language in self._languages
        }
        body = orjson.dumps(grouped, option=orjson.OPT_INDENT_2).decode("utf-8")
        if self._format == ModuleFormat.JSON:
            return body + "\n"
        return TS_TEMPLATE.format(body=body)

    def target_path(self, module_path: str) -> Path:
        """Return the file a module is written to.

        Returns:
            Path: Path under the output directory.

        Raises:
            StorageError: If the module path escapes the output directory.
        """
        relative = Path(module_path)
        if relative.is_absolute() or ".." in relative.parts:
            raise StorageError(
                StorageErrorInfo(
                    code=StorageErrorCode.VALIDATION_ERROR,
                    message=f"Module path escapes the output directory: {module_path}",
                    details=StorageErrorDetails(
                        operation="emit_module", path=module_path
                    ),
                )
            )
        if self._format == ModuleFormat.JSON:
            relative = relative.with_suffix(".json")
        elif not relative.suffix:
            relative = relative.with_suffix(".ts")
        return self._output_dir / relative

    async def emit(self, catalog: Catalog) -> list[str]:
        """Write every module file.

        Returns:
            list[str]: Written file paths, in catalog order.

        Raises:
            StorageError: If a file cannot be written.
        """
        written: list[str] = []
        for module_path, entries in catalog.items():
            path = self.target_path(module_path)
            contents = self.render(entries)
            try:
                await asyncio.to_thread(_write_text, path, contents)
            except OSError as exc:
                raise StorageError(
                    StorageErrorInfo(
                        code=(
                            StorageErrorCode.PERMISSION_DENIED
                            if isinstance(exc, PermissionError)
                            else StorageErrorCode.IO_ERROR
                        ),
                        message=f"Cannot write module file {path}: {exc}",
                        details=StorageErrorDetails(
                            operation="emit_module", path=str(path)
                        ),
                    )
                ) from exc
            written.append(str(path))
        return written


def _write_text(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
