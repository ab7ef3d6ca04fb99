"""Reference and scan result schemas produced by extractors."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from lingosync_schemas.base import BaseSchema
from lingosync_schemas.primitives import EpochMillis


class Reference(BaseSchema):
    """One call site that uses a translation key."""

    model_config = ConfigDict(str_strip_whitespace=False)

    key: str = Field(..., min_length=1, description="Translation key text")
    file_path: str = Field(..., min_length=1, description="Source file path")
    line: int = Field(0, ge=0, description="1-based line, 0 if unknown")
    column: int = Field(0, ge=0, description="1-based column, 0 if unknown")
    call_expression: str = Field("", description="Matched call expression text")
    scan_timestamp: EpochMillis | None = Field(
        None, description="Epoch millis when the reference was scanned"
    )


class NewText(BaseSchema):
    """Text discovered in source that was turned into a new key."""

    model_config = ConfigDict(str_strip_whitespace=False)

    key: str = Field(..., min_length=1, description="Generated key text")
    source_file: str = Field(..., min_length=1, description="Source file path")


class ScanResult(BaseSchema):
    """Extractor output for one file."""

    references: list[Reference] = Field(
        default_factory=list, description="Key references found"
    )
    new_text: list[NewText] = Field(
        default_factory=list, description="Newly discovered text"
    )

    def all_references(self) -> list[Reference]:
        """Return references with new text folded in as references.

        Returns:
            list[Reference]: Existing references followed by one per new text.
        """
        folded = list(self.references)
        folded.extend(
            Reference(key=item.key, file_path=item.source_file)
            for item in self.new_text
        )
        return folded
