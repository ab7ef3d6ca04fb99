"""Secret redaction for log output."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from lingosync_schemas.primitives import JsonValue

REDACTED = "[REDACTED]"

DEFAULT_SECRET_PATTERNS = (
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.]{20,}"),
    re.compile(r"ya29\.[a-zA-Z0-9_\-\.]{20,}"),
    re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]*?-----END [A-Z ]*PRIVATE KEY-----"),
)


class Redactor:
    """Replace known secret values and secret-shaped strings."""

    def __init__(
        self,
        literal_values: Iterable[str] = (),
        patterns: Iterable[re.Pattern[str]] = DEFAULT_SECRET_PATTERNS,
    ) -> None:
        """Initialize with literal secrets and regex patterns.

        Args:
            literal_values: Exact secret values, e.g. resolved API keys.
            patterns: Compiled patterns matching secret-shaped text.
        """
        # Longest first so a secret containing another is fully replaced.
        self._literals = sorted(
            (value for value in literal_values if value), key=len, reverse=True
        )
        self._patterns = list(patterns)

    def redact(self, value: str) -> str:
        """Redact secrets from a string.

        Returns:
            str: Text with secrets replaced by ``[REDACTED]``.
        """
        for literal in self._literals:
            value = value.replace(literal, REDACTED)
        for pattern in self._patterns:
            value = pattern.sub(REDACTED, value)
        return value

    def redact_data(self, data: Mapping[str, JsonValue]) -> dict[str, JsonValue]:
        """Redact every string nested in a JSON object.

        Returns:
            dict[str, JsonValue]: Redacted copy.
        """
        return {key: self._redact_value(value) for key, value in data.items()}

    def _redact_value(self, value: JsonValue) -> JsonValue:
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return self.redact_data(value)
        if isinstance(value, list):
            return [self._redact_value(item) for item in value]
        return value
