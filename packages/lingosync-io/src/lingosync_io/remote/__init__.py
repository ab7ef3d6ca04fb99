"""Remote sheet adapters for lingosync."""

from lingosync_io.remote.google_sheets import (
    GoogleSheetsClient,
    ServiceAccountTokenProvider,
    TokenProvider,
)

__all__ = ["GoogleSheetsClient", "ServiceAccountTokenProvider", "TokenProvider"]
