"""lingosync version."""

from __future__ import annotations

from lingosync_schemas.version import VersionInfo

VERSION = VersionInfo(major=0, minor=1, patch=0)
