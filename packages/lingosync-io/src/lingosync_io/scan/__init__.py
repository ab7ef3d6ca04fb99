"""Source scanning adapters for lingosync."""

from lingosync_io.scan.markers import (
    MarkerExtractor,
    build_marker_pattern,
    discover_source_files,
)

__all__ = ["MarkerExtractor", "build_marker_pattern", "discover_source_files"]
