"""Module file export for lingosync."""

from lingosync_io.export.module_files import ModuleFileEmitter

__all__ = ["ModuleFileEmitter"]
