"""Error types raised by the platform API and plugin installers."""

from __future__ import annotations


class PlatformError(Exception):
    """Base class for errors raised by appshell."""


class InvalidPluginError(PlatformError, ValueError):
    """Plugin descriptor is missing or structurally invalid. Raised before any mutation."""


class RegistryWriteError(PlatformError):
    """Writing the module registry or plugin manifest failed after files were installed.

    The filesystem changes of the batch are already committed at this point; only the
    registry write needs to be retried (``PlatformApi.save_registry``).
    """

    def __init__(self, path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(
            f"failed to write {path}: {cause}. "
            "plugin files are installed; retry the registry write with save_registry()"
        )
