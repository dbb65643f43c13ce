"""Platform: the Electron platform API, prepare step and build settings."""

from .api import PlatformApi
from .build import create_build_settings, deep_merge, prepare_build_settings, write_build_settings
from .prepare import prepare, read_app_config

__all__ = [
    "PlatformApi",
    "create_build_settings",
    "deep_merge",
    "prepare",
    "prepare_build_settings",
    "read_app_config",
    "write_build_settings",
]
