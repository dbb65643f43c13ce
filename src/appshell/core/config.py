"""Configuration: env, settings files, platform project locations."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

PLATFORM_NAME = "electron"
DEFAULT_PLATFORM_VERSION = "1.0.0"
SETTINGS_DIR_NAME = ".appshell"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Locations:
    """Well-known paths inside a platform project (e.g. MyApp/platforms/electron)."""

    root: Path

    @property
    def www(self) -> Path:
        return self.root / "www"

    @property
    def platform_www(self) -> Path:
        return self.root / "platform_www"

    @property
    def res(self) -> Path:
        return self.root / "res"

    @property
    def config_xml(self) -> Path:
        return self.root / "config.xml"

    @property
    def build(self) -> Path:
        return self.root / "build"

    @property
    def plugins(self) -> Path:
        """Per-plugin storage area: the install ledger and the backups of replaced files."""
        return self.root / "plugins"

    @property
    def frameworks(self) -> Path:
        return self.root / "frameworks"

    def as_dict(self) -> dict[str, str]:
        return {
            "root": str(self.root),
            "www": str(self.www),
            "platformWww": str(self.platform_www),
            "res": str(self.res),
            "configXml": str(self.config_xml),
            "build": str(self.build),
            "plugins": str(self.plugins),
            "frameworks": str(self.frameworks),
        }


@dataclass
class Config:
    root: Path = field(default_factory=Path.cwd)
    platform: str = PLATFORM_NAME
    platform_version: str = DEFAULT_PLATFORM_VERSION
    use_platform_www: bool = False
    verbose: bool = False

    @property
    def settings_dir(self) -> Path:
        return self.root / SETTINGS_DIR_NAME

    @property
    def locations(self) -> Locations:
        return Locations(root=self.root)


def _apply_settings(config: Config, path: Path) -> None:
    """Apply a single settings.json file to config."""
    if not path.exists():
        return
    data = json.loads(path.read_text())
    if "platformVersion" in data:
        config.platform_version = str(data["platformVersion"])
    if "usePlatformWww" in data:
        config.use_platform_www = bool(data["usePlatformWww"])


def load_config(
    root: Path | None = None,
    platform_version: str | None = None,
    use_platform_www: bool | None = None,
    verbose: bool = False,
) -> Config:
    """Load config with priority: CLI args > env > .env > settings.local.json > settings.json > defaults."""
    load_dotenv()

    config = Config(root=(root or Path.cwd()).resolve())
    config.verbose = verbose

    _apply_settings(config, config.settings_dir / "settings.json")
    _apply_settings(config, config.settings_dir / "settings.local.json")

    if env_version := os.getenv("APPSHELL_PLATFORM_VERSION"):
        config.platform_version = env_version
    if env_www := os.getenv("APPSHELL_USE_PLATFORM_WWW"):
        config.use_platform_www = env_www.strip().lower() in _TRUTHY

    if platform_version:
        config.platform_version = platform_version
    if use_platform_www is not None:
        config.use_platform_www = use_platform_www

    return config
