"""Plugin data models: ItemType, install items, Plugin, InstallOptions."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

_MODULE_NAME_RE = re.compile(r"([^/]+)\.js")


class ItemType(str, Enum):
    """Install item kinds the platform knows how to install."""

    SOURCE_FILE = "source-file"
    FRAMEWORK = "framework"
    ASSET = "asset"
    JS_MODULE = "js-module"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SourceFile:
    src: str
    target_dir: str = ""

    item_type = ItemType.SOURCE_FILE


@dataclass(frozen=True)
class Framework:
    src: str
    custom: bool = False
    spec: str = ""  # dependency version spec; empty = "*"

    item_type = ItemType.FRAMEWORK

    @property
    def name(self) -> str:
        return Path(self.src).name if self.custom else self.src


@dataclass(frozen=True)
class Asset:
    src: str
    target: str

    item_type = ItemType.ASSET


@dataclass(frozen=True)
class JsModule:
    src: str
    name: str = ""
    clobbers: tuple[str, ...] = ()
    merges: tuple[str, ...] = ()
    runs: bool = False

    item_type = ItemType.JS_MODULE

    @property
    def module_name(self) -> str:
        """Declared name, or the src basename without ``.js``."""
        if self.name:
            return self.name
        m = _MODULE_NAME_RE.search(self.src)
        return m.group(1) if m else Path(self.src).stem


@dataclass(frozen=True)
class UnsupportedItem:
    """A native file kind (header-file, lib-file, ...) with no installer on this platform."""

    item_type: str
    attrib: tuple[tuple[str, str], ...] = ()

    @property
    def src(self) -> str:
        return dict(self.attrib).get("src", "")


InstallItem = Union[SourceFile, Framework, Asset, JsModule, UnsupportedItem]


@dataclass(frozen=True)
class ConfigFileChange:
    """A ``<config-file>`` block: XML fragments to add under *parent* in *target*."""

    target: str
    parent: str
    xml: tuple[str, ...] = ()
    after: str = ""


@dataclass
class PlatformItems:
    files_and_frameworks: list[InstallItem] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    js_modules: list[JsModule] = field(default_factory=list)
    config_files: list[ConfigFileChange] = field(default_factory=list)

    def extend(self, other: PlatformItems) -> PlatformItems:
        return PlatformItems(
            files_and_frameworks=self.files_and_frameworks + other.files_and_frameworks,
            assets=self.assets + other.assets,
            js_modules=self.js_modules + other.js_modules,
            config_files=self.config_files + other.config_files,
        )


@dataclass
class Plugin:
    """A plugin descriptor: identity, directory, and its items per platform."""

    id: str
    dir: Path
    version: str = ""
    name: str = ""
    common: PlatformItems = field(default_factory=PlatformItems)
    platforms: dict[str, PlatformItems] = field(default_factory=dict)

    def _items(self, platform: str) -> PlatformItems:
        specific = self.platforms.get(platform)
        return self.common.extend(specific) if specific else self.common

    def get_files_and_frameworks(self, platform: str) -> list[InstallItem]:
        return list(self._items(platform).files_and_frameworks)

    def get_assets(self, platform: str) -> list[Asset]:
        return list(self._items(platform).assets)

    def get_js_modules(self, platform: str) -> list[JsModule]:
        return list(self._items(platform).js_modules)

    def get_config_files(self, platform: str) -> list[ConfigFileChange]:
        return list(self._items(platform).config_files)

    def get_install_items(self, platform: str) -> list[InstallItem]:
        """All items in install order: files and frameworks, then assets, then js-modules."""
        return [
            *self.get_files_and_frameworks(platform),
            *self.get_assets(platform),
            *self.get_js_modules(platform),
        ]


@dataclass
class InstallOptions:
    variables: dict[str, str] = field(default_factory=dict)
    platform_version: str = ""
    use_platform_www: bool = False


def normalize_options(
    options: InstallOptions | Mapping[str, Any] | None,
    platform_version: str,
    use_platform_www: bool = False,
) -> InstallOptions:
    """Return InstallOptions with a variables map and a platform version filled in.

    *use_platform_www* applies when *options* is None or a mapping without a
    ``usePlatformWww`` / ``use_platform_www`` key.
    """
    if options is None:
        opts = InstallOptions(use_platform_www=use_platform_www)
    elif isinstance(options, InstallOptions):
        opts = options
    else:
        opts = InstallOptions(
            variables=dict(options.get("variables") or {}),
            platform_version=str(
                options.get("platformVersion") or options.get("platform_version") or ""
            ),
            use_platform_www=bool(
                options.get("usePlatformWww", options.get("use_platform_www", use_platform_www))
            ),
        )
    if opts.variables is None:
        opts.variables = {}
    if not opts.platform_version:
        opts.platform_version = platform_version
    return opts
