"""Prepare: refresh the platform's www from the app and write the files generated from config.xml.

Written into the platform ``www/``:

    manifest.json               copied from the app's www, or generated
    package.json                app metadata; keys it does not manage are kept
    cdv-electron-settings.json  ``isRelease`` for the Electron main process
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from appshell.core.config import Config, Locations
from appshell.core.errors import PlatformError
from appshell.core.utils import atomic_write_json, copy_path, read_json
from appshell.plugins.project import DEFAULT_PACKAGE_NAME

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
PACKAGE_FILENAME = "package.json"
SETTINGS_FILENAME = "cdv-electron-settings.json"

MANIFEST_DEFAULTS: dict[str, Any] = {
    "background_color": "#FFF",
    "display": "standalone",
    "orientation": "any",
    "start_url": "index.html",
}

PACKAGE_DEFAULTS: dict[str, str] = {
    "name": DEFAULT_PACKAGE_NAME,
    "displayName": "HelloCordova",
    "version": "1.0.0",
    "description": "A sample Apache Cordova application that responds to the deviceready event.",
    "homepage": "https://cordova.io",
    "license": "Apache-2.0",
    "author": "Apache Cordova Team",
}

_ORIENTATIONS = ("landscape", "portrait")
_THEME_COLOR = re.compile(r'<meta(?=[^>]*name="theme-color")\s[^>]*content="([^>]*)"', re.IGNORECASE)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _first(elem: ET.Element, name: str) -> ET.Element | None:
    return next((c for c in elem if _local(c.tag) == name), None)


def _text(elem: ET.Element | None) -> str:
    return (elem.text or "").strip() if elem is not None else ""


@dataclass(frozen=True)
class AppConfig:
    """The values of an app's config.xml that prepare writes out."""

    package_name: str = ""
    version: str = ""
    name: str = ""
    short_name: str = ""
    description: str = ""
    author: str = ""
    author_href: str = ""
    license: str = ""
    content_src: str = ""
    preferences: dict[str, str] = field(default_factory=dict)
    icons: tuple[dict[str, str], ...] = ()

    def preference(self, name: str) -> str:
        return self.preferences.get(name.lower(), "")


def _icons(root: ET.Element, platform: str) -> tuple[dict[str, str], ...]:
    containers = [root] + [
        p for p in root if _local(p.tag) == "platform" and p.get("name") == platform
    ]
    return tuple(
        dict(icon.attrib)
        for c in containers
        for icon in c
        if _local(icon.tag) == "icon" and icon.get("src")
    )


def read_app_config(path: Path, platform: str = "electron") -> AppConfig:
    """Read *path*; a missing file gives an empty AppConfig. Raises PlatformError on bad XML."""
    if not path.is_file():
        logger.debug(f"No config.xml at {path}; using defaults")
        return AppConfig()
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise PlatformError(f"invalid XML in {path}: {e}") from e

    name = _first(root, "name")
    author = _first(root, "author")
    content = _first(root, "content")
    preferences = {
        p.get("name", "").lower(): p.get("value", "")
        for p in root
        if _local(p.tag) == "preference" and p.get("name")
    }
    return AppConfig(
        package_name=root.get("id", ""),
        version=root.get("version", ""),
        name=_text(name),
        short_name=name.get("short", "") if name is not None else "",
        description=_text(_first(root, "description")),
        author=_text(author),
        author_href=author.get("href", "") if author is not None else "",
        license=_text(_first(root, "license")),
        content_src=content.get("src", "") if content is not None else "",
        preferences=preferences,
        icons=_icons(root, platform),
    )


# ── www ─────────────────────────────────────────────────────────────


def update_www(locations: Locations, app_www: Path | None) -> None:
    """Merge the app's www, then platform_www, into the platform's www."""
    if app_www is not None and app_www.is_dir():
        copy_path(app_www, locations.www)
        logger.debug(f"Copied {app_www} -> {locations.www}")
    elif app_www is not None:
        logger.debug(f"No app www at {app_www}; skipping")
    if locations.platform_www.is_dir():
        copy_path(locations.platform_www, locations.www)
        logger.debug(f"Copied {locations.platform_www} -> {locations.www}")


# ── manifest.json ───────────────────────────────────────────────────


def _theme_color(www: Path, start_url: str, app: AppConfig) -> str:
    start_page = www / start_url
    if start_page.is_file():
        match = _THEME_COLOR.search(start_page.read_text(encoding="utf-8", errors="replace"))
        if match:
            return match.group(1)
    return app.preference("StatusBarBackgroundColor")


def build_manifest(app: AppConfig, www: Path) -> dict[str, Any]:
    manifest = dict(MANIFEST_DEFAULTS)
    if app.name:
        manifest["name"] = app.name
    if app.short_name:
        manifest["short_name"] = app.short_name
    if app.package_name:
        manifest["version"] = app.package_name
    if app.description:
        manifest["description"] = app.description
    if app.author:
        manifest["author"] = app.author
    manifest["icons"] = [
        {
            "src": icon["src"],
            "type": "image/png",
            "sizes": f"{icon.get('width', '')}x{icon.get('height', '')}",
        }
        for icon in app.icons
    ]
    orientation = app.preference("Orientation")
    if orientation in _ORIENTATIONS:
        manifest["orientation"] = orientation
    if app.content_src:
        manifest["start_url"] = app.content_src
    theme_color = _theme_color(www, manifest["start_url"], app)
    if theme_color:
        manifest["theme_color"] = theme_color
    return manifest


def write_manifest(locations: Locations, app: AppConfig, app_www: Path | None = None) -> Path:
    """Copy the app's own manifest.json when it has one; generate it otherwise."""
    path = locations.www / MANIFEST_FILENAME
    source = app_www / MANIFEST_FILENAME if app_www is not None else None
    if source is not None and source.is_file():
        logger.debug(f"Copying {source} -> {path}")
        copy_path(source, path)
    else:
        logger.debug(f"Generating {path}")
        atomic_write_json(path, build_manifest(app, locations.www))
    return path


# ── package.json ────────────────────────────────────────────────────


def build_package(app: AppConfig, existing: dict[str, Any] | None = None) -> dict[str, Any]:
    values = {
        "name": app.package_name,
        "displayName": app.name,
        "version": app.version,
        "description": app.description,
        "homepage": app.author_href,
        "license": app.license,
        "author": app.author,
    }
    package: dict[str, Any] = {"main": "main.js", **(existing or {})}
    for key, default in PACKAGE_DEFAULTS.items():
        package[key] = values[key] or default
    return package


def write_package_json(locations: Locations, app: AppConfig) -> Path:
    path = locations.www / PACKAGE_FILENAME
    existing = read_json(path, default={})
    atomic_write_json(path, build_package(app, existing if isinstance(existing, dict) else {}))
    return path


# ── cdv-electron-settings.json ──────────────────────────────────────


def write_settings(locations: Locations, release: bool = False) -> Path:
    path = locations.www / SETTINGS_FILENAME
    settings = read_json(path, default={})
    if not isinstance(settings, dict):
        settings = {}
    settings["isRelease"] = release
    atomic_write_json(path, settings)
    return path


# ── Entry point ─────────────────────────────────────────────────────


def prepare(
    config: Config,
    app_www: Path | None = None,
    config_xml: Path | None = None,
    release: bool = False,
) -> list[Path]:
    """Refresh www and write its generated files. Returns the paths written.

    *app_www* defaults to the app's ``www`` two levels above the platform root
    (``MyApp/platforms/electron`` -> ``MyApp/www``); *config_xml* defaults to
    the platform's own config.xml.
    """
    locations = config.locations
    if app_www is None:
        app_www = config.root.parent.parent / "www"
    app = read_app_config(config_xml or locations.config_xml, config.platform)

    logger.info(f"Preparing {config.platform} in {config.root}")
    update_www(locations, app_www)
    written = [
        write_manifest(locations, app, app_www),
        write_package_json(locations, app),
        write_settings(locations, release),
    ]
    logger.info(f"Prepared {config.platform} ({'release' if release else 'debug'})")
    return written
