"""Type dispatch table: install/uninstall operations per install item kind.

Every operation has the same shape so the action stack can pair any
installer with its uninstaller:

    install(item, plugin_dir, root, plugin_id, options, project)
    uninstall(item, root, plugin_id, options, project)

``root`` is the platform project directory. Web files land in ``www/`` or,
with ``options.use_platform_www``, in ``platform_www/``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from appshell.core.config import Locations
from appshell.core.errors import PlatformError
from appshell.core.utils import copy_path, safe_path

from .ledger import InstallLedger
from .models import Asset, Framework, InstallItem, InstallOptions, ItemType, JsModule, SourceFile
from .project import PackageJsonProject, parse_project_file
from .registry import module_file

logger = logging.getLogger(__name__)

_BOM = "\ufeff"


@dataclass(frozen=True)
class Installer:
    install: Callable[..., None]
    uninstall: Callable[..., None]


def www_dir(root: Path) -> Path:
    return Locations(root).www


def package_name(root: Path) -> str:
    return parse_project_file(root).package_name


def target_www(root: Path, options: InstallOptions) -> Path:
    return Locations(root).platform_www if options.use_platform_www else www_dir(root)


# ── js-module ───────────────────────────────────────────────────────


def wrap_js_module(module_id: str, source: str, is_json: bool = False) -> str:
    """Wrap module source in the ``cordova.define`` call the runtime loader expects."""
    source = source.removeprefix(_BOM)
    if is_json:
        source = f"module.exports = {source}"
    return f'cordova.define("{module_id}", function(require, exports, module) {{\n{source}\n}});\n'


def _write_text(dest: Path, content: str) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(content, encoding="utf-8")


def install_js_module(
    item: JsModule,
    plugin_dir: Path,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    source_path = safe_path(item.src, plugin_dir)
    content = source_path.read_text(encoding="utf-8")
    wrapped = wrap_js_module(
        f"{plugin_id}.{item.module_name}", content, is_json=source_path.suffix == ".json"
    )
    www = target_www(root, options)
    dest = safe_path(module_file(plugin_id, item), www)
    InstallLedger(root, plugin_id).place(dest, lambda: _write_text(dest, wrapped))
    logger.debug(f"Installed js-module {item.src} -> {dest}")


def uninstall_js_module(
    item: JsModule,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    rel = module_file(plugin_id, item)
    InstallLedger(root, plugin_id).release(safe_path(rel, target_www(root, options)))
    logger.debug(f"Removed js-module {rel}")


# ── asset ───────────────────────────────────────────────────────────


def install_asset(
    item: Asset,
    plugin_dir: Path,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    src = safe_path(item.src, plugin_dir)
    if not src.exists():
        raise FileNotFoundError(f"asset not found: {src}")
    dest = safe_path(item.target, target_www(root, options))
    InstallLedger(root, plugin_id).place(dest, lambda: copy_path(src, dest))
    logger.debug(f"Installed asset {item.src} -> {dest}")


def uninstall_asset(
    item: Asset,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    dest = safe_path(item.target, target_www(root, options))
    InstallLedger(root, plugin_id).release(dest)
    logger.debug(f"Removed asset {item.target}")


# ── source-file ─────────────────────────────────────────────────────


def _source_dest(item: SourceFile) -> str:
    name = Path(item.src).name
    return os.path.join(item.target_dir, name) if item.target_dir else name


def install_source_file(
    item: SourceFile,
    plugin_dir: Path,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    src = safe_path(item.src, plugin_dir)
    if not src.is_file():
        raise FileNotFoundError(f"source-file not found: {src}")
    dest = safe_path(_source_dest(item), root)
    InstallLedger(root, plugin_id).place(dest, lambda: copy_path(src, dest))
    logger.debug(f"Installed source-file {item.src} -> {dest}")


def uninstall_source_file(
    item: SourceFile,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    rel = _source_dest(item)
    InstallLedger(root, plugin_id).release(safe_path(rel, root))
    logger.debug(f"Removed source-file {rel}")


# ── framework ───────────────────────────────────────────────────────


def _custom_framework_dir(root: Path, plugin_id: str, item: Framework) -> Path:
    return Locations(root).frameworks / plugin_id / item.name


def _require_project(project: PackageJsonProject | None, item: Framework) -> PackageJsonProject:
    if project is None:
        raise PlatformError(f"framework {item.src!r} needs a project file to register into")
    return project


def install_framework(
    item: Framework,
    plugin_dir: Path,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    project = _require_project(project, item)
    ledger = InstallLedger(root, plugin_id)
    if item.custom:
        src = safe_path(item.src, plugin_dir)
        if not src.is_dir():
            raise FileNotFoundError(f"custom framework directory not found: {src}")
        dest = _custom_framework_dir(root, plugin_id, item)
        ledger.place(dest, lambda: copy_path(src, dest))
        spec = "file:" + os.path.relpath(dest, project.path.parent).replace(os.sep, "/")
    else:
        spec = item.spec or "*"
    ledger.claim_dependency(item.name, project.dependencies.get(item.name))
    project.add_dependency(item.name, spec)
    logger.debug(f"Registered framework {item.name} ({spec})")


def uninstall_framework(
    item: Framework,
    root: Path,
    plugin_id: str,
    options: InstallOptions,
    project: PackageJsonProject | None = None,
) -> None:
    project = _require_project(project, item)
    ledger = InstallLedger(root, plugin_id)
    recorded, previous = ledger.release_dependency(item.name)
    if recorded and previous is not None:
        project.add_dependency(item.name, previous)
    else:
        project.remove_dependency(item.name)
    if item.custom:
        ledger.release(_custom_framework_dir(root, plugin_id, item))
    logger.debug(f"Unregistered framework {item.name}")


HANDLERS = MappingProxyType(
    {
        ItemType.SOURCE_FILE: Installer(install_source_file, uninstall_source_file),
        ItemType.FRAMEWORK: Installer(install_framework, uninstall_framework),
        ItemType.ASSET: Installer(install_asset, uninstall_asset),
        ItemType.JS_MODULE: Installer(install_js_module, uninstall_js_module),
    }
)


def get_handler(item: InstallItem) -> Installer | None:
    """Look up the installer pair for *item*; logs and returns None for unknown kinds."""
    handler = HANDLERS.get(item.item_type)
    if handler is None:
        logger.warning(f"unrecognized type {item.item_type!s}, skipping {item.src!r}")
    return handler
