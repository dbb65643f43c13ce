"""Platform API: add/remove plugins in an Electron platform project.

``add_plugin`` and ``remove_plugin`` run every install item through an
``ActionStack`` so a failing item rolls back the ones before it. Only after
the whole batch succeeds are the project file, config munge, module registry
and ``cordova_plugins.js`` updated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Union

from appshell.core.config import Config
from appshell.core.errors import InvalidPluginError, RegistryWriteError
from appshell.core.utils import remove_path
from appshell.plugins import handler
from appshell.plugins.actions import ActionStack
from appshell.plugins.manifest import PLUGIN_LIST_FILENAME, write_plugin_list
from appshell.plugins.models import InstallOptions, Plugin, normalize_options
from appshell.plugins.munger import PlatformMunger
from appshell.plugins.project import PackageJsonProject
from appshell.plugins.registry import PlatformJson, module_entry, module_file

logger = logging.getLogger(__name__)

Options = Union[InstallOptions, Mapping[str, Any], None]


class PlatformApi:
    def __init__(self, config: Config):
        self.config = config
        self.platform = config.platform
        self.root = config.root
        self.locations = config.locations
        self.platform_json = PlatformJson.load(self.root, self.platform)
        self.munger = PlatformMunger(self.platform, self.root, self.platform_json)

    def get_platform_info(self) -> dict[str, Any]:
        return {
            "locations": self.locations.as_dict(),
            "root": str(self.root),
            "name": self.platform,
            "version": self.config.platform_version,
        }

    def _options(self, options: Options) -> InstallOptions:
        return normalize_options(
            options, self.config.platform_version, self.config.use_platform_www
        )

    def _target_dir(self, options: InstallOptions) -> Path:
        return self.locations.platform_www if options.use_platform_www else self.locations.www

    def parse_project_file(self) -> PackageJsonProject:
        return handler.parse_project_file(self.root)

    # ── Action building ─────────────────────────────────────────────

    def _build_actions(
        self,
        plugin: Plugin,
        options: InstallOptions,
        project: PackageJsonProject,
        uninstalling: bool,
    ) -> ActionStack:
        actions = ActionStack()
        for item in plugin.get_install_items(self.platform):
            pair = handler.get_handler(item)
            if pair is None:
                continue
            install_args = (item, plugin.dir, self.root, plugin.id, options, project)
            uninstall_args = (item, self.root, plugin.id, options, project)
            label = f"{item.item_type!s} {item.src}"
            if uninstalling:
                actions.push(pair.uninstall, uninstall_args, pair.install, install_args, label)
            else:
                actions.push(pair.install, install_args, pair.uninstall, uninstall_args, label)
        return actions

    def _check_plugin(self, plugin: Plugin | None) -> Plugin:
        if plugin is None or not isinstance(plugin, Plugin):
            raise InvalidPluginError(
                "The parameter is incorrect. The first parameter should be a valid Plugin instance"
            )
        if not plugin.id:
            raise InvalidPluginError("plugin descriptor has no id")
        return plugin

    # ── Public API ──────────────────────────────────────────────────

    def add_plugin(self, plugin: Plugin | None, options: Options = None) -> None:
        """Install *plugin*'s items, then record its modules and config changes.

        Raises InvalidPluginError before touching anything when *plugin* is missing,
        the installer's own error when an item fails (after rollback), and
        RegistryWriteError when files are installed but the registry write fails.
        """
        plugin = self._check_plugin(plugin)
        opts = self._options(options)
        project = self.parse_project_file()

        logger.info(f"Installing {plugin.id}@{plugin.version or '?'} into {self.platform}")
        actions = self._build_actions(plugin, opts, project, uninstalling=False)
        actions.process(self.platform, self.root)

        project.write()
        if not opts.variables.get("PACKAGE_NAME"):
            opts.variables["PACKAGE_NAME"] = handler.package_name(self.root)

        self.munger.add_plugin_changes(
            plugin, opts.variables, is_top_level=True, should_increment=True
        )
        entries = [module_entry(plugin.id, m) for m in plugin.get_js_modules(self.platform)]
        self.platform_json.add_modules(plugin.id, plugin.version, entries)
        self.save_registry(self._target_dir(opts))
        logger.info(f"Installed {plugin.id} ({len(actions.completed)} item(s))")

    def remove_plugin(self, plugin: Plugin | None, options: Options = None) -> None:
        """Uninstall *plugin*'s items; a failed removal rolls back to fully installed."""
        plugin = self._check_plugin(plugin)
        opts = self._options(options)
        project = self.parse_project_file()

        logger.info(f"Removing {plugin.id} from {self.platform}")
        actions = self._build_actions(plugin, opts, project, uninstalling=True)
        actions.process(self.platform, self.root)

        project.write()
        self.munger.remove_plugin_changes(plugin, is_top_level=True)
        files = [module_file(plugin.id, m) for m in plugin.get_js_modules(self.platform)]
        self.platform_json.remove_modules(plugin.id, files)
        self.save_registry(self._target_dir(opts))

        remove_path(self.locations.plugins / plugin.id)
        logger.info(f"Removed {plugin.id}")

    def save_registry(self, target_dir: Path | None = None) -> None:
        """Regenerate cordova_plugins.js and write the registry and config changes.

        Safe to call again after a RegistryWriteError; it rewrites both files in full.
        """
        target_dir = target_dir or self._target_dir(self._options(None))
        try:
            write_plugin_list(target_dir, self.platform_json.state)
        except OSError as e:
            raise RegistryWriteError(target_dir / PLUGIN_LIST_FILENAME, e) from e
        try:
            self.munger.save_all()
        except OSError as e:
            raise RegistryWriteError(self.platform_json.path, e) from e

    # ── Queries ─────────────────────────────────────────────────────

    def installed_plugins(self) -> dict[str, str]:
        """Plugin id -> version for every plugin with recorded metadata."""
        return self.platform_json.plugin_metadata
