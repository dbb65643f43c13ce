"""Plugins: install item models, plugin.xml reader, installers, action stack, module registry."""

from .actions import Action, ActionStack
from .handler import HANDLERS, Installer, get_handler
from .loader import load_plugin, validate_plugin
from .manifest import render_plugin_list, write_plugin_list
from .models import (
    Asset,
    ConfigFileChange,
    Framework,
    InstallItem,
    InstallOptions,
    ItemType,
    JsModule,
    Plugin,
    SourceFile,
    UnsupportedItem,
    normalize_options,
)
from .munger import PlatformMunger
from .project import PackageJsonProject, parse_project_file
from .registry import (
    ModuleEntry,
    PlatformJson,
    RegistryState,
    add_modules,
    module_entry,
    module_file,
    remove_modules,
)

__all__ = [
    "HANDLERS",
    "Action",
    "ActionStack",
    "Asset",
    "ConfigFileChange",
    "Framework",
    "InstallItem",
    "InstallOptions",
    "Installer",
    "ItemType",
    "JsModule",
    "ModuleEntry",
    "PackageJsonProject",
    "PlatformJson",
    "PlatformMunger",
    "Plugin",
    "RegistryState",
    "SourceFile",
    "UnsupportedItem",
    "add_modules",
    "get_handler",
    "load_plugin",
    "module_entry",
    "module_file",
    "normalize_options",
    "parse_project_file",
    "remove_modules",
    "render_plugin_list",
    "validate_plugin",
    "write_plugin_list",
]
