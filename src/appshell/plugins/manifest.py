"""Plugin list manifest (cordova_plugins.js): the module list the app loads at startup."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from appshell.core.utils import atomic_write_text

from .registry import ModuleEntry, RegistryState

logger = logging.getLogger(__name__)

PLUGIN_LIST_FILENAME = "cordova_plugins.js"
PLUGIN_LIST_MODULE_ID = "cordova/plugin_list"

Wrapper = Callable[[str, str], str]


def serialize_modules(modules: Iterable[ModuleEntry]) -> str:
    return json.dumps([m.to_dict() for m in modules], indent=4)


def serialize_metadata(metadata: Mapping[str, str]) -> str:
    return json.dumps(dict(metadata), indent=4)


def cordova_define(modules_json: str, metadata_json: str) -> str:
    """Wrap serialized data in a module definition exporting the list plus ``.metadata``."""
    return (
        f"cordova.define('{PLUGIN_LIST_MODULE_ID}', function(require, exports, module) {{\n"
        f"module.exports = {modules_json};\n"
        f"module.exports.metadata =\n"
        f"// TOP OF METADATA\n"
        f"{metadata_json};\n"
        f"// BOTTOM OF METADATA\n"
        f"}});\n"
    )


def render_plugin_list(state: RegistryState, wrapper: Wrapper = cordova_define) -> str:
    return wrapper(serialize_modules(state.modules), serialize_metadata(state.plugin_metadata))


def write_plugin_list(
    target_dir: Path, state: RegistryState, wrapper: Wrapper = cordova_define
) -> Path:
    """Regenerate the whole manifest in *target_dir*; returns the written path."""
    path = target_dir / PLUGIN_LIST_FILENAME
    atomic_write_text(path, render_plugin_list(state, wrapper))
    logger.debug(f"Wrote {len(state.modules)} module(s) to {path}")
    return path
