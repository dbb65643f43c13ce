"""Module registry: installed js-modules and plugin metadata, persisted as <platform>.json.

The on-disk record looks like::

    {
      "config_munge": {"files": {}},
      "installed_plugins": {},
      "dependent_plugins": {},
      "modules": [{"file": "plugins/x/www/a.js", "id": "x.a", "pluginId": "x"}],
      "plugin_metadata": {"x": "1.0.0"}
    }

``add_modules`` / ``remove_modules`` are pure functions over ``RegistryState``;
``PlatformJson`` loads the file, applies them and writes the whole file back.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from appshell.core.utils import atomic_write_json, read_json

from .models import JsModule

logger = logging.getLogger(__name__)


# ── Entries ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModuleEntry:
    file: str
    id: str
    plugin_id: str
    clobbers: tuple[str, ...] = ()
    merges: tuple[str, ...] = ()
    runs: bool = False

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"file": self.file, "id": self.id, "pluginId": self.plugin_id}
        if self.clobbers:
            d["clobbers"] = list(self.clobbers)
        if self.merges:
            d["merges"] = list(self.merges)
        if self.runs:
            d["runs"] = True
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModuleEntry:
        return cls(
            file=data["file"],
            id=data.get("id", ""),
            plugin_id=data.get("pluginId", ""),
            clobbers=tuple(data.get("clobbers") or ()),
            merges=tuple(data.get("merges") or ()),
            runs=bool(data.get("runs", False)),
        )


def module_file(plugin_id: str, module: JsModule) -> str:
    """Path of an installed js-module, relative to the www root."""
    return "/".join(["plugins", plugin_id, module.src])


def module_entry(plugin_id: str, module: JsModule) -> ModuleEntry:
    return ModuleEntry(
        file=module_file(plugin_id, module),
        id=f"{plugin_id}.{module.module_name}",
        plugin_id=plugin_id,
        clobbers=tuple(module.clobbers),
        merges=tuple(module.merges),
        runs=module.runs,
    )


# ── State transforms ────────────────────────────────────────────────


@dataclass(frozen=True)
class RegistryState:
    modules: tuple[ModuleEntry, ...] = ()
    plugin_metadata: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def files(self) -> set[str]:
        return {m.file for m in self.modules}

    def modules_for(self, plugin_id: str) -> list[ModuleEntry]:
        return [m for m in self.modules if m.plugin_id == plugin_id]


def add_modules(
    state: RegistryState, plugin_id: str, version: str, entries: Iterable[ModuleEntry]
) -> RegistryState:
    """Append entries whose ``file`` is not yet registered and record the plugin's version."""
    known = set(state.files)
    added: list[ModuleEntry] = []
    for entry in entries:
        if entry.file in known:
            continue
        known.add(entry.file)
        added.append(entry)
    metadata = dict(state.plugin_metadata)
    metadata[plugin_id] = version
    return RegistryState(
        modules=state.modules + tuple(added), plugin_metadata=MappingProxyType(metadata)
    )


def remove_modules(state: RegistryState, plugin_id: str, files: Iterable[str]) -> RegistryState:
    """Drop entries whose ``file`` is in *files* and forget the plugin's metadata.

    *files* are recomputed from the plugin's current js-module list. Entries written
    for modules the plugin no longer declares are left in place.
    """
    to_remove = set(files)
    metadata = dict(state.plugin_metadata)
    metadata.pop(plugin_id, None)
    return RegistryState(
        modules=tuple(m for m in state.modules if m.file not in to_remove),
        plugin_metadata=MappingProxyType(metadata),
    )


# ── On-disk record ──────────────────────────────────────────────────


def _empty_record() -> dict[str, Any]:
    return {
        "config_munge": {"files": {}},
        "installed_plugins": {},
        "dependent_plugins": {},
        "modules": [],
        "plugin_metadata": {},
    }


class PlatformJson:
    """Single owner and writer of the platform's registry file."""

    def __init__(self, path: Path, platform: str, data: dict[str, Any] | None = None):
        self.path = path
        self.platform = platform
        self.data = data if data is not None else _empty_record()
        for key, value in _empty_record().items():
            self.data.setdefault(key, value)

    @classmethod
    def load(cls, root: Path, platform: str) -> PlatformJson:
        path = root / f"{platform}.json"
        return cls(path, platform, read_json(path))

    def save(self) -> None:
        atomic_write_json(self.path, self.data)
        logger.debug(f"Saved module registry {self.path}")

    # registry state

    @property
    def state(self) -> RegistryState:
        return RegistryState(
            modules=tuple(ModuleEntry.from_dict(m) for m in self.data.get("modules") or []),
            plugin_metadata=MappingProxyType(dict(self.data.get("plugin_metadata") or {})),
        )

    @state.setter
    def state(self, value: RegistryState) -> None:
        self.data["modules"] = [m.to_dict() for m in value.modules]
        self.data["plugin_metadata"] = dict(value.plugin_metadata)

    @property
    def modules(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.data.get("modules") or [])

    @property
    def plugin_metadata(self) -> dict[str, str]:
        return dict(self.data.get("plugin_metadata") or {})

    def add_modules(self, plugin_id: str, version: str, entries: Iterable[ModuleEntry]) -> None:
        self.state = add_modules(self.state, plugin_id, version, entries)

    def remove_modules(self, plugin_id: str, files: Iterable[str]) -> None:
        self.state = remove_modules(self.state, plugin_id, files)

    # installed plugin bookkeeping, used by the config munger

    def add_plugin(self, plugin_id: str, variables: Mapping[str, str], is_top_level: bool) -> None:
        key = "installed_plugins" if is_top_level else "dependent_plugins"
        self.data[key][plugin_id] = dict(variables)

    def remove_plugin(self, plugin_id: str, is_top_level: bool) -> None:
        key = "installed_plugins" if is_top_level else "dependent_plugins"
        self.data[key].pop(plugin_id, None)

    def is_plugin_installed(self, plugin_id: str) -> bool:
        return (
            plugin_id in self.data["installed_plugins"]
            or plugin_id in self.data["dependent_plugins"]
        )

    @property
    def config_munge(self) -> dict[str, Any]:
        return self.data["config_munge"]
