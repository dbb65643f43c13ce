"""Config munger: reference-counted ``<config-file>`` changes applied to project XML files.

Each XML fragment a plugin contributes is tracked in the registry under
``config_munge.files[target].parents[parent]`` as ``{"xml": ..., "count": n}``.
The fragment is grafted into the target file when its count goes 0 -> 1 and
pruned when it drops back to 0, so two plugins adding the same element share it.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .models import ConfigFileChange, Plugin
from .registry import PlatformJson

logger = logging.getLogger(__name__)


def substitute_variables(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``$NAME`` placeholders, longest names first."""
    for name in sorted(variables, key=len, reverse=True):
        text = text.replace(f"${name}", str(variables[name]))
    return text


def _namespace(tag: str) -> str:
    m = re.match(r"\{([^}]*)\}", tag)
    return m.group(1) if m else ""


def _qualify(elem: ET.Element, ns: str) -> ET.Element:
    if ns:
        for e in elem.iter():
            if not e.tag.startswith("{"):
                e.tag = f"{{{ns}}}{e.tag}"
    return elem


def _same_element(a: ET.Element, b: ET.Element) -> bool:
    return a.tag == b.tag and a.attrib == b.attrib


def resolve_parent(root: ET.Element, selector: str) -> ET.Element | None:
    """Find the element a ``parent="..."`` selector points at (``/*``, ``/widget``, ``/*/platform``)."""
    ns = _namespace(root.tag)
    local_root = root.tag.rsplit("}", 1)[-1]
    parts = [p for p in selector.strip().split("/") if p]
    if not parts:
        return None
    if parts[0] not in ("*", local_root):
        return root.find(".//" + "/".join(_ns_path(parts, ns)))
    rest = parts[1:]
    if not rest:
        return root
    return root.find("/".join(_ns_path(rest, ns)))


def _ns_path(parts: list[str], ns: str) -> list[str]:
    if not ns:
        return parts
    return [p if p == "*" or p.startswith("{") else f"{{{ns}}}{p}" for p in parts]


class PlatformMunger:
    """Adds and removes plugins' config-file changes, persisting counts in ``PlatformJson``."""

    def __init__(self, platform: str, root: Path, platform_json: PlatformJson):
        self.platform = platform
        self.root = root
        self.platform_json = platform_json
        self._docs: dict[str, ET.ElementTree] = {}
        self._dirty: set[str] = set()

    # munge bookkeeping

    def _plugin_munge(
        self, plugin: Plugin, variables: Mapping[str, str]
    ) -> list[tuple[ConfigFileChange, str]]:
        return [
            (change, substitute_variables(xml, variables))
            for change in plugin.get_config_files(self.platform)
            for xml in change.xml
        ]

    def _entries(self, target: str, parent: str) -> list[dict[str, Any]]:
        files = self.platform_json.config_munge.setdefault("files", {})
        parents = files.setdefault(target, {}).setdefault("parents", {})
        return parents.setdefault(parent, [])

    def _prune(self, target: str, parent: str) -> None:
        files = self.platform_json.config_munge["files"]
        parents = files[target]["parents"]
        if not parents[parent]:
            del parents[parent]
        if not parents:
            del files[target]

    def add_plugin_changes(
        self,
        plugin: Plugin,
        variables: Mapping[str, str],
        is_top_level: bool = True,
        should_increment: bool = True,
    ) -> PlatformMunger:
        for change, xml in self._plugin_munge(plugin, variables):
            if not should_increment:
                self._graft(change, xml)
                continue
            entries = self._entries(change.target, change.parent)
            entry = next((e for e in entries if e["xml"] == xml), None)
            if entry is None:
                entry = {"xml": xml, "count": 0}
                if change.after:
                    entry["after"] = change.after
                entries.append(entry)
            entry["count"] += 1
            if entry["count"] == 1:
                self._graft(change, xml)
        self.platform_json.add_plugin(plugin.id, variables, is_top_level)
        return self

    def remove_plugin_changes(self, plugin: Plugin, is_top_level: bool = True) -> PlatformMunger:
        key = "installed_plugins" if is_top_level else "dependent_plugins"
        variables = self.platform_json.data[key].get(plugin.id) or {}
        for change, xml in self._plugin_munge(plugin, variables):
            entries = self._entries(change.target, change.parent)
            entry = next((e for e in entries if e["xml"] == xml), None)
            if entry is None:
                self._prune(change.target, change.parent)
                continue
            entry["count"] -= 1
            if entry["count"] <= 0:
                entries.remove(entry)
                self._prune(change.target, change.parent)
                self._prune_xml(change, xml)
        self.platform_json.remove_plugin(plugin.id, is_top_level)
        return self

    # XML documents

    def _doc(self, target: str) -> ET.ElementTree | None:
        if target in self._docs:
            return self._docs[target]
        path = self.root / target
        if path.suffix != ".xml" or not path.is_file():
            logger.debug(f"Config target {target} is not an existing XML file; tracking only")
            return None
        self._docs[target] = ET.parse(path)
        return self._docs[target]

    def _graft(self, change: ConfigFileChange, xml: str) -> None:
        doc = self._doc(change.target)
        if doc is None:
            return
        root = doc.getroot()
        parent = resolve_parent(root, change.parent)
        if parent is None:
            logger.warning(f"{change.target}: no element matches parent {change.parent!r}")
            return
        child = _qualify(ET.fromstring(xml), _namespace(root.tag))
        if any(_same_element(c, child) for c in parent):
            return
        parent.append(child)
        self._dirty.add(change.target)

    def _prune_xml(self, change: ConfigFileChange, xml: str) -> None:
        doc = self._doc(change.target)
        if doc is None:
            return
        root = doc.getroot()
        parent = resolve_parent(root, change.parent)
        if parent is None:
            return
        child = _qualify(ET.fromstring(xml), _namespace(root.tag))
        for c in list(parent):
            if _same_element(c, child):
                parent.remove(c)
                self._dirty.add(change.target)
                return

    def save_all(self) -> None:
        for target in sorted(self._dirty):
            doc = self._docs[target]
            ns = _namespace(doc.getroot().tag)
            if ns:
                ET.register_namespace("", ns)
            ET.indent(doc)
            doc.write(self.root / target, encoding="utf-8", xml_declaration=True)
            logger.debug(f"Wrote config changes to {target}")
        self._dirty.clear()
        self.platform_json.save()
