"""Plugin loader: load_plugin, validate_plugin (plugin.xml reader)."""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from pathlib import Path

from appshell.core.errors import InvalidPluginError

from .models import (
    Asset,
    ConfigFileChange,
    Framework,
    InstallItem,
    JsModule,
    PlatformItems,
    Plugin,
    SourceFile,
    UnsupportedItem,
)

PLUGIN_XML = "plugin.xml"

# Native file kinds other platforms install; kept so the dispatcher can report them.
_NATIVE_FILE_TAGS = ("header-file", "resource-file", "lib-file")


def _local(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [c for c in elem if _local(c.tag) == name]


def _is_true(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def _parse_js_module(elem: ET.Element) -> JsModule:
    return JsModule(
        src=elem.get("src", ""),
        name=elem.get("name", ""),
        clobbers=tuple(c.get("target", "") for c in _children(elem, "clobbers")),
        merges=tuple(c.get("target", "") for c in _children(elem, "merges")),
        runs=bool(_children(elem, "runs")),
    )


def _parse_config_file(elem: ET.Element) -> ConfigFileChange:
    fragments = []
    for child in elem:
        child = copy.deepcopy(child)
        child.tail = None
        # fragments are grafted into the target document's namespace
        for e in child.iter():
            if isinstance(e.tag, str):
                e.tag = _local(e.tag)
        fragments.append(ET.tostring(child, encoding="unicode").strip())
    return ConfigFileChange(
        target=elem.get("target", elem.get("file", "")),
        parent=elem.get("parent", ""),
        xml=tuple(fragments),
        after=elem.get("after", ""),
    )


def _parse_items(container: ET.Element) -> PlatformItems:
    items = PlatformItems()
    for elem in container:
        tag = _local(elem.tag)
        if tag == "js-module":
            items.js_modules.append(_parse_js_module(elem))
        elif tag == "asset":
            items.assets.append(Asset(src=elem.get("src", ""), target=elem.get("target", "")))
        elif tag == "source-file":
            items.files_and_frameworks.append(
                SourceFile(src=elem.get("src", ""), target_dir=elem.get("target-dir", ""))
            )
        elif tag == "framework":
            items.files_and_frameworks.append(
                Framework(
                    src=elem.get("src", ""),
                    custom=_is_true(elem.get("custom")),
                    spec=elem.get("spec", ""),
                )
            )
        elif tag in _NATIVE_FILE_TAGS:
            native: InstallItem = UnsupportedItem(
                item_type=tag, attrib=tuple(sorted(elem.attrib.items()))
            )
            items.files_and_frameworks.append(native)
        elif tag == "config-file":
            items.config_files.append(_parse_config_file(elem))
    return items


def _read_root(plugin_dir: Path) -> ET.Element:
    xml_path = plugin_dir / PLUGIN_XML
    if not xml_path.is_file():
        raise InvalidPluginError(f"{PLUGIN_XML} not found in {plugin_dir}")
    try:
        return ET.parse(xml_path).getroot()
    except ET.ParseError as e:
        raise InvalidPluginError(f"invalid XML in {xml_path}: {e}") from e


def load_plugin(plugin_dir: Path) -> Plugin:
    """Load a plugin descriptor from *plugin_dir*/plugin.xml. Raises InvalidPluginError."""
    plugin_dir = plugin_dir.resolve()
    root = _read_root(plugin_dir)
    plugin_id = root.get("id", "")
    if not plugin_id:
        raise InvalidPluginError(f"{plugin_dir / PLUGIN_XML}: missing required attribute 'id'")

    name_elems = _children(root, "name")
    platforms: dict[str, PlatformItems] = {}
    for p in _children(root, "platform"):
        pname = p.get("name", "")
        if pname:
            platforms[pname] = platforms.get(pname, PlatformItems()).extend(_parse_items(p))

    return Plugin(
        id=plugin_id,
        dir=plugin_dir,
        version=root.get("version", ""),
        name=(name_elems[0].text or "").strip() if name_elems else "",
        common=_parse_items(root),
        platforms=platforms,
    )


def validate_plugin(plugin_dir: Path, platform: str = "") -> list[str]:
    errors: list[str] = []
    if not plugin_dir.is_dir():
        errors.append(f"not a directory: {plugin_dir}")
        return errors
    try:
        plugin = load_plugin(plugin_dir)
    except InvalidPluginError as e:
        errors.append(str(e))
        return errors

    names = [None, platform] if platform else [None, *plugin.platforms]
    for pname in names:
        items = plugin.platforms.get(pname, PlatformItems()) if pname else plugin.common
        for module in items.js_modules:
            if not module.src:
                errors.append("js-module: missing required attribute 'src'")
            elif not (plugin.dir / module.src).is_file():
                errors.append(f"js-module: file not found: {module.src}")
        for asset in items.assets:
            if not asset.src or not asset.target:
                errors.append("asset: 'src' and 'target' are required")
            elif not (plugin.dir / asset.src).exists():
                errors.append(f"asset: file not found: {asset.src}")
        for item in items.files_and_frameworks:
            if not item.src:
                errors.append(f"{item.item_type}: missing required attribute 'src'")
            elif isinstance(item, SourceFile) and not (plugin.dir / item.src).is_file():
                errors.append(f"source-file: file not found: {item.src}")
        for change in items.config_files:
            if not change.target or not change.parent:
                errors.append("config-file: 'target' and 'parent' are required")
    return list(dict.fromkeys(errors))
