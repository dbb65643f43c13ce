"""Shared fixtures: a scratch Electron platform project and plugin directories."""

import json
from pathlib import Path

import pytest

from appshell.core.config import Config
from appshell.platform import PlatformApi
from appshell.plugins import load_plugin

CONFIG_XML = """<?xml version='1.0' encoding='utf-8'?>
<widget xmlns="http://www.w3.org/ns/widgets" id="com.example.app" version="1.0.0">
    <name>Example</name>
</widget>
"""


def write_plugin(
    plugin_dir: Path,
    plugin_id: str,
    body: str = "",
    files: dict[str, str] | None = None,
    version: str = "1.0.0",
) -> Path:
    plugin_dir.mkdir(parents=True, exist_ok=True)
    (plugin_dir / "plugin.xml").write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<plugin xmlns="http://apache.org/cordova/ns/plugins/1.0" id="{plugin_id}" '
        f'version="{version}">\n'
        f"    <name>{plugin_id}</name>\n"
        f"{body}\n"
        "</plugin>\n"
    )
    for rel, content in (files or {}).items():
        path = plugin_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return plugin_dir


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "platforms" / "electron"
    (root / "www").mkdir(parents=True)
    (root / "platform_www").mkdir()
    (root / "www" / "package.json").write_text(
        json.dumps({"name": "com.example.app", "displayName": "Example"})
    )
    (root / "config.xml").write_text(CONFIG_XML)
    return root


@pytest.fixture
def api(project_root):
    return PlatformApi(Config(root=project_root))


@pytest.fixture
def make_plugin(tmp_path):
    def _make(plugin_id, body="", files=None, version="1.0.0"):
        plugin_dir = write_plugin(tmp_path / "src-plugins" / plugin_id, plugin_id, body, files, version)
        return load_plugin(plugin_dir)

    return _make


@pytest.fixture
def plugin_writer():
    return write_plugin
