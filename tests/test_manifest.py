"""Tests for cordova_plugins.js rendering."""

import json

from appshell.plugins.manifest import (
    PLUGIN_LIST_FILENAME,
    cordova_define,
    render_plugin_list,
    serialize_modules,
    write_plugin_list,
)
from appshell.plugins.registry import ModuleEntry, RegistryState, add_modules


def _state():
    entries = [
        ModuleEntry(
            file="plugins/p/www/foo.js", id="p.bar", plugin_id="p", clobbers=("window.bar",)
        ),
        ModuleEntry(file="plugins/p/www/run.js", id="p.run", plugin_id="p", runs=True),
    ]
    return add_modules(RegistryState(), "p", "1.2.3", entries)


def _payload(text, start, end):
    return text[text.index(start) + len(start) : text.index(end)].strip().rstrip(";")


class TestRender:
    def test_wraps_in_plugin_list_define(self):
        text = render_plugin_list(_state())
        assert text.startswith(
            "cordova.define('cordova/plugin_list', function(require, exports, module) {"
        )
        assert text.rstrip().endswith("});")

    def test_modules_and_metadata_embedded(self):
        text = render_plugin_list(_state())
        modules = json.loads(_payload(text, "module.exports = ", "module.exports.metadata"))
        metadata = json.loads(_payload(text, "// TOP OF METADATA", "// BOTTOM OF METADATA"))
        assert modules[0] == {
            "file": "plugins/p/www/foo.js",
            "id": "p.bar",
            "pluginId": "p",
            "clobbers": ["window.bar"],
        }
        assert modules[1]["runs"] is True
        assert metadata == {"p": "1.2.3"}

    def test_deterministic(self):
        assert render_plugin_list(_state()) == render_plugin_list(_state())

    def test_empty_state(self):
        text = render_plugin_list(RegistryState())
        assert "module.exports = [];" in text
        assert "{}" in text

    def test_custom_wrapper(self):
        text = render_plugin_list(_state(), wrapper=lambda m, md: f"{m}|{md}")
        modules, metadata = text.split("|")
        assert modules == serialize_modules(_state().modules)
        assert json.loads(metadata) == {"p": "1.2.3"}

    def test_cordova_define_shape(self):
        text = cordova_define("[]", "{}")
        assert "module.exports = [];" in text
        assert "module.exports.metadata =" in text


class TestWrite:
    def test_writes_file(self, tmp_path):
        path = write_plugin_list(tmp_path / "www", _state())
        assert path == tmp_path / "www" / PLUGIN_LIST_FILENAME
        assert path.read_text() == render_plugin_list(_state())

    def test_rewrite_is_byte_identical(self, tmp_path):
        path = write_plugin_list(tmp_path, _state())
        first = path.read_bytes()
        write_plugin_list(tmp_path, _state())
        assert path.read_bytes() == first

    def test_no_temp_files_left(self, tmp_path):
        write_plugin_list(tmp_path, _state())
        assert [p.name for p in tmp_path.iterdir()] == [PLUGIN_LIST_FILENAME]
