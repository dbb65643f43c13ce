"""Tests for the module registry: pure add/remove transforms and PlatformJson."""

import json

from appshell.plugins.models import JsModule
from appshell.plugins.registry import (
    ModuleEntry,
    PlatformJson,
    RegistryState,
    add_modules,
    module_entry,
    module_file,
    remove_modules,
)


def _entry(plugin_id, name, **kw):
    return ModuleEntry(
        file=f"plugins/{plugin_id}/www/{name}.js", id=f"{plugin_id}.{name}", plugin_id=plugin_id, **kw
    )


class TestModuleEntry:
    def test_from_js_module(self):
        module = JsModule(src="www/foo.js", name="bar", clobbers=("window.bar",))
        entry = module_entry("cordova-plugin-x", module)
        assert entry.to_dict() == {
            "file": "plugins/cordova-plugin-x/www/foo.js",
            "id": "cordova-plugin-x.bar",
            "pluginId": "cordova-plugin-x",
            "clobbers": ["window.bar"],
        }

    def test_name_defaults_to_basename(self):
        assert module_entry("p", JsModule(src="www/device.js")).id == "p.device"

    def test_runs_and_merges_serialized(self):
        entry = module_entry("p", JsModule(src="www/a.js", merges=("navigator.a",), runs=True))
        d = entry.to_dict()
        assert d["merges"] == ["navigator.a"]
        assert d["runs"] is True
        assert "clobbers" not in d

    def test_module_file(self):
        assert module_file("p", JsModule(src="src/www/x.js")) == "plugins/p/src/www/x.js"

    def test_dict_round_trip(self):
        entry = _entry("p", "a", clobbers=("window.a",), runs=True)
        assert ModuleEntry.from_dict(entry.to_dict()) == entry


class TestAddModules:
    def test_adds_to_empty(self):
        state = add_modules(RegistryState(), "p", "1.0.0", [_entry("p", "a")])
        assert [m.file for m in state.modules] == ["plugins/p/www/a.js"]
        assert dict(state.plugin_metadata) == {"p": "1.0.0"}

    def test_idempotent(self):
        once = add_modules(RegistryState(), "p", "1.0.0", [_entry("p", "a"), _entry("p", "b")])
        twice = add_modules(once, "p", "1.0.0", [_entry("p", "a"), _entry("p", "b")])
        assert twice == once

    def test_preserves_order(self):
        state = add_modules(RegistryState(), "p", "1", [_entry("p", "a")])
        state = add_modules(state, "q", "2", [_entry("q", "z"), _entry("q", "b")])
        assert [m.id for m in state.modules] == ["p.a", "q.z", "q.b"]

    def test_dedupes_within_batch(self):
        state = add_modules(RegistryState(), "p", "1", [_entry("p", "a"), _entry("p", "a")])
        assert len(state.modules) == 1

    def test_updates_version(self):
        state = add_modules(RegistryState(), "p", "1.0.0", [])
        state = add_modules(state, "p", "2.0.0", [])
        assert state.plugin_metadata["p"] == "2.0.0"

    def test_does_not_mutate_input(self):
        state = RegistryState()
        add_modules(state, "p", "1", [_entry("p", "a")])
        assert state.modules == ()
        assert dict(state.plugin_metadata) == {}


class TestRemoveModules:
    def test_removes_by_file_and_metadata(self):
        state = add_modules(RegistryState(), "p", "1", [_entry("p", "a")])
        state = add_modules(state, "q", "1", [_entry("q", "b")])
        state = remove_modules(state, "p", ["plugins/p/www/a.js"])
        assert [m.id for m in state.modules] == ["q.b"]
        assert "p" not in state.plugin_metadata

    def test_add_then_remove_restores_state(self):
        base = add_modules(RegistryState(), "q", "1", [_entry("q", "b")])
        added = add_modules(base, "p", "1", [_entry("p", "a")])
        assert remove_modules(added, "p", ["plugins/p/www/a.js"]) == base

    def test_remove_then_add_round_trip(self):
        base = add_modules(RegistryState(), "q", "1", [_entry("q", "b")])
        entries = [_entry("p", "a", clobbers=("window.a",)), _entry("p", "c")]
        state = add_modules(base, "p", "2", entries)
        removed = remove_modules(state, "p", [e.file for e in entries])
        restored = add_modules(removed, "p", "2", entries)
        assert restored == state
        assert [m.to_dict() for m in restored.modules] == [m.to_dict() for m in state.modules]
        assert list(restored.plugin_metadata.items()) == list(state.plugin_metadata.items())

    def test_unknown_files_leave_modules(self):
        state = add_modules(RegistryState(), "p", "1", [_entry("p", "a")])
        after = remove_modules(state, "p", ["plugins/p/www/gone.js"])
        assert after.modules == state.modules

    def test_missing_plugin_is_noop(self):
        state = add_modules(RegistryState(), "p", "1", [_entry("p", "a")])
        assert remove_modules(state, "nope", []) == state


class TestPlatformJson:
    def test_load_missing_gives_empty_record(self, tmp_path):
        pj = PlatformJson.load(tmp_path, "electron")
        assert pj.path == tmp_path / "electron.json"
        assert pj.modules == []
        assert pj.plugin_metadata == {}
        assert pj.config_munge == {"files": {}}

    def test_save_and_reload(self, tmp_path):
        pj = PlatformJson.load(tmp_path, "electron")
        pj.add_modules("p", "1.0.0", [_entry("p", "a", clobbers=("window.a",))])
        pj.save()
        data = json.loads((tmp_path / "electron.json").read_text())
        assert data["modules"][0]["clobbers"] == ["window.a"]
        assert data["plugin_metadata"] == {"p": "1.0.0"}
        again = PlatformJson.load(tmp_path, "electron")
        assert again.state == pj.state

    def test_fills_missing_keys(self, tmp_path):
        (tmp_path / "electron.json").write_text(json.dumps({"modules": []}))
        pj = PlatformJson.load(tmp_path, "electron")
        assert pj.data["installed_plugins"] == {}
        assert pj.data["plugin_metadata"] == {}

    def test_modules_returns_copy(self, tmp_path):
        pj = PlatformJson.load(tmp_path, "electron")
        pj.add_modules("p", "1", [_entry("p", "a")])
        pj.modules.clear()
        assert len(pj.modules) == 1

    def test_installed_plugin_bookkeeping(self, tmp_path):
        pj = PlatformJson.load(tmp_path, "electron")
        pj.add_plugin("p", {"API_KEY": "x"}, is_top_level=True)
        pj.add_plugin("dep", {}, is_top_level=False)
        assert pj.is_plugin_installed("p")
        assert pj.is_plugin_installed("dep")
        pj.remove_plugin("p", is_top_level=True)
        assert not pj.is_plugin_installed("p")
        assert pj.data["installed_plugins"] == {}
