"""Tests for build settings: merge, variable expansion, host defaults, write."""

import json

import pytest

from appshell.core.errors import PlatformError
from appshell.platform.build import (
    BASE_BUILD_SETTINGS,
    create_build_settings,
    deep_merge,
    expand_variables,
    fetch_host_defaults,
    load_user_build_settings,
    prepare_build_settings,
    write_build_settings,
)


class TestDeepMerge:
    def test_nested_dicts_merged(self):
        merged = deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3, "z": 4}})
        assert merged == {"a": {"x": 1, "y": 3, "z": 4}}

    def test_lists_concatenated(self):
        assert deep_merge({"files": ["a"]}, {"files": ["b"]}) == {"files": ["a", "b"]}

    def test_scalar_override(self):
        assert deep_merge({"a": 1, "b": 2}, {"a": {"x": 1}}) == {"a": {"x": 1}, "b": 2}

    def test_inputs_not_mutated(self):
        base = {"a": {"x": 1}}
        deep_merge(base, {"a": {"y": 2}})
        assert base == {"a": {"x": 1}}


class TestExpandVariables:
    def test_recursive(self):
        value = {"id": "${APP_ID}", "list": ["${APP_ID}-x", 3], "n": None}
        assert expand_variables(value, {"APP_ID": "com.x"}) == {
            "id": "com.x",
            "list": ["com.x-x", 3],
            "n": None,
        }

    def test_unknown_left(self):
        assert expand_variables("${NOPE}", {}) == "${NOPE}"


class TestCreateBuildSettings:
    def test_host_defaults(self):
        settings = create_build_settings(host="linux")
        assert settings["linux"] == {"target": ["AppImage"]}
        assert settings["appId"] == "${APP_ID}"

    def test_user_config_replaces_host_defaults(self):
        settings = create_build_settings({"win": {"target": ["portable"]}}, host="linux")
        assert "linux" not in settings
        assert settings["win"] == {"target": ["portable"]}

    def test_unsupported_host(self):
        with pytest.raises(PlatformError, match="not supported"):
            fetch_host_defaults("sunos5")

    def test_base_not_mutated(self):
        create_build_settings({"files": ["extra/**"]}, host="linux")
        assert BASE_BUILD_SETTINGS["files"] == ["**/*"]


class TestLoadUserBuildSettings:
    def test_none(self):
        assert load_user_build_settings(None) is None

    def test_electron_section(self, tmp_path):
        path = tmp_path / "build.json"
        path.write_text(json.dumps({"electron": {"mac": {"target": ["zip"]}}, "ios": {}}))
        assert load_user_build_settings(path) == {"mac": {"target": ["zip"]}}

    def test_missing_file(self, tmp_path):
        assert load_user_build_settings(tmp_path / "nope.json") is None


class TestWriteBuildSettings:
    def test_prepare_substitutes_app_values(self, api, project_root):
        settings = prepare_build_settings(create_build_settings(host="linux"), api, "development")
        assert settings["appId"] == "com.example.app"
        assert settings["productName"] == "Example"
        assert settings["directories"]["app"] == str(project_root / "www")
        assert settings["extraMetadata"] == {"buildType": "development"}

    def test_writes_build_json(self, api, project_root):
        settings, path = write_build_settings(api, host="darwin")
        assert path == project_root / "build" / "build.json"
        assert json.loads(path.read_text()) == settings
        assert settings["mac"]["target"] == ["dmg"]
        assert settings["extraMetadata"]["buildType"] == "distribution"

    def test_dry_run_writes_nothing(self, api, project_root):
        write_build_settings(api, host="linux", dry_run=True)
        assert not (project_root / "build").exists()

    def test_user_build_config(self, api, project_root, tmp_path):
        cfg = tmp_path / "build.json"
        cfg.write_text(json.dumps({"electron": {"linux": {"target": ["deb"]}}}))
        settings, _ = write_build_settings(api, build_config=cfg, host="win32")
        assert settings["linux"] == {"target": ["deb"]}
        assert "win" not in settings
