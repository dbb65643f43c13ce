"""Build settings: merge packager defaults, substitute app values, write build/build.json.

The packager itself is not run here; the written settings are its input.
"""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from appshell.core.errors import PlatformError
from appshell.core.utils import atomic_write_json
from appshell.plugins.project import parse_project_file

if TYPE_CHECKING:
    from .api import PlatformApi

BUILD_SETTINGS_FILENAME = "build.json"

BASE_BUILD_SETTINGS: dict[str, Any] = {
    "appId": "${APP_ID}",
    "productName": "${APP_TITLE}",
    "directories": {
        "app": "${APP_WWW_DIR}",
        "output": "${APP_BUILD_DIR}",
    },
    "files": ["**/*"],
    "extraMetadata": {"buildType": "${BUILD_TYPE}"},
}

HOST_BUILD_SETTINGS: dict[str, dict[str, Any]] = {
    "darwin": {"mac": {"target": ["dmg"], "category": "public.app-category.developer-tools"}},
    "linux": {"linux": {"target": ["AppImage"]}},
    "win32": {"win": {"target": ["nsis"]}},
}


def deep_merge(base: dict, override: dict) -> dict:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = deep_merge(result[k], v)
        elif k in result and isinstance(result[k], list) and isinstance(v, list):
            result[k] = result[k] + v
        else:
            result[k] = v
    return result


def expand_variables(value: Any, variables: dict[str, str]) -> Any:
    """Recursively substitute ``${NAME}`` in strings/dicts/lists."""
    if isinstance(value, str):
        for name, replacement in variables.items():
            value = value.replace("${" + name + "}", replacement)
        return value
    if isinstance(value, dict):
        return {k: expand_variables(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_variables(v, variables) for v in value]
    return value


def fetch_host_defaults(host: str) -> dict[str, Any]:
    if host not in HOST_BUILD_SETTINGS:
        raise PlatformError(
            f'Your platform "{host}" is not supported as a default target platform for Electron.'
        )
    return copy.deepcopy(HOST_BUILD_SETTINGS[host])


def load_user_build_settings(build_config: Path | None) -> dict[str, Any] | None:
    """Read the ``electron`` section of a user build config file, if one was given."""
    if build_config is None or not build_config.is_file():
        return None
    data = json.loads(build_config.read_text(encoding="utf-8"))
    section = data.get("electron", data) if isinstance(data, dict) else None
    return section if isinstance(section, dict) else None


def create_build_settings(
    user_config: dict[str, Any] | None = None, host: str | None = None
) -> dict[str, Any]:
    platform_config = user_config or fetch_host_defaults(host or sys.platform)
    return deep_merge(copy.deepcopy(BASE_BUILD_SETTINGS), platform_config)


def prepare_build_settings(
    settings: dict[str, Any], api: PlatformApi, build_type: str = "distribution"
) -> dict[str, Any]:
    package = parse_project_file(api.root).data
    variables = {
        "APP_ID": package.get("name", ""),
        "APP_TITLE": package.get("displayName", ""),
        "APP_WWW_DIR": str(api.locations.www),
        "APP_BUILD_DIR": str(api.locations.build),
        "BUILD_TYPE": build_type,
    }
    return expand_variables(settings, variables)


def write_build_settings(
    api: PlatformApi,
    build_config: Path | None = None,
    host: str | None = None,
    build_type: str = "distribution",
    dry_run: bool = False,
) -> tuple[dict[str, Any], Path]:
    """Compute the packager settings; writes them unless *dry_run*. Returns (settings, path)."""
    settings = create_build_settings(load_user_build_settings(build_config), host)
    settings = prepare_build_settings(settings, api, build_type)
    path = api.locations.build / BUILD_SETTINGS_FILENAME
    if not dry_run:
        atomic_write_json(path, settings)
    return settings, path
