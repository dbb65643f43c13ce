"""Project handle: the app's www/package.json, mutated by framework installers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from appshell.core.utils import atomic_write_json, read_json

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_NAME = "io.cordova.hellocordova"


class PackageJsonProject:
    """Loaded lazily; ``write()`` persists only when a dependency changed."""

    def __init__(self, path: Path):
        self.path = path
        self._data: dict[str, Any] | None = None
        self.dirty = False

    @property
    def data(self) -> dict[str, Any]:
        if self._data is None:
            self._data = read_json(self.path, default={})
        return self._data

    @property
    def dependencies(self) -> dict[str, str]:
        deps = self.data.get("dependencies")
        return dict(deps) if isinstance(deps, dict) else {}

    @property
    def package_name(self) -> str:
        return self.data.get("name") or DEFAULT_PACKAGE_NAME

    def add_dependency(self, name: str, spec: str) -> None:
        deps = self.data.setdefault("dependencies", {})
        if deps.get(name) != spec:
            deps[name] = spec
            self.dirty = True

    def remove_dependency(self, name: str) -> None:
        deps = self.data.get("dependencies")
        if isinstance(deps, dict) and name in deps:
            del deps[name]
            if not deps:
                del self.data["dependencies"]
            self.dirty = True

    def write(self) -> None:
        if not self.dirty:
            return
        atomic_write_json(self.path, self.data)
        self.dirty = False
        logger.debug(f"Wrote project file {self.path}")


def parse_project_file(root: Path) -> PackageJsonProject:
    return PackageJsonProject(root / "www" / "package.json")
