"""Install ledger: what each install replaced, so its uninstall restores it exactly.

Kept per plugin in the project's plugin storage area::

    <root>/plugins/<pluginId>/ledger.json
    <root>/plugins/<pluginId>/backup/<path replaced by an install>

``ledger.json`` records, per installed target path (relative to the project
root), whether something was there before and which parent directories the
install created, and per registered dependency the spec it replaced.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from appshell.core.config import Locations
from appshell.core.utils import (
    atomic_write_json,
    copy_path,
    read_json,
    remove_empty_parents,
    remove_path,
)

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "ledger.json"
BACKUP_DIRNAME = "backup"


def _missing_dirs(path: Path, stop: Path) -> list[Path]:
    """Directories between *stop* (exclusive) and *path* that do not exist yet, deepest first."""
    missing: list[Path] = []
    current = path
    while current != stop and stop in current.parents and not current.exists():
        missing.append(current)
        current = current.parent
    return missing


class InstallLedger:
    def __init__(self, root: Path, plugin_id: str):
        self.root = root.resolve()
        self.dir = Locations(self.root).plugins / plugin_id
        self.path = self.dir / LEDGER_FILENAME
        data = read_json(self.path, default={})
        self.files: dict[str, dict[str, Any]] = data.get("files", {})
        self.dependencies: dict[str, str | None] = data.get("dependencies", {})

    def _key(self, target: Path) -> str:
        return target.resolve().relative_to(self.root).as_posix()

    def _backup(self, key: str) -> Path:
        return self.dir / BACKUP_DIRNAME / key

    def _save(self) -> None:
        if self.files or self.dependencies:
            atomic_write_json(self.path, {"files": self.files, "dependencies": self.dependencies})
            return
        remove_path(self.dir)
        remove_empty_parents(self.dir.parent, self.root)

    # files

    def claim(self, target: Path) -> None:
        """Record *target*'s current state before an install writes to it.

        A target claimed earlier keeps its first record, so installing twice and
        uninstalling once still restores the state before the first install.
        """
        key = self._key(target)
        if key in self.files:
            return
        existed = target.exists() or target.is_symlink()
        if existed:
            copy_path(target, self._backup(key))
            logger.debug(f"Backed up {key} before install")
        created = _missing_dirs(target.parent.resolve(), self.root)
        self.files[key] = {
            "existed": existed,
            "created_dirs": [d.relative_to(self.root).as_posix() for d in created],
        }
        self._save()

    def release(self, target: Path) -> None:
        """Undo an install at *target*: remove it, restore what it replaced, drop created dirs."""
        key = self._key(target)
        entry = self.files.pop(key, None)
        if entry is None:
            logger.debug(f"{key} was not installed by this plugin; left in place")
            return
        remove_path(target)
        if entry["existed"]:
            backup = self._backup(key)
            copy_path(backup, target)
            remove_path(backup)
            logger.debug(f"Restored {key} from backup")
        for rel in entry["created_dirs"]:
            d = self.root / rel
            if d.is_dir() and not any(d.iterdir()):
                d.rmdir()
        self._save()

    def place(self, target: Path, write) -> None:
        """Claim *target*, run *write*; a failed write is undone before the error propagates."""
        self.claim(target)
        try:
            write()
        except Exception:
            self.release(target)
            raise

    # dependencies

    def claim_dependency(self, name: str, previous: str | None) -> None:
        if name not in self.dependencies:
            self.dependencies[name] = previous
            self._save()

    def release_dependency(self, name: str) -> tuple[bool, str | None]:
        """Return (recorded, previous spec) and forget the record."""
        if name not in self.dependencies:
            return False, None
        previous = self.dependencies.pop(name)
        self._save()
        return True, previous
