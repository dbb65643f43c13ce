"""Tests for the install ledger: backups, created directories, dependency specs."""

import json

import pytest

from appshell.plugins.ledger import InstallLedger


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestFiles:
    def test_new_file_and_created_dirs(self, tmp_path):
        target = tmp_path / "www" / "a" / "b" / "x.js"
        ledger = InstallLedger(tmp_path, "p")
        ledger.place(target, lambda: _write(target, "x"))

        record = json.loads((tmp_path / "plugins" / "p" / "ledger.json").read_text())
        assert record["files"]["www/a/b/x.js"] == {
            "existed": False,
            "created_dirs": ["www/a/b", "www/a", "www"],
        }

        InstallLedger(tmp_path, "p").release(target)
        assert list(tmp_path.iterdir()) == []

    def test_replaced_file_restored(self, tmp_path):
        target = tmp_path / "index.html"
        target.write_text("mine")
        ledger = InstallLedger(tmp_path, "p")
        ledger.place(target, lambda: target.write_text("theirs"))
        assert (tmp_path / "plugins" / "p" / "backup" / "index.html").read_text() == "mine"

        ledger.release(target)
        assert target.read_text() == "mine"
        assert not (tmp_path / "plugins").exists()

    def test_merged_directory_restored(self, tmp_path):
        target = tmp_path / "vendor"
        (target / "keep").mkdir(parents=True)
        (target / "app.js").write_text("app")
        ledger = InstallLedger(tmp_path, "p")
        ledger.place(target, lambda: _write(target / "lib.js", "lib"))

        ledger.release(target)
        assert sorted(p.name for p in target.iterdir()) == ["app.js", "keep"]

    def test_second_claim_keeps_first_record(self, tmp_path):
        target = tmp_path / "f.txt"
        target.write_text("original")
        ledger = InstallLedger(tmp_path, "p")
        ledger.place(target, lambda: target.write_text("one"))
        ledger.place(target, lambda: target.write_text("two"))
        ledger.release(target)
        assert target.read_text() == "original"

    def test_failed_write_undone(self, tmp_path):
        target = tmp_path / "out" / "f.txt"

        def broken():
            _write(target, "partial")
            raise OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            InstallLedger(tmp_path, "p").place(target, broken)
        assert list(tmp_path.iterdir()) == []

    def test_release_without_record_leaves_target(self, tmp_path):
        target = tmp_path / "f.txt"
        target.write_text("user")
        InstallLedger(tmp_path, "p").release(target)
        assert target.read_text() == "user"

    def test_ledgers_are_per_plugin(self, tmp_path):
        a, b = tmp_path / "a.txt", tmp_path / "b.txt"
        InstallLedger(tmp_path, "p").place(a, lambda: a.write_text("a"))
        InstallLedger(tmp_path, "q").place(b, lambda: b.write_text("b"))
        InstallLedger(tmp_path, "p").release(a)
        assert not (tmp_path / "plugins" / "p").exists()
        assert (tmp_path / "plugins" / "q" / "ledger.json").is_file()


class TestDependencies:
    def test_previous_spec_round_trip(self, tmp_path):
        InstallLedger(tmp_path, "p").claim_dependency("left-pad", "1.0.0")
        assert InstallLedger(tmp_path, "p").release_dependency("left-pad") == (True, "1.0.0")
        assert not (tmp_path / "plugins").exists()

    def test_first_claim_wins(self, tmp_path):
        ledger = InstallLedger(tmp_path, "p")
        ledger.claim_dependency("left-pad", None)
        ledger.claim_dependency("left-pad", "^1.3.0")
        assert ledger.release_dependency("left-pad") == (True, None)

    def test_unrecorded(self, tmp_path):
        assert InstallLedger(tmp_path, "p").release_dependency("x") == (False, None)
