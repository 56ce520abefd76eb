import logging
import tempfile
from pathlib import Path

import pytest

from cbz2epub import workspace
from cbz2epub.errors import FilesystemError
from cbz2epub.workspace import SCRATCH_PREFIX, scratch_workspace, with_scratch_workspace


def test_workspace_created_and_removed(scratch_root: Path):
    with scratch_workspace() as ws:
        assert ws.is_dir()
        assert ws.parent == scratch_root
        assert ws.name.startswith(SCRATCH_PREFIX)
        (ws / "sub").mkdir()
        (ws / "sub" / "f.jpg").write_bytes(b"x")
    assert not ws.exists()
    assert list(scratch_root.iterdir()) == []


def test_workspace_removed_when_body_raises(scratch_root: Path):
    with pytest.raises(RuntimeError):
        with scratch_workspace() as ws:
            (ws / "f").write_text("x")
            raise RuntimeError("fail")
    assert not ws.exists()


def test_workspaces_are_unique(scratch_root: Path):
    with scratch_workspace() as a, scratch_workspace() as b:
        assert a != b


def test_with_scratch_workspace_returns_body_result(scratch_root: Path):
    seen = []

    def body(path: Path):
        seen.append(path)
        return "done"

    assert with_scratch_workspace(body) == "done"
    assert not seen[0].exists()


def test_creation_failure(monkeypatch):
    def boom(*args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(tempfile, "mkdtemp", boom)
    with pytest.raises(FilesystemError):
        with scratch_workspace():
            pass


def test_cleanup_failure_is_logged_not_raised(scratch_root: Path, monkeypatch, caplog):
    def boom(path):
        raise PermissionError("busy")

    monkeypatch.setattr(workspace.shutil, "rmtree", boom)
    with caplog.at_level(logging.WARNING, logger="cbz2epub.workspace"):
        with scratch_workspace():
            pass
    assert "could not remove scratch workspace" in caplog.text
