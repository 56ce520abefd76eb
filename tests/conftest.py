import io
import os
import subprocess
import sys
import zipfile
from pathlib import Path

import pytest
from PIL import Image

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"


def image_bytes(fmt="JPEG", size=(40, 60), mode="RGB", color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, fmt)
    return buf.getvalue()


def write_cbz(path: Path, entries):
    """Write a zip at `path`; `entries` is a list of (name, bytes) and a
    `None` payload creates a directory entry."""
    with zipfile.ZipFile(path, "w") as z:
        for name, data in entries:
            if data is None:
                z.writestr(name if name.endswith("/") else name + "/", b"")
            else:
                z.writestr(name, data)
    return path


@pytest.fixture
def make_cbz():
    def _make_cbz(path: Path, name: str = "comic.cbz", entries=None):
        if entries is None:
            entries = [
                ("page1.jpg", image_bytes("JPEG", (40, 60))),
                ("page2.png", image_bytes("PNG", (90, 30), "RGBA", (0, 0, 255, 128))),
            ]
        return write_cbz(path / name, entries)

    return _make_cbz


@pytest.fixture
def run_cli():
    def _run_cli(args, cwd=None):
        cmd = [sys.executable, "-m", "cbz2epub.cli"] + [str(a) for a in args]
        env = os.environ.copy()
        env["PYTHONPATH"] = str(SRC_ROOT) + os.pathsep + env.get("PYTHONPATH", "")
        return subprocess.run(cmd, capture_output=True, text=True, env=env, cwd=cwd)

    return _run_cli


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch):
    """Redirect temporary directories so tests can see leftovers."""
    import tempfile

    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
