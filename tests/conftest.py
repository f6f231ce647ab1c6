"""Shared pytest fixtures for bkup tests."""

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bkup.core.metadata import MetadataStore
from bkup.core.models import AppContext


class FakeClock:
    """Deterministic clock; every call moves time forward by ``step``."""

    def __init__(self, start=None, step=timedelta(minutes=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        now = self.current
        self.current = self.current + self.step
        return now


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def write_tree():
    """Create files (str/bytes values) below a root directory."""

    def _write(root: Path, files: dict) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return root

    return _write


@pytest.fixture
def read_tree():
    """Map every file and symlink below a root to its content or link target."""

    def _read(root: Path) -> dict:
        result = {}
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames + filenames:
                path = Path(dirpath) / name
                rel = path.relative_to(root).as_posix()
                if path.is_symlink():
                    result[rel] = ("link", os.readlink(path))
                elif path.is_file():
                    result[rel] = path.read_bytes()
        return result

    return _read


@pytest.fixture
def make_slot():
    """Create ``<project_root>/<project>_<n>`` stamped with a unix time."""
    store = MetadataStore()

    def _make(project_root: Path, project: str, slot_number: int, created_unix=None,
              files=None) -> Path:
        slot = project_root / f"{project}_{slot_number}"
        slot.mkdir(parents=True, exist_ok=True)
        for rel, content in (files or {}).items():
            (slot / rel).parent.mkdir(parents=True, exist_ok=True)
            (slot / rel).write_text(content)
        if created_unix is not None:
            store.write(slot, datetime.fromtimestamp(created_unix, tz=timezone.utc))
        return slot

    return _make


@pytest.fixture
def home(tmp_path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(tmp_path, write_tree) -> Path:
    return write_tree(tmp_path / "work" / "x", {
        "a.txt": "alpha\n",
        "sub/b.txt": "bravo\n",
        "sub/deep/c.bin": b"\x00\x01\x02",
    })


@pytest.fixture
def context(home, project_dir) -> AppContext:
    return AppContext(home_dir=home, cwd=project_dir, env={})
