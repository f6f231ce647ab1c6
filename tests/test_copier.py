"""Tests for the tree copy helpers."""

import os
import sys

import pytest

from bkup.core.copier import clear_directory, copy_tree, remove_path
from bkup.core.metadata import METADATA_FILENAME

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


def test_copy_tree_copies_contents(tmp_path, project_dir, read_tree):
    dst = tmp_path / "copy"

    copy_tree(project_dir, dst)

    assert read_tree(dst) == read_tree(project_dir)


def test_copy_tree_merges_into_existing_directory(tmp_path, project_dir, write_tree, read_tree):
    dst = write_tree(tmp_path / "copy", {"keep.txt": "kept"})

    copy_tree(project_dir, dst)

    tree = read_tree(dst)
    assert tree["keep.txt"] == b"kept"
    assert tree["a.txt"] == b"alpha\n"


def test_copy_tree_preserves_mtime_and_mode(tmp_path, project_dir):
    src_file = project_dir / "a.txt"
    os.chmod(src_file, 0o640)
    os.utime(src_file, (1_000_000, 1_000_000))

    copy_tree(project_dir, tmp_path / "copy")

    copied = tmp_path / "copy" / "a.txt"
    assert int(copied.stat().st_mtime) == 1_000_000
    if sys.platform != "win32":
        assert copied.stat().st_mode & 0o777 == 0o640


@needs_symlinks
def test_copy_tree_keeps_symlinks(tmp_path, project_dir):
    os.symlink("a.txt", project_dir / "link.txt")
    os.symlink("sub", project_dir / "link_dir")
    os.symlink("does-not-exist", project_dir / "dangling")

    dst = tmp_path / "copy"
    copy_tree(project_dir, dst)

    for name, target in [("link.txt", "a.txt"), ("link_dir", "sub"), ("dangling", "does-not-exist")]:
        assert (dst / name).is_symlink()
        assert os.readlink(dst / name) == target


def test_copy_tree_skips_top_level_sidecar_only(tmp_path, project_dir):
    (project_dir / METADATA_FILENAME).write_text("{}")
    (project_dir / "sub" / METADATA_FILENAME).write_text("{}")

    dst = tmp_path / "copy"
    copy_tree(project_dir, dst)

    assert not (dst / METADATA_FILENAME).exists()
    assert (dst / "sub" / METADATA_FILENAME).exists()


def test_copy_tree_exclude(tmp_path, project_dir):
    dst = tmp_path / "copy"

    copy_tree(project_dir, dst, exclude=[project_dir / "sub" / "deep"])

    assert (dst / "sub" / "b.txt").exists()
    assert not (dst / "sub" / "deep").exists()


def test_clear_directory_keeps_the_directory(project_dir):
    inode = os.stat(project_dir).st_ino

    removed = clear_directory(project_dir)

    assert removed == 2
    assert list(project_dir.iterdir()) == []
    assert os.stat(project_dir).st_ino == inode


def test_clear_directory_keeps_nested_paths(project_dir):
    keep = project_dir / "sub" / "deep"

    clear_directory(project_dir, keep=[keep])

    assert sorted(p.name for p in project_dir.iterdir()) == ["sub"]
    assert sorted(p.name for p in (project_dir / "sub").iterdir()) == ["deep"]
    assert (keep / "c.bin").read_bytes() == b"\x00\x01\x02"


@needs_symlinks
def test_clear_directory_does_not_follow_symlinks(tmp_path, project_dir, write_tree):
    outside = write_tree(tmp_path / "outside", {"precious.txt": "keep me"})
    os.symlink(outside, project_dir / "link")

    clear_directory(project_dir)

    assert (outside / "precious.txt").read_text() == "keep me"


def test_remove_path_handles_files_dirs_and_missing(tmp_path, project_dir):
    remove_path(project_dir / "a.txt")
    remove_path(project_dir / "sub")
    remove_path(project_dir / "missing")

    assert list(project_dir.iterdir()) == []


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_copy_tree_leaves_destination_root_mode_alone(tmp_path, project_dir):
    dst = tmp_path / "copy"
    dst.mkdir(mode=0o700)
    os.chmod(dst, 0o700)
    os.chmod(project_dir, 0o555)
    try:
        copy_tree(project_dir, dst)
    finally:
        os.chmod(project_dir, 0o755)

    assert dst.stat().st_mode & 0o777 == 0o700
    assert (dst / "a.txt").read_text() == "alpha\n"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_remove_path_handles_read_only_directories(project_dir):
    os.chmod(project_dir / "sub" / "deep", 0o555)
    os.chmod(project_dir / "sub", 0o555)

    remove_path(project_dir)

    assert not project_dir.exists()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_clear_directory_handles_read_only_directories(project_dir):
    os.chmod(project_dir / "sub", 0o555)

    clear_directory(project_dir)

    assert list(project_dir.iterdir()) == []
