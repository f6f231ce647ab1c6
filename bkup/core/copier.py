"""Recursive tree copy used for backups and restores."""

import logging
import os
import shutil
import stat
import sys
from pathlib import Path
from typing import Iterable, Union

from .metadata import METADATA_FILENAME


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def copy_tree(src: PathLike, dst: PathLike, exclude: Iterable[PathLike] = ()) -> None:
    """Copy the contents of ``src`` into ``dst``.

    Symlinks are recreated as symlinks and never followed. Regular files keep
    their modification time and permission bits where the platform allows.
    The metadata sidecar at the top of ``src`` is never copied.

    Args:
        src: Directory whose contents are copied.
        dst: Destination directory; created if missing, merged if present.
            Its own permission bits are left as they were.
        exclude: Absolute paths inside ``src`` to leave out entirely.

    Raises:
        OSError: If any entry cannot be read or written.
    """
    src = Path(src)
    dst = Path(dst)
    root = os.path.abspath(src)
    excluded = {os.path.abspath(p) for p in exclude}

    def _ignore(directory: str, names):
        directory = os.path.abspath(directory)
        skipped = set()
        if directory == root and METADATA_FILENAME in names:
            skipped.add(METADATA_FILENAME)
        if excluded:
            for name in names:
                if os.path.join(directory, name) in excluded:
                    logger.debug(f"Excluding {os.path.join(directory, name)} from copy")
                    skipped.add(name)
        return skipped

    dst.mkdir(parents=True, exist_ok=True)
    # copytree copies the source root's mode onto dst; dst keeps its own
    dst_mode = stat.S_IMODE(os.stat(dst).st_mode)
    try:
        shutil.copytree(src, dst, symlinks=True, ignore=_ignore,
                        copy_function=shutil.copy2, dirs_exist_ok=True)
    finally:
        os.chmod(dst, dst_mode)


def _make_writable_and_retry(func, path, _exc):
    """rmtree error handler for entries below read-only directories."""
    for target in (os.path.dirname(path), path):
        if not target or os.path.islink(target) or not os.path.exists(target):
            continue
        mode = stat.S_IMODE(os.lstat(target).st_mode)
        if os.path.isdir(target):
            os.chmod(target, mode | stat.S_IRWXU)
        else:
            os.chmod(target, mode | stat.S_IWUSR)
    func(path)


def remove_tree(path: PathLike) -> None:
    """``shutil.rmtree`` that also removes trees containing read-only directories."""
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        shutil.rmtree(path, onerror=_make_writable_and_retry)


def remove_path(path: PathLike) -> None:
    """Remove a directory tree, file or symlink if it exists."""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        remove_tree(path)


def clear_directory(path: PathLike, keep: Iterable[PathLike] = ()) -> int:
    """Remove every entry of ``path`` while keeping the directory itself.

    Args:
        path: Directory to empty.
        keep: Absolute paths below ``path`` to leave in place, together with
            the directories leading to them.

    Returns:
        Number of entries removed.
    """
    kept = {os.path.abspath(p) for p in keep}
    removed = 0
    with os.scandir(path) as entries:
        for entry in list(entries):
            entry_path = os.path.abspath(entry.path)
            if entry_path in kept:
                continue
            is_dir = entry.is_dir(follow_symlinks=False)
            if is_dir and any(k.startswith(entry_path + os.sep) for k in kept):
                removed += clear_directory(entry_path, kept)
                continue
            if is_dir:
                remove_tree(entry_path)
            else:
                os.unlink(entry_path)
            removed += 1
    return removed
