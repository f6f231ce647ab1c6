"""Materialization of a backup into a numbered slot."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from .catalog import VersionCatalog
from .copier import copy_tree, remove_path
from .errors import BackupIOError
from .metadata import MetadataStore


CopyFunc = Callable[..., None]


class BackupWriter:
    """Copies a source tree into a slot and stamps it with metadata."""

    def __init__(self, metadata: Optional[MetadataStore] = None, copy_func: CopyFunc = copy_tree):
        """Initialize backup writer.

        Args:
            metadata: Sidecar store used to stamp finished backups.
            copy_func: Tree copy callable with the signature of ``copy_tree``.
        """
        self.metadata = metadata or MetadataStore()
        self.copy_func = copy_func
        self.logger = logging.getLogger(__name__)

    def write(self, source: Union[str, Path], project_root: Union[str, Path], slot_number: int,
              now: datetime, project_name: Optional[str] = None,
              exclude: Iterable[Union[str, Path]] = ()) -> Path:
        """Write a full backup of ``source`` into slot ``slot_number``.

        Whatever the slot held before is removed first. If copying or
        stamping fails the slot directory is deleted, so a failed backup is
        never mistaken for a valid one.

        Args:
            source: Directory to back up.
            project_root: The project's ``<project>_backup`` directory.
            slot_number: Target slot.
            now: Creation time recorded in the sidecar.
            project_name: Slot name prefix; defaults to the source base name.
            exclude: Paths inside ``source`` to leave out.

        Returns:
            Path of the written slot directory.

        Raises:
            BackupIOError: If any step fails.
        """
        source = Path(source)
        project_root = Path(project_root)
        project_name = project_name or source.name
        slot_path = project_root / VersionCatalog.slot_name(project_name, slot_number)

        try:
            remove_path(slot_path)
            slot_path.mkdir(parents=True)
        except OSError as e:
            raise BackupIOError("prepare backup slot", slot_path, e) from e

        try:
            self.copy_func(source, slot_path, exclude=exclude)
            self.metadata.write(slot_path, now)
        except (OSError, BackupIOError) as e:
            self.logger.error(f"Backup of {source} into {slot_path} failed: {e}")
            self._discard(slot_path)
            if isinstance(e, BackupIOError):
                raise
            raise BackupIOError("copy backup", slot_path, e) from e

        self.logger.info(f"Wrote backup of {source} to {slot_path}")
        return slot_path

    def _discard(self, slot_path: Path) -> None:
        try:
            remove_path(slot_path)
        except OSError as e:
            self.logger.error(f"Could not remove incomplete backup {slot_path}: {e}")
