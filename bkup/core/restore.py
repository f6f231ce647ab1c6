"""Restoring ("pulling") a backup slot into the live directory."""

import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from .allocator import SlotAllocator
from .catalog import VersionCatalog
from .copier import clear_directory, copy_tree, remove_path
from .errors import BackupIOError, SlotNotFoundError
from .models import BackupResult, CapacityPolicy, PullResult
from .writer import BackupWriter, CopyFunc


class RestoreEngine:
    """Replaces a live directory with one of its backups.

    A safety backup of the live directory is written before anything in it
    is touched, and the requested backup is staged next to the live
    directory before the swap.
    """

    def __init__(self, catalog: Optional[VersionCatalog] = None,
                 allocator: Optional[SlotAllocator] = None,
                 writer: Optional[BackupWriter] = None,
                 copy_func: CopyFunc = copy_tree):
        self.catalog = catalog or VersionCatalog()
        self.allocator = allocator or SlotAllocator()
        self.writer = writer or BackupWriter(self.catalog.metadata)
        self.copy_func = copy_func
        self.logger = logging.getLogger(__name__)

    def pull(self, live_dir: Union[str, Path], project_root: Union[str, Path], slot_number: int,
             policy: CapacityPolicy, now: datetime,
             exclude: Iterable[Union[str, Path]] = ()) -> PullResult:
        """Restore slot ``slot_number`` into ``live_dir``.

        Args:
            live_dir: Directory being restored; it is kept, only its contents
                are replaced.
            project_root: The project's ``<project>_backup`` directory.
            slot_number: Slot to restore from.
            policy: Capacity policy applied to the safety backup.
            now: Creation time of the safety backup.
            exclude: Paths inside ``live_dir`` that are neither backed up nor
                replaced, such as a backup root living inside it.

        Returns:
            Details of the restore and of the safety backup.

        Raises:
            SlotNotFoundError: The requested slot does not exist.
            CapacityExceededError: No room for the safety backup.
            AllCandidatesProtectedError: Only the pulled slot could be evicted.
            BackupIOError: Copying failed.
        """
        live_dir = Path(live_dir)
        exclude = list(exclude)
        project_root = Path(project_root)
        project_name = live_dir.name
        source = project_root / VersionCatalog.slot_name(project_name, slot_number)

        if source.is_symlink() or not source.is_dir():
            raise SlotNotFoundError(slot_number, source)

        safety = self._safety_backup(live_dir, project_root, project_name, slot_number,
                                     policy, now, exclude)
        self.logger.info(f"Safety backup of {live_dir} written to slot {safety.slot_number}")

        hint = f"the previous contents are in backup slot {safety.slot_number}"
        try:
            staging = Path(tempfile.mkdtemp(prefix=f".{project_name}.bkup-pull-", dir=str(live_dir.parent)))
        except OSError as e:
            raise BackupIOError("create staging directory", live_dir.parent, e, hint=hint) from e

        try:
            try:
                self.copy_func(source, staging)
            except OSError as e:
                raise BackupIOError("stage backup", source, e, hint=hint) from e

            try:
                clear_directory(live_dir, keep=exclude)
                self.copy_func(staging, live_dir)
            except OSError as e:
                raise BackupIOError("restore into live directory", live_dir, e, hint=hint) from e
        finally:
            try:
                remove_path(staging)
            except OSError as e:
                self.logger.warning(f"Could not remove staging directory {staging}: {e}")

        self.logger.info(f"Restored slot {slot_number} into {live_dir}")
        return PullResult(
            live_dir=live_dir,
            restored_slot=slot_number,
            restored_path=source,
            safety_backup=safety
        )

    def _safety_backup(self, live_dir: Path, project_root: Path, project_name: str, slot_number: int,
                       policy: CapacityPolicy, now: datetime,
                       exclude: Iterable[Union[str, Path]]) -> BackupResult:
        slots = self.catalog.list(project_root, project_name)
        allocation = self.allocator.allocate(slots, policy, protected={slot_number})
        path = self.writer.write(live_dir, project_root, allocation.slot_number, now,
                                 project_name=project_name, exclude=exclude)
        return BackupResult(
            slot_number=allocation.slot_number,
            path=path,
            created_at=now,
            evicted=allocation.evicted
        )
