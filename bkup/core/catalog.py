"""Enumeration of the numbered backup slots of a project."""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union

from .errors import BackupIOError
from .metadata import MetadataStore
from .models import BackupSlot


class VersionCatalog:
    """Lists backup slots and picks the newest or oldest one."""

    def __init__(self, metadata: Optional[MetadataStore] = None):
        self.metadata = metadata or MetadataStore()
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def slot_name(project_name: str, slot_number: int) -> str:
        return f"{project_name}_{slot_number}"

    def list(self, project_root: Union[str, Path], project_name: str) -> List[BackupSlot]:
        """List the backup slots found in ``project_root``.

        Only immediate subdirectories named ``<project_name>_<digits>`` are
        slots. Anything else in the directory is skipped.

        Args:
            project_root: The project's ``<project>_backup`` directory.
            project_name: Base name of the backed up directory.

        Returns:
            Slots in ascending slot number order. Empty when the directory
            does not exist yet.

        Raises:
            BackupIOError: If the directory or a sidecar cannot be read.
        """
        project_root = Path(project_root)
        # only canonical numbers, so x_01 never aliases x_1
        pattern = re.compile(re.escape(project_name) + r"_(0|[1-9][0-9]*)")
        slots = []

        try:
            with os.scandir(project_root) as entries:
                for entry in entries:
                    match = pattern.fullmatch(entry.name)
                    if not match:
                        self.logger.debug(f"Skipping non-slot entry {entry.path}")
                        continue
                    if not entry.is_dir(follow_symlinks=False):
                        self.logger.debug(f"Skipping non-directory {entry.path}")
                        continue

                    created_at, has_metadata = self.metadata.read(entry.path)
                    if not has_metadata:
                        self.logger.warning(f"Backup {entry.path} has no valid metadata; "
                                            f"ordering by directory modification time")
                    slots.append(BackupSlot(
                        slot_number=int(match.group(1)),
                        path=Path(entry.path),
                        created_at=created_at,
                        has_metadata=has_metadata
                    ))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise BackupIOError("list backups", project_root, e) from e

        slots.sort(key=lambda s: s.slot_number)
        return slots

    def newest(self, project_root: Union[str, Path], project_name: str) -> Optional[BackupSlot]:
        """Slot with the greatest creation time, ties going to the higher number."""
        return newest_slot(self.list(project_root, project_name))

    def oldest(self, project_root: Union[str, Path], project_name: str) -> Optional[BackupSlot]:
        """Slot with the smallest creation time, ties going to the lower number."""
        return oldest_slot(self.list(project_root, project_name))


def newest_slot(slots: List[BackupSlot]) -> Optional[BackupSlot]:
    if not slots:
        return None
    return max(slots, key=lambda s: (s.created_at, s.slot_number))


def oldest_slot(slots: List[BackupSlot]) -> Optional[BackupSlot]:
    if not slots:
        return None
    return min(slots, key=lambda s: (s.created_at, s.slot_number))
