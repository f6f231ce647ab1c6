"""Main backup coordinator used by the command line."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .allocator import SlotAllocator
from .catalog import VersionCatalog, newest_slot
from .copier import remove_path
from .errors import BackupIOError, PrevPathMissingError
from .metadata import MetadataStore
from .models import AppContext, BackupResult, BackupSlot, CapacityPolicy, PullResult
from .restore import RestoreEngine
from .writer import BackupWriter
from ..config.config_manager import CONFIG_FILENAME, ConfigManager


BACKUP_FOLDER_NAME = ".bkup"


class BackupManager:
    """Backs up, lists, restores and cleans project directories."""

    def __init__(self, context: AppContext, clock: Optional[Callable[[], datetime]] = None):
        """Initialize backup manager.

        Args:
            context: Home directory, working directory and environment.
            clock: Returns the current time; defaults to the system clock.
        """
        self.context = context
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.backup_root = Path(context.home_dir) / BACKUP_FOLDER_NAME
        self.config_manager = ConfigManager(self.backup_root)
        self.config = self.config_manager.load_config()
        self.logger = logging.getLogger(__name__)

        self.metadata = MetadataStore()
        self.catalog = VersionCatalog(self.metadata)
        self.allocator = SlotAllocator()
        self.writer = BackupWriter(self.metadata)
        self.restorer = RestoreEngine(self.catalog, self.allocator, self.writer)

    def resolve_source(self, source: Optional[Union[str, Path]] = None) -> Path:
        """Absolute path of ``source``, relative paths taken from the context cwd."""
        path = Path(source) if source is not None else Path(self.context.cwd)
        if not path.is_absolute():
            path = Path(self.context.cwd) / path
        return Path(os.path.abspath(path))

    def project_root(self, source: Path) -> Path:
        return self.backup_root / f"{source.name}_backup"

    def policy(self, queue_mode: bool = False) -> CapacityPolicy:
        return CapacityPolicy(max_versions=self.config_manager.get_max_versions(), queue_mode=queue_mode)

    def backup(self, source: Optional[Union[str, Path]] = None, queue_mode: bool = False) -> BackupResult:
        """Back up a directory into the next slot of its project.

        Args:
            source: Directory to back up; defaults to the working directory.
            queue_mode: Overwrite the oldest backup when all slots are used.

        Returns:
            The written backup.
        """
        source = self._checked_source(source)
        project_root = self.project_root(source)
        self._ensure_backup_root()

        slots = self.catalog.list(project_root, source.name)
        allocation = self.allocator.allocate(slots, self.policy(queue_mode))
        now = self.clock()
        path = self.writer.write(source, project_root, allocation.slot_number, now,
                                 project_name=source.name, exclude=self._exclude(source))
        return BackupResult(
            slot_number=allocation.slot_number,
            path=path,
            created_at=now,
            evicted=allocation.evicted
        )

    def go(self, source: Optional[Union[str, Path]] = None,
           queue_mode: bool = False) -> Tuple[Path, Optional[BackupResult]]:
        """Find the newest backup of a directory and remember where we came from.

        A backup is only written when the project has none yet.

        Returns:
            Tuple of (newest slot path, backup written by this call or None).
        """
        source = self._checked_source(source)
        newest = self.catalog.newest(self.project_root(source), source.name)

        created = None
        if newest is None:
            self.logger.info(f"No backups of {source} yet, creating one")
            created = self.backup(source, queue_mode=queue_mode)
            target = created.path
        else:
            target = newest.path

        self.config_manager.set_prev_path(source)
        return target, created

    def revert(self) -> Path:
        """Directory recorded by the last ``go``.

        Raises:
            PrevPathMissingError: If nothing has been recorded.
        """
        prev = self.config_manager.get_prev_path().strip()
        if not prev:
            raise PrevPathMissingError(self.config_manager.config_path)
        return Path(prev)

    def list_backups(self, source: Optional[Union[str, Path]] = None) -> Tuple[List[BackupSlot], Optional[BackupSlot]]:
        """Slots of a project in slot number order, plus the newest one."""
        source = self.resolve_source(source)
        slots = self.catalog.list(self.project_root(source), source.name)
        return slots, newest_slot(slots)

    def pull(self, slot_number: int, source: Optional[Union[str, Path]] = None,
             queue_mode: bool = False) -> PullResult:
        """Restore backup ``slot_number`` into its live directory."""
        source = self._checked_source(source)
        self._ensure_backup_root()
        return self.restorer.pull(source, self.project_root(source), slot_number,
                                  self.policy(queue_mode), self.clock(),
                                  exclude=self._exclude(source))

    def clean(self, source: Optional[Union[str, Path]] = None) -> Tuple[int, bool]:
        """Delete backups, keeping config.json.

        Args:
            source: Only delete this directory's project backups. When
                omitted every backup under the backup root is removed.

        Returns:
            Tuple of (entries removed, whether config.json was kept).
        """
        kept_config = self.config_manager.config_path.is_file()

        if source is not None:
            project_root = self.project_root(self.resolve_source(source))
            if not project_root.exists() and not project_root.is_symlink():
                return 0, kept_config
            targets = [project_root]
        else:
            try:
                targets = [p for p in self.backup_root.iterdir() if p.name != CONFIG_FILENAME]
            except FileNotFoundError:
                return 0, kept_config
            except OSError as e:
                raise BackupIOError("read backup root", self.backup_root, e) from e

        removed = 0
        for target in sorted(targets):
            try:
                remove_path(target)
            except OSError as e:
                raise BackupIOError("remove", target, e) from e
            self.logger.info(f"Removed {target}")
            removed += 1
        return removed, kept_config

    def set_max_versions(self, value: int) -> None:
        self.config_manager.set_max_versions(value)

    def _checked_source(self, source: Optional[Union[str, Path]]) -> Path:
        path = self.resolve_source(source)
        if not path.is_dir():
            raise BackupIOError("back up", path, NotADirectoryError("not a directory"))
        if path.name == "" or path == path.parent:
            raise BackupIOError("back up", path, hint="cannot back up a filesystem root")
        return path

    def _exclude(self, source: Path) -> List[Path]:
        # Never copy the backup area into itself.
        try:
            self.backup_root.relative_to(source)
        except ValueError:
            return []
        return [self.backup_root]

    def _ensure_backup_root(self) -> None:
        try:
            self.backup_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupIOError("create backup root", self.backup_root, e) from e
