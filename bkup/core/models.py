"""Data models for versioned backups."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional


DEFAULT_MAX_VERSIONS = 10


@dataclass(frozen=True)
class BackupSlot:
    """A numbered backup directory of one project."""
    slot_number: int
    path: Path
    created_at: datetime
    has_metadata: bool


@dataclass(frozen=True)
class CapacityPolicy:
    """How many slots a project may hold and what happens when it is full."""
    max_versions: int = DEFAULT_MAX_VERSIONS
    queue_mode: bool = False

    @property
    def bounded(self) -> bool:
        return self.max_versions > 0


@dataclass(frozen=True)
class Allocation:
    """Slot chosen for the next backup."""
    slot_number: int
    evicted: Optional[BackupSlot] = None


@dataclass
class BackupResult:
    """Outcome of writing one backup."""
    slot_number: int
    path: Path
    created_at: datetime
    evicted: Optional[BackupSlot] = None


@dataclass
class PullResult:
    """Outcome of restoring a backup into the live directory."""
    live_dir: Path
    restored_slot: int
    restored_path: Path
    safety_backup: BackupResult


@dataclass(frozen=True)
class AppContext:
    """Process state captured once at the command line boundary."""
    home_dir: Path
    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_process(cls) -> "AppContext":
        """Build a context from the running process."""
        return cls(home_dir=Path.home(), cwd=Path(os.getcwd()), env=dict(os.environ))

    def getenv(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.env.get(name, default)
