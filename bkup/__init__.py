"""
bkup - versioned, slot-based backups of a directory tree.

This package backs up a directory into numbered slots under ~/.bkup, keeps
their creation order in a metadata sidecar, and restores ("pulls") a slot
back after taking a safety backup.
"""

__version__ = "1.0.0"

from .core.manager import BackupManager
from .core.restore import RestoreEngine
from .core.allocator import SlotAllocator

__all__ = ["BackupManager", "RestoreEngine", "SlotAllocator"]
