"""Core backup slot management."""

from .allocator import SlotAllocator
from .catalog import VersionCatalog
from .metadata import MetadataStore
from .models import AppContext, BackupSlot, CapacityPolicy
from .restore import RestoreEngine
from .writer import BackupWriter

__all__ = ["SlotAllocator", "VersionCatalog", "MetadataStore", "RestoreEngine", "BackupWriter",
           "AppContext", "BackupSlot", "CapacityPolicy"]
