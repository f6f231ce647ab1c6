"""Exception types raised by the backup core."""

from pathlib import Path
from typing import Optional, Union


class BkupError(Exception):
    """Base class for every error bkup reports to the user."""


class SlotNotFoundError(BkupError, LookupError):
    """Requested backup slot does not exist."""

    def __init__(self, slot_number: int, path: Union[str, Path]):
        self.slot_number = slot_number
        self.path = Path(path)
        super().__init__(f"Backup slot {slot_number} not found: {self.path}")


class CapacityExceededError(BkupError):
    """All slots are in use and the policy refuses to evict."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"All {limit} backup slots are in use (max_versions={limit}). "
            f"Raise the limit with `bkup config --max-versions N`, "
            f"remove old backups with `bkup clean`, "
            f"or pass --queue to overwrite the oldest backup."
        )


class AllCandidatesProtectedError(BkupError):
    """Queue mode needs a victim but every used slot is protected."""

    def __init__(self, limit: int, protected):
        self.limit = limit
        self.protected = frozenset(protected)
        slots = ", ".join(str(n) for n in sorted(self.protected))
        super().__init__(
            f"Cannot make room: all {limit} backup slots are full and "
            f"the eviction candidates are protected (slots {slots})."
        )


class BackupIOError(BkupError):
    """Filesystem failure with the operation and path that caused it."""

    def __init__(self, operation: str, path: Union[str, Path], cause: Optional[BaseException] = None,
                 hint: Optional[str] = None):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        message = f"{operation} failed for {self.path}"
        if cause is not None:
            message += f": {cause}"
        if hint:
            message += f" ({hint})"
        super().__init__(message)


class ConfigCorruptError(BkupError, ValueError):
    """config.json exists but cannot be trusted."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid config file {self.path}: {reason}")


class PrevPathMissingError(BkupError):
    """No previous directory has been recorded yet."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"No previous directory recorded in {self.path} (run `bkup go` first)")
