"""Per-backup metadata sidecar handling."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from .errors import BackupIOError


METADATA_FILENAME = ".bkup_meta.json"

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class MetadataStore:
    """Reads and writes the creation record kept inside each backup slot.

    The sidecar is the authoritative creation time of a slot. Directory
    modification times are only a fallback because overwriting a slot in
    place does not reliably move them forward.
    """

    def __init__(self, filename: str = METADATA_FILENAME):
        self.filename = filename
        self.logger = logging.getLogger(__name__)

    def path_for(self, slot_dir: Union[str, Path]) -> Path:
        return Path(slot_dir) / self.filename

    def write(self, slot_dir: Union[str, Path], created_at: datetime) -> Path:
        """Durably replace the sidecar of ``slot_dir``.

        The record is written to a temporary file in the slot directory,
        flushed to disk and renamed over the canonical name, so readers see
        either the old record or the new one.

        Args:
            slot_dir: Backup slot directory.
            created_at: Creation instant to record.

        Returns:
            Path of the written sidecar.

        Raises:
            BackupIOError: If the record cannot be written or renamed.
        """
        if created_at.tzinfo is None:
            created_at = created_at.astimezone()
        record = {
            "created_unix": int(created_at.timestamp()),
            "created_rfc3339": created_at.astimezone().isoformat(),
        }
        target = self.path_for(slot_dir)

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(slot_dir), prefix=self.filename + ".", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            raise BackupIOError("write metadata", target, e) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        self.logger.debug(f"Wrote metadata {target} ({record['created_rfc3339']})")
        return target

    def read(self, slot_dir: Union[str, Path]) -> Tuple[datetime, bool]:
        """Resolve the creation time of ``slot_dir``.

        Resolution order is sidecar, then the slot directory's modification
        time, then the epoch when the directory itself is gone.

        Returns:
            Tuple of (created_at, has_metadata). ``has_metadata`` is True only
            when the value came from a valid sidecar.

        Raises:
            BackupIOError: On read errors other than a missing file.
        """
        target = self.path_for(slot_dir)
        try:
            raw = target.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            self.logger.debug(f"No metadata in {slot_dir}, using directory mtime")
            return self._fallback(slot_dir), False
        except UnicodeDecodeError:
            self.logger.debug(f"Undecodable metadata in {slot_dir}, using directory mtime")
            return self._fallback(slot_dir), False
        except OSError as e:
            raise BackupIOError("read metadata", target, e) from e

        created_at = self._parse(raw)
        if created_at is None:
            self.logger.debug(f"Unparseable metadata in {slot_dir}, using directory mtime")
            return self._fallback(slot_dir), False
        return created_at, True

    def _parse(self, raw: str) -> Optional[datetime]:
        try:
            record = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(record, dict):
            return None

        created_unix = record.get("created_unix")
        if isinstance(created_unix, bool) or not isinstance(created_unix, int):
            return None
        try:
            created_at = datetime.fromtimestamp(created_unix, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

        # The RFC 3339 text may carry sub-second precision; trust it only
        # when it agrees with the integer field.
        text = record.get("created_rfc3339")
        if isinstance(text, str):
            try:
                precise = datetime.fromisoformat(text)
            except ValueError:
                precise = None
            if precise is not None and precise.tzinfo is not None:
                if int(precise.timestamp()) == created_unix:
                    return precise.astimezone(timezone.utc)
        return created_at

    def _fallback(self, slot_dir: Union[str, Path]) -> datetime:
        try:
            mtime = os.stat(slot_dir).st_mtime
        except FileNotFoundError:
            return EPOCH
        except OSError as e:
            raise BackupIOError("stat backup slot", slot_dir, e) from e
        return datetime.fromtimestamp(mtime, tz=timezone.utc)
