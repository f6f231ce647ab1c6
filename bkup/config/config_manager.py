"""Configuration management for bkup."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from .config_validator import ConfigValidator
from ..core.errors import BackupIOError, ConfigCorruptError
from ..core.models import DEFAULT_MAX_VERSIONS


CONFIG_FILENAME = "config.json"


class ConfigManager:
    """Loads, validates and saves ``<backupRoot>/config.json``."""

    def __init__(self, backup_root: Union[str, Path]):
        """Initialize configuration manager.

        Args:
            backup_root: Directory holding config.json and all backups.
        """
        self.backup_root = Path(backup_root)
        self.config_path = self.backup_root / CONFIG_FILENAME
        self.config_data: Dict[str, Any] = {}
        self.validator = ConfigValidator()
        self.logger = logging.getLogger(__name__)

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from file.

        A missing file is not an error; defaults are used instead.

        Returns:
            Dictionary containing configuration data.

        Raises:
            ConfigCorruptError: If the file is not valid JSON or has
                fields of the wrong type.
            BackupIOError: If the file exists but cannot be read.
        """
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                raw = f.read()
        except FileNotFoundError:
            self.logger.debug(f"No config at {self.config_path}, using defaults")
            raw = None
        except OSError as e:
            raise BackupIOError("read config", self.config_path, e) from e

        if raw is None:
            self.config_data = {}
        else:
            try:
                self.config_data = json.loads(raw)
            except ValueError as e:
                raise ConfigCorruptError(self.config_path, f"invalid JSON: {e}") from e

            try:
                self.validator.validate(self.config_data)
            except ValueError as e:
                raise ConfigCorruptError(self.config_path, str(e)) from e

        self._set_defaults()
        return self.config_data

    def _set_defaults(self):
        """Fill in optional configuration values that are missing."""
        defaults = {
            'max_versions': DEFAULT_MAX_VERSIONS,
            'prev_path': '',
        }
        for key, value in defaults.items():
            if key not in self.config_data:
                self.config_data[key] = value

    def save_config(self) -> None:
        """Atomically write the configuration back to disk.

        Keys this version does not know about are written back unchanged.

        Raises:
            BackupIOError: If the file cannot be written.
        """
        self.validator.validate(self.config_data)
        tmp_path = None
        try:
            self.backup_root.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.backup_root), prefix=CONFIG_FILENAME + ".", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.config_data, f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.config_path)
            tmp_path = None
        except OSError as e:
            raise BackupIOError("write config", self.config_path, e) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
        self.logger.debug(f"Saved config to {self.config_path}")

    def get_max_versions(self) -> int:
        """Get the per-project slot limit; ``<= 0`` means unbounded."""
        return self.config_data.get('max_versions', DEFAULT_MAX_VERSIONS)

    def get_prev_path(self) -> str:
        """Get the last directory navigated away from, or an empty string."""
        return self.config_data.get('prev_path', '')

    def set_max_versions(self, value: int) -> None:
        """Persist a new slot limit."""
        self.config_data['max_versions'] = value
        self.save_config()

    def set_prev_path(self, path: Union[str, Path]) -> None:
        """Persist the directory to return to with ``bkup revert``."""
        self.config_data['prev_path'] = str(path)
        self.save_config()
