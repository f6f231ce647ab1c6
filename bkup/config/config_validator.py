"""Configuration validation for bkup."""

from typing import Any, Dict


class ConfigValidator:
    """Validates the contents of config.json."""

    FIELD_TYPES = {
        'max_versions': int,
        'prev_path': str,
    }

    def validate(self, config: Any) -> None:
        """Validate configuration data.

        Args:
            config: Parsed config.json contents.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a JSON object, got {type(config).__name__}")
        self._validate_fields(config)

    def _validate_fields(self, config: Dict[str, Any]) -> None:
        """Check the type of every known field that is present.

        Raises:
            ValueError: If a field has the wrong type.
        """
        for field, expected in self.FIELD_TYPES.items():
            if field not in config:
                continue
            value = config[field]
            # bool is an int subclass but never a valid count
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ValueError(
                    f"'{field}' must be {expected.__name__}, got {type(value).__name__}: {value!r}"
                )
