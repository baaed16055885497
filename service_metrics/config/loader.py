"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional


class ConfigLoader:
    """Load and merge raw agent configuration values."""

    @staticmethod
    def load_from_file(config_path: str) -> Dict[str, Any]:
        """
        Load raw configuration values from YAML with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Dict[str, Any]: Raw configuration values (unvalidated)

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ValueError: If the document is not a mapping
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")

        # Substitute environment variables
        return ConfigLoader._substitute_env_vars(raw_config)

    @staticmethod
    def merge(
        overrides: Optional[Dict[str, Any]] = None,
        config_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """Return file values updated with every non-None override."""
        values: Dict[str, Any] = {}
        if config_path:
            values.update(ConfigLoader.load_from_file(config_path))

        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value

        return values

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            # Replace ${VAR_NAME} with os.getenv('VAR_NAME')
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
