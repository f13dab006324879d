"""
Parser for inspector configuration YAML files.
"""
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from ..MODELS.inspector_config import InspectorConfig


class ConfigParser:
    """
    Loads InspectorConfig values from YAML. Missing keys keep their defaults.

    Example::

        cmd_port: 65501/tcp
        evt_port: 65502/tcp
        event_timeout: 300
    """
    def parse(self, config_path: Optional[str]) -> InspectorConfig:
        """
        Parses a config file from a path. No path means defaults.

        :param config_path: Path to the YAML file, or None.
        :return: The inspector configuration.
        """
        if not config_path:
            return InspectorConfig()
        if not os.path.exists(config_path):
            raise ConfigError(f"config file not found: {config_path}")
        with open(config_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> InspectorConfig:
        """
        Parses configuration from a YAML string.

        :param content: YAML content.
        :return: The inspector configuration.
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid config YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("config must be a mapping")
        return self._build(data)

    def _build(self, data: Dict[str, Any]) -> InspectorConfig:
        try:
            return InspectorConfig(**data)
        except ValidationError as e:
            raise ConfigError(f"invalid config: {e}") from e
