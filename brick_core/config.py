"""
Configuration for the bio bricks application.
Values come from environment variables with compiled-in fallbacks.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

DEFAULT_SAMPLE_DATA = "data/sample_data.json"
DEFAULT_LOG_LEVEL = "INFO"


class ConfigManager:
    """Nested settings read with dotted keys, e.g. get('storage.database_url')"""

    def __init__(self, config_dict: Dict[str, Any] = None):
        self.config = config_dict or {}

    def get(self, key: str, default: Any = None) -> Any:
        value = self.config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> ConfigManager:
    """Build configuration from the environment"""

    env = os.environ if environ is None else environ

    return ConfigManager({
        'storage': {'database_url': env.get('DATABASE_URL') or None},
        'data': {'sample_path': env.get('BIO_BRICKS_SAMPLE_DATA', DEFAULT_SAMPLE_DATA)},
        'logging': {'level': env.get('BIO_BRICKS_LOG_LEVEL', DEFAULT_LOG_LEVEL).upper()},
    })


def configure_logging(config: ConfigManager):
    """Configure root logging from the config level"""

    level = getattr(logging, config.get('logging.level', DEFAULT_LOG_LEVEL), None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level)
