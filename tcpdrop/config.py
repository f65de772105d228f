"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .transfer.copier import DEFAULT_CHUNK_SIZE

DEFAULT_PORT = 1337

FIELDS = ['host', 'port', 'remote_host', 'remote_port', 'chunk_size', 'log_level']

# Config field -> environment variable
ENV_VARS = {
    'host': 'INTERFACE',
    'port': 'PORT',
    'chunk_size': 'TCPDROP_CHUNK_SIZE',
    'log_level': 'TCPDROP_LOG_LEVEL',
}


@dataclass
class Config:
    """
    tcpdrop configuration.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (PORT, INTERFACE, TCPDROP_*)
    3. Config file (JSON)
    4. Default values

    PORT and INTERFACE only describe the listening side.
    """
    # Receive side
    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT

    # Send side
    remote_host: str = '127.0.0.1'
    remote_port: int = DEFAULT_PORT

    # Performance
    chunk_size: int = DEFAULT_CHUNK_SIZE

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables (and a .env file)."""
        load_dotenv()

        config = cls()
        config.host = os.getenv('INTERFACE', config.host)
        config.port = _parse_int('PORT', os.getenv('PORT'), config.port)
        config.chunk_size = _parse_int(
            'TCPDROP_CHUNK_SIZE', os.getenv('TCPDROP_CHUNK_SIZE'), config.chunk_size
        )
        config.log_level = os.getenv('TCPDROP_LOG_LEVEL', config.log_level).upper()
        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()
        for key in FIELDS:
            if key in data:
                setattr(config, key, data[key])
        return config

    def validate(self):
        """
        Check value ranges.

        Raises:
            ValueError: on an out-of-range port, chunk size or log level
        """
        for name in ('port', 'remote_port'):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 65535:
                raise ValueError(f"{name} must be between 0 and 65535, got {value!r}")
        if not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ValueError(f"chunk_size must be a positive integer, got {self.chunk_size!r}")
        if not isinstance(self.log_level, str) or \
                not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {key: getattr(self, key) for key in FIELDS}

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def _parse_int(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    config = Config()

    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    env_config = Config.from_env()

    # Merge (env takes precedence when the variable is set)
    for key, var in ENV_VARS.items():
        if os.getenv(var):
            setattr(config, key, getattr(env_config, key))

    config.validate()
    return config
