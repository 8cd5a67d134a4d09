"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Optional
import json

from dotenv import load_dotenv

from .errors import ConfigError
from .compression.codecs import CODECS
from .file.chunker import CHUNK_SIZE
from .transfer.backpressure import BUFFER_THRESHOLD

ENV_PREFIX = 'FILESTREAM_'


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Config:
    """
    File-stream configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (FILESTREAM_*)
    2. Config file (config.json)
    3. Default values
    """
    # Network
    host: str = '0.0.0.0'
    port: int = 8470
    connect_timeout: float = 10.0

    # Storage
    output_dir: Path = field(default_factory=lambda: Path('./received'))

    # Transfer
    chunk_size: int = CHUNK_SIZE
    buffer_threshold: int = BUFFER_THRESHOLD
    drain_poll_interval: float = 0.01
    drain_timeout: Optional[float] = None
    indexed_payloads: bool = False

    # Compression
    compression: bool = True
    compression_level: int = 3
    codec: str = 'zstd'

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        # Network
        config.host = os.getenv('FILESTREAM_HOST', config.host)
        config.port = int(os.getenv('FILESTREAM_PORT', config.port))
        config.connect_timeout = float(
            os.getenv('FILESTREAM_CONNECT_TIMEOUT', config.connect_timeout)
        )

        # Storage
        output_dir = os.getenv('FILESTREAM_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)

        # Transfer
        config.chunk_size = int(os.getenv('FILESTREAM_CHUNK_SIZE', config.chunk_size))
        config.buffer_threshold = int(
            os.getenv('FILESTREAM_BUFFER_THRESHOLD', config.buffer_threshold)
        )
        config.drain_poll_interval = float(
            os.getenv('FILESTREAM_DRAIN_POLL_INTERVAL', config.drain_poll_interval)
        )
        drain_timeout = os.getenv('FILESTREAM_DRAIN_TIMEOUT')
        if drain_timeout:
            config.drain_timeout = float(drain_timeout)
        indexed = os.getenv('FILESTREAM_INDEXED_PAYLOADS')
        if indexed:
            config.indexed_payloads = _env_bool(indexed)

        # Compression
        compression = os.getenv('FILESTREAM_COMPRESSION')
        if compression:
            config.compression = _env_bool(compression)
        config.compression_level = int(
            os.getenv('FILESTREAM_COMPRESSION_LEVEL', config.compression_level)
        )
        config.codec = os.getenv('FILESTREAM_CODEC', config.codec)

        # Logging
        config.log_level = os.getenv('FILESTREAM_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        # Network
        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)
        config.connect_timeout = data.get('connect_timeout', config.connect_timeout)

        # Storage
        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])

        # Transfer
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.buffer_threshold = data.get('buffer_threshold', config.buffer_threshold)
        config.drain_poll_interval = data.get('drain_poll_interval', config.drain_poll_interval)
        config.drain_timeout = data.get('drain_timeout', config.drain_timeout)
        config.indexed_payloads = data.get('indexed_payloads', config.indexed_payloads)

        # Compression
        config.compression = data.get('compression', config.compression)
        config.compression_level = data.get('compression_level', config.compression_level)
        config.codec = data.get('codec', config.codec)

        # Logging
        config.log_level = data.get('log_level', config.log_level)

        return config

    def validate(self) -> 'Config':
        """Raise ConfigError on out-of-range values."""
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive: {self.chunk_size}")
        if self.buffer_threshold < 0:
            raise ConfigError(f"buffer_threshold must not be negative: {self.buffer_threshold}")
        if self.drain_poll_interval <= 0:
            raise ConfigError(f"drain_poll_interval must be positive: {self.drain_poll_interval}")
        if self.codec.lower() not in CODECS:
            raise ConfigError(f"unknown codec: {self.codec}")
        if not 0 <= self.compression_level <= 22:
            raise ConfigError(f"compression_level out of range: {self.compression_level}")
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'connect_timeout': self.connect_timeout,
            'output_dir': str(self.output_dir),
            'chunk_size': self.chunk_size,
            'buffer_threshold': self.buffer_threshold,
            'drain_poll_interval': self.drain_poll_interval,
            'drain_timeout': self.drain_timeout,
            'indexed_payloads': self.indexed_payloads,
            'compression': self.compression,
            'compression_level': self.compression_level,
            'codec': self.codec,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables
    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for f in fields(Config):
        env_val = getattr(env_config, f.name)
        if env_val != getattr(defaults, f.name):
            setattr(config, f.name, env_val)

    return config.validate()


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "0.0.0.0",
  "port": 8470,
  "output_dir": "./received",
  "chunk_size": 65536,
  "buffer_threshold": 1048576,
  "compression": true,
  "compression_level": 3,
  "codec": "zstd",
  "indexed_payloads": false,
  "log_level": "INFO"
}
"""
