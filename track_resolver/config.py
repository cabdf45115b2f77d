"""Configuration management for track-resolver."""

import os
import sys
from pathlib import Path
from typing import Any, Optional

try:
    import yaml
except ImportError:
    print("Error: PyYAML not installed", file=sys.stderr)
    print("Install with: pip install pyyaml", file=sys.stderr)
    sys.exit(1)

from . import __version__

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "track-resolver" / "config.yaml"


class Config:
    """Track resolver configuration."""

    _instance = None

    def __new__(cls, config_path: Optional[Path] = None):
        """Singleton pattern for config."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton for testing."""
        cls._instance = None

    def __init__(self, config_path: Optional[Path] = None):
        """Load configuration from YAML file.

        Args:
            config_path: Explicit config file. When omitted, the user config
                is read if it exists, otherwise built-in defaults apply.
        """
        if self._initialized:
            return

        if config_path is not None:
            self.config_path = Path(config_path)
            self.config = self._load_config(required=True)
        else:
            self.config_path = DEFAULT_CONFIG_PATH
            self.config = self._load_config(required=False)
        self._initialized = True

    def _load_config(self, required: bool) -> dict:
        """Load and parse config file."""
        if not self.config_path.exists():
            if not required:
                return {}
            print(f"Error: Configuration file not found: {self.config_path}", file=sys.stderr)
            print("Run 'track-resolver init' or copy config.example.yaml", file=sys.stderr)
            sys.exit(1)

        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        # Expand home directory in paths
        self._expand_paths(config)
        return config

    def _expand_paths(self, config: dict):
        """Expand ~ in path values."""
        for key, value in config.items():
            if isinstance(value, str) and value.startswith("~"):
                config[key] = os.path.expanduser(value)
            elif isinstance(value, dict):
                self._expand_paths(value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot-separated key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def user_agent(self) -> str:
        """Get User-Agent header sent to upstream APIs."""
        return self.get("http.user_agent") or f"track-resolver/{__version__}"

    @property
    def http_timeout(self) -> Optional[float]:
        """Get HTTP timeout in seconds (None = client default)."""
        timeout = self.get("http.timeout")
        return float(timeout) if timeout is not None else None

    @property
    def chunk_size(self) -> int:
        """Get stream read chunk size in bytes."""
        return int(self.get("stream.chunk_size", 64 * 1024))

    def source_enabled(self, name: str) -> bool:
        """Check whether a source is enabled."""
        return bool(self.get(f"sources.{name}", True))

    @property
    def failed_log(self) -> Path:
        """Get failed resolves log path."""
        path = self.get("failed_log")
        if path:
            return Path(path)
        return DEFAULT_CONFIG_PATH.parent / "failed-resolves.txt"
