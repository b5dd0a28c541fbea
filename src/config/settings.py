"""
Configuration management for TARAI Store.
Centralizes all configurable paths and settings.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG_PATH = "~/.tarai/config/system.json"

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "database": {
        "entities_db": "~/.tarai/data/tarai.db",
        "connection_timeout": 30,
    },
    "embedding": {
        "model_path": "~/.tarai/models/all-MiniLM-L6-v2",
        "tokenizer_max_length": 256,
        "dimension": 384,
        "chunk_size": 500,
        "chunk_overlap": 100,
        "retry_attempts": 3,
        "retry_delay": 0.5,
    },
    "search": {
        "overfetch_factor": 3,
        "debounce_ms": 300,
        "default_limit": 20,
    },
    "logging": {
        "level": "INFO",
        "format": "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
        "logs_dir": "~/.tarai/logs",
    },
    "demo": {
        "seed_on_start": False,
    },
}


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    # Entities, people links, tasks and vectors share one database file
    entities_db: str

    # Connection settings
    connection_timeout: int


@dataclass
class EmbeddingConfig:
    """Embedding and chunking configuration."""

    # Model settings
    model_path: str
    dimension: int

    # Tokenizer settings
    tokenizer_max_length: int

    # Chunking settings (characters)
    chunk_size: int
    chunk_overlap: int

    # Provider retry policy
    retry_attempts: int = 3
    retry_delay: float = 0.5


@dataclass
class SearchConfig:
    """Search coordinator configuration."""

    overfetch_factor: int
    debounce_ms: int
    default_limit: int


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str
    format: str
    logs_dir: str


@dataclass
class DemoConfig:
    """Sample data configuration."""

    seed_on_start: bool = False


class Config:
    """Main configuration class."""

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration from JSON file, falling back to defaults."""
        self.config_file = config_file or os.getenv("TARAI_CONFIG")

        if not self.config_file:
            self.config_file = os.path.expanduser(DEFAULT_CONFIG_PATH)

        self._load_config()

    def _expand_paths_in_config(self, config_dict: dict) -> dict:
        """Recursively expand tilde paths in configuration dictionary."""
        expanded_config = {}
        for key, value in config_dict.items():
            if isinstance(value, str):
                if value.startswith("~/"):
                    expanded_config[key] = str(Path.home() / value[2:])
                else:
                    expanded_config[key] = value
            elif isinstance(value, dict):
                expanded_config[key] = self._expand_paths_in_config(value)
            else:
                expanded_config[key] = value
        return expanded_config

    def _read_file(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_file):
            return {}
        with open(self.config_file, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level configuration must be a JSON object")
        return data

    def _load_config(self) -> None:
        """Load configuration from JSON file merged over the defaults."""
        try:
            file_data = self._read_file()

            config_data: Dict[str, Dict[str, Any]] = {}
            for section, defaults in DEFAULT_SETTINGS.items():
                merged = dict(defaults)
                merged.update(file_data.get(section, {}) or {})
                config_data[section] = merged

            config_data = self._expand_paths_in_config(config_data)

            self.database = DatabaseConfig(**config_data["database"])
            self.embedding = EmbeddingConfig(**config_data["embedding"])
            self.search = SearchConfig(**config_data["search"])
            self.logging = LoggingConfig(**config_data["logging"])
            self.demo = DemoConfig(**config_data["demo"])

        except Exception as e:
            raise ValueError(f"Failed to load config file {self.config_file}: {e}")

        if self.embedding.chunk_overlap >= self.embedding.chunk_size:
            raise ValueError(
                f"Invalid embedding config in {self.config_file}: "
                "chunk_overlap must be smaller than chunk_size"
            )
        if self.search.overfetch_factor < 2:
            raise ValueError(
                f"Invalid search config in {self.config_file}: "
                "overfetch_factor must be at least 2"
            )

    def ensure_directories(self) -> None:
        """Ensure all configured directories exist."""
        Path(self.database.entities_db).parent.mkdir(parents=True, exist_ok=True)
        Path(self.logging.logs_dir).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database": asdict(self.database),
            "embedding": asdict(self.embedding),
            "search": asdict(self.search),
            "logging": asdict(self.logging),
            "demo": asdict(self.demo),
        }


# Global configuration instance (lazy initialization)
_config_instance = None


def get_config(force_reload: bool = False) -> Config:
    """Get the global configuration instance."""
    global _config_instance
    if _config_instance is None or force_reload:
        _config_instance = Config()
    return _config_instance


def reload_config() -> None:
    """Reload the configuration by resetting the global instance."""
    global _config_instance
    _config_instance = None
    get_config(force_reload=True)


# Create a lazy config object
class _ConfigProxy:
    def __getattr__(self, name):
        return getattr(get_config(), name)


config = _ConfigProxy()
