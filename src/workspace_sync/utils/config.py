"""
Configuration loader for the workspace sync server.

This module provides configuration management with:
- Multiple configuration sources (files, dicts, env vars)
- Schema validation through pydantic models
- Type coercion of environment values
- Priority-ordered merging
"""

import os
import json
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import toml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from .logging import get_logger
from .errors import ConfigurationError


logger = get_logger("workspace-sync.config")

ENV_PREFIX = "WORKSPACE_SYNC_"
ENV_NESTING = "__"


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ServerConfig(BaseModel):
    """Socket.IO listener configuration."""
    host: str = "127.0.0.1"
    port: int = 8888
    cors_allowed_origins: Union[str, List[str]] = "*"
    ping_interval: int = 25
    ping_timeout: int = 20
    max_http_buffer_size: int = 16 * 1024 * 1024  # 16MB

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Ensure port is in range."""
        if not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v


class DatabaseConfig(BaseModel):
    """Database configuration."""
    path: Path = Field(default_factory=lambda: Path.home() / ".workspace-sync" / "workspace-sync.db")
    journal_mode: str = "WAL"
    synchronous: str = "NORMAL"

    @field_validator('path')
    @classmethod
    def validate_path(cls, v):
        """Ensure path is absolute."""
        return Path(v).expanduser().absolute()


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"
    directory: Path = Field(default_factory=lambda: Path.home() / ".workspace-sync" / "logs")
    max_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 10
    enable_sentry: bool = False
    sentry_dsn: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class SyncSettings(BaseModel):
    """Reconciliation settings."""
    max_concurrent_reconciliations: int = 32
    workspace_cache_size: int = 1000
    workspace_cache_ttl: int = 300  # seconds
    enable_indexing: bool = True
    shutdown_timeout: float = 30.0

    @field_validator('max_concurrent_reconciliations', 'workspace_cache_size')
    @classmethod
    def validate_positive(cls, v):
        """Reject non-positive limits."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class SyncConfig(BaseModel):
    """Main workspace sync configuration."""
    app_name: str = "workspace-sync"
    debug: bool = False

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True
    )


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration loader.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
        """
        self._sources: List[ConfigSource] = []
        self._config: Optional[SyncConfig] = None
        self._environ = environ if environ is not None else os.environ

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not source_type:
                source_type = self._detect_source_type(path)

            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        self._sources.sort(key=lambda s: s.priority)

    def _detect_source_type(self, path: Path) -> str:
        """Detect configuration file type."""
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        elif suffix in (".yaml", ".yml"):
            return "yaml"
        elif suffix == ".toml":
            return "toml"
        else:
            raise ConfigurationError(f"Unknown config file type: {suffix}")

    def load(self) -> SyncConfig:
        """
        Load configuration from all sources.

        Sources are merged lowest priority first, so higher priorities win.
        Environment variables are applied last.

        Returns:
            Merged configuration
        """
        merged_data: Dict[str, Any] = {}

        for source in self._sources:
            try:
                data = self._load_source(source)
            except (OSError, ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to load configuration from {source.path or 'dict'}: {e}"
                ) from e
            merged_data = self._deep_merge(merged_data, data)

        merged_data = self._deep_merge(merged_data, self._load_env_vars())

        try:
            self._config = SyncConfig(**merged_data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field}: {error['msg']}")

            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            ) from e

        logger.info("configuration_loaded", sources=len(self._sources))
        return self._config

    def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not source.path.exists():
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        content = source.path.read_text()

        if source.source_type == "json":
            return json.loads(content)
        elif source.source_type == "yaml":
            return yaml.safe_load(content) or {}
        elif source.source_type == "toml":
            return toml.loads(content)
        else:
            raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _load_env_vars(self) -> Dict[str, Any]:
        """Load configuration from ``WORKSPACE_SYNC_`` environment variables.

        ``WORKSPACE_SYNC_SERVER__PORT=9000`` sets ``server.port``.
        """
        result: Dict[str, Any] = {}

        for key, value in self._environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = self._convert_value(value)

        return result

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        if "," in value:
            return [v.strip() for v in value.split(",")]

        return value

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> SyncConfig:
        """Get current configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SyncConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge (highest file priority)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(environ=environ)

    default_paths = [
        Path("/etc/workspace-sync/config.yaml"),
        Path.home() / ".workspace-sync" / "config.yaml",
        Path.home() / ".workspace-sync" / "config.json",
        Path("./workspace-sync.yaml"),
        Path("./workspace-sync.toml"),
    ]

    for i, path in enumerate(default_paths):
        if path.exists():
            loader.add_source(path, priority=10 + i)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=50 + i)

    if extra_config:
        loader.add_source(extra_config, priority=100)

    return loader.load()


__all__ = [
    'SyncConfig',
    'ServerConfig',
    'DatabaseConfig',
    'LoggingConfig',
    'SyncSettings',
    'ConfigLoader',
    'load_config',
]
