"""
Configuration management for playsync.

Loads and validates config.yaml from the playsync home directory
($PLAYSYNC_HOME, default ~/.config/playsync).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from playsync.errors import ConfigError
from playsync.models import DEFAULT_HIDDEN_PROPERTIES, Sharing
from playsync.utils import setup_logging

REQUIRED_KEYS = ("base_url", "app", "collection")


def get_playsync_home() -> Path:
    """Directory holding config.yaml; overridable with PLAYSYNC_HOME."""
    home = os.environ.get("PLAYSYNC_HOME")
    if home:
        return Path(home)
    return Path("~/.config/playsync").expanduser()


@dataclass
class LoggingConfig:
    """Logging section of config.yaml."""
    level: str = "INFO"
    format: str = "pretty"
    file: Optional[str] = None

    def get_log_file_path(self) -> Optional[Path]:
        return Path(self.file).expanduser() if self.file else None

    def apply(self) -> logging.Logger:
        """Configure the playsync logger from this section."""
        return setup_logging(self.level, self.format, self.get_log_file_path())


@dataclass
class PlaysyncConfig:
    """
    Complete playsync configuration.

    Attributes:
        base_url: Management endpoint of the stores (https://host:8089)
        app: App namespace definitions and documents live in
        collection: DocumentStore collection holding play documents
        owner: Namespace owner used in request paths
        sharing: Sharing scope used when listing definitions
        correlation_field: Document field naming the owning definition
        hidden_properties: Store-managed properties stripped from reads
        timeout: Per-request timeout in seconds
        verify_ssl: Verify the server certificate
        read_retries: Attempts for reads that fail transiently
        strict_document_writes: Gate create/rename on the document write and
            roll back the definition when it fails
    """
    base_url: str
    app: str
    collection: str
    owner: str = "nobody"
    sharing: Sharing = Sharing.GLOBAL
    correlation_field: str = "play"
    hidden_properties: list[str] = field(default_factory=lambda: list(DEFAULT_HIDDEN_PROPERTIES))
    timeout: float = 30.0
    verify_ssl: bool = True
    read_retries: int = 3
    strict_document_writes: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaysyncConfig":
        """Build from a parsed config.yaml mapping."""
        missing = [key for key in REQUIRED_KEYS if not data.get(key)]
        if missing:
            raise ConfigError(f"Missing required config keys: {', '.join(missing)}")

        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        try:
            known["sharing"] = Sharing(known.get("sharing", Sharing.GLOBAL.value))
        except ValueError:
            raise ConfigError(f"Invalid sharing scope: {data.get('sharing')!r}")

        log_data = known.pop("logging", None) or {}
        if not isinstance(log_data, dict):
            raise ConfigError("'logging' must be a mapping")
        known["logging"] = LoggingConfig(**log_data)

        config = cls(**known)
        config.validate()
        return config

    def validate(self) -> None:
        """Validate field values."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"base_url must be an http(s) URL: {self.base_url}")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.read_retries < 1:
            raise ConfigError("read_retries must be at least 1")
        if self.logging.format not in ("pretty", "structured"):
            raise ConfigError(f"Invalid log format: {self.logging.format}")

    def __repr__(self) -> str:
        return f"PlaysyncConfig(base_url={self.base_url}, app={self.app}, collection={self.collection})"


def load_config(config_path: Optional[Path] = None) -> PlaysyncConfig:
    """
    Load playsync configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to $PLAYSYNC_HOME/config.yaml

    Returns:
        PlaysyncConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If config is empty or invalid
    """
    if config_path is None:
        config_path = get_playsync_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"playsync config.yaml not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    return PlaysyncConfig.from_dict(data)
