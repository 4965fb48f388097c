"""Encrypted configuration management for Ad Sync.

This module provides secure storage and retrieval of provider credentials
and retry tuning using Fernet symmetric encryption. Configuration is stored
in the ~/.adsync/ directory; plain YAML files can be used to bootstrap it.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, Field, SecretStr, ValidationError

from collectors.backoff import RetryConfig
from collectors.google_ads.schemas import DEVELOPER_TOKEN_ENV
from collectors.linkedin.schemas import LINKEDIN_API_VERSION

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


class GoogleAdsConfig(BaseModel):
    """Google Ads API configuration."""

    developer_token: Optional[SecretStr] = None
    login_customer_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[SecretStr] = None


class TikTokConfig(BaseModel):
    """TikTok Business API configuration."""

    app_id: Optional[str] = None
    app_secret: Optional[SecretStr] = None


class LinkedInConfig(BaseModel):
    """LinkedIn Marketing API configuration."""

    client_id: Optional[str] = None
    client_secret: Optional[SecretStr] = None
    api_version: str = LINKEDIN_API_VERSION


class AppConfig(BaseModel):
    """Application configuration."""

    retry: RetryConfig = Field(default_factory=RetryConfig)
    google_ads: GoogleAdsConfig = Field(default_factory=GoogleAdsConfig)
    tiktok: TikTokConfig = Field(default_factory=TikTokConfig)
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    def google_developer_token(self) -> Optional[str]:
        """Developer token, with GOOGLE_ADS_DEVELOPER_TOKEN taking precedence."""
        env_token = os.environ.get(DEVELOPER_TOKEN_ENV)
        if env_token:
            return env_token
        token = self.google_ads.developer_token
        return token.get_secret_value() if token else None


def _reveal(value: Any) -> Any:
    """Return a copy of a model dump with SecretStr values in plain text."""
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    if isinstance(value, dict):
        return {k: _reveal(v) for k, v in value.items()}
    return value


def _write_private(path: Path, data: bytes) -> None:
    path.write_bytes(data)
    os.chmod(path, 0o600)


class ConfigManager:
    """Stores AppConfig as a Fernet-encrypted JSON document.

    The key lives next to the document in ``.key`` unless ADSYNC_CONFIG_KEY
    supplies one, which lets containers inject the key without touching disk.

    Attributes:
        config_dir: Directory holding the key and the encrypted document.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".adsync"
    CONFIG_FILE = "config.enc"
    KEY_FILE = ".key"
    KEY_ENV = "ADSYNC_CONFIG_KEY"

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = Path(config_dir) if config_dir else self.DEFAULT_CONFIG_DIR
        self._cipher: Optional[Fernet] = None
        self._cached: Optional[AppConfig] = None

    @property
    def key_path(self) -> Path:
        return self.config_dir / self.KEY_FILE

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.CONFIG_FILE

    def _prepare_dir(self) -> None:
        self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    def _fernet(self) -> Fernet:
        if self._cipher is not None:
            return self._cipher

        env_key = os.environ.get(self.KEY_ENV)
        if env_key:
            key = env_key.encode("ascii")
        elif self.key_path.exists():
            key = self.key_path.read_bytes()
        else:
            self._prepare_dir()
            key = Fernet.generate_key()
            _write_private(self.key_path, key)
            logger.info(f"Created configuration key {self.key_path}")

        try:
            self._cipher = Fernet(key)
        except ValueError as e:
            raise ConfigError(f"Configuration key is malformed: {e}") from e
        return self._cipher

    def save(self, config: AppConfig) -> None:
        """Encrypt and persist ``config``.

        Raises:
            ConfigError: If the document cannot be written.
        """
        document = json.dumps(_reveal(config.model_dump()), indent=2).encode("utf-8")
        try:
            self._prepare_dir()
            _write_private(self.config_path, self._fernet().encrypt(document))
        except OSError as e:
            raise ConfigError(f"Could not write {self.config_path}: {e}") from e

        self._cached = config
        logger.info(f"Saved configuration to {self.config_path}")

    def load(self) -> AppConfig:
        """Read and decrypt the stored configuration.

        Raises:
            ConfigError: If nothing is stored, the key does not match, or the
                stored values no longer validate.
        """
        if not self.is_configured():
            raise ConfigError(
                f"No configuration at {self.config_path}. "
                "Run 'adsync config import <file.yaml>' to set up."
            )

        try:
            plain = self._fernet().decrypt(self.config_path.read_bytes())
        except InvalidToken as e:
            raise ConfigError(
                f"Cannot decrypt {self.config_path}; the key does not match"
            ) from e

        try:
            self._cached = AppConfig.model_validate_json(plain)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration values: {e}") from e
        return self._cached

    def load_yaml(self, path: Union[str, Path]) -> AppConfig:
        """Read a plain YAML configuration file.

        The file is validated but not persisted; pass the result to save()
        to store it encrypted.

        Example:
            >>> manager.save(manager.load_yaml("adsync.yaml"))

        Raises:
            ConfigError: If the file is missing, not YAML, or invalid.
        """
        file_path = Path(path).expanduser()
        try:
            data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {file_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {file_path} must contain a mapping")

        try:
            return AppConfig(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration values in {file_path}: {e}") from e

    def get_config(self) -> AppConfig:
        """Return the cached configuration, defaults when nothing is stored."""
        if self._cached is None:
            self._cached = self.load() if self.is_configured() else AppConfig()
        return self._cached

    def update(self, **kwargs: Any) -> AppConfig:
        """Replace top-level fields, validate and save.

        Unknown field names are ignored.
        """
        current = _reveal(self.get_config().model_dump())
        changes = {k: v for k, v in kwargs.items() if k in AppConfig.model_fields}
        try:
            updated = AppConfig.model_validate({**current, **changes})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration values: {e}") from e
        self.save(updated)
        return updated

    def is_configured(self) -> bool:
        return self.config_path.exists()

    def reset(self) -> None:
        """Remove the stored configuration and its key."""
        for path in (self.config_path, self.key_path):
            path.unlink(missing_ok=True)
        self._cached = None
        self._cipher = None
        logger.info(f"Removed stored configuration from {self.config_dir}")
