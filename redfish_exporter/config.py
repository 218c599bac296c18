# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Exporter configuration.

Two sources, as with most of our tooling:

- a YAML file (``--config``) holding scrape options and BMC credentials
- process settings from the environment (``REDFISH_EXPORTER_*``, optionally
  via a ``.env`` file)

Example file::

    timeout: 30
    tls_validation: none
    threads: 8
    max_connections: 16
    hosts:
      default:
        username: admin
        password: secret
      10.0.0.5:
        username: root
        password: calvin
      "bmc-rack1-.*":
        username: ops
        password: opspass
    groups:
      rack2:
        username: ops2
        password: rack2pass
"""

import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG = logging.getLogger(__name__)

DEFAULT_HOST_KEY = "default"
TLS_VALIDATION_MODES = ('strict', 'normal', 'none')


class ConfigError(Exception):
    """Configuration file missing, unreadable or invalid."""


class CredentialsNotFound(Exception):
    """No credentials configured for the requested target."""


class HostCredentials(BaseModel):
    username: str
    password: str = Field(repr=False)


class FileConfig(BaseModel):
    # Scrape options
    timeout: float = 30.0
    tls_validation: str = 'none'
    tls_ca: Optional[str] = None
    threads: int = Field(default=8, ge=1)
    max_log_entries: int = Field(default=100, ge=0)
    max_connections: int = Field(default=16, ge=1)

    # Credentials, keyed by exact host, host regex or "default"
    hosts: Dict[str, HostCredentials] = Field(default_factory=dict)
    groups: Dict[str, HostCredentials] = Field(default_factory=dict)

    @field_validator('tls_validation')
    @classmethod
    def _check_tls_validation(cls, value: str) -> str:
        if value not in TLS_VALIDATION_MODES:
            raise ValueError(f"tls_validation must be one of {', '.join(TLS_VALIDATION_MODES)}")
        return value


class EnvConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='REDFISH_EXPORTER_',
        env_file='.env',
        case_sensitive=False,
        extra='ignore',
    )

    CONFIG: Optional[str] = Field(default=None)
    LISTEN_ADDRESS: str = Field(default=":9610")
    LOGLEVEL: str = Field(default="INFO")
    LOGFILE: Optional[str] = Field(default=None)
    THREADS: Optional[int] = Field(default=None)

    # Fallback credentials when the file has no "default" entry
    USERNAME: Optional[str] = Field(default=None)
    PASSWORD: Optional[str] = Field(default=None)


def load_env_config(dotenv_path: Optional[str] = None) -> EnvConfig:
    load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env")
    return EnvConfig()


def load_config_file(config_file: str) -> FileConfig:
    """
    Read and validate a YAML config file.

    Raises:
        ConfigError: the file cannot be read, parsed or validated
    """
    LOG.debug(f"Loading configuration from file: {config_file}")
    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file}: top level must be a mapping")
    try:
        return FileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{config_file}: {e}") from e


def credentials_for_target(config: FileConfig, target: str, group: Optional[str] = None) -> HostCredentials:
    """
    Resolve the credentials used to scrape ``target``.

    Lookup order: the named group, the exact host entry, the first host
    entry whose key is a regular expression matching the whole target,
    then the "default" entry.

    Raises:
        CredentialsNotFound: nothing matched
    """
    if group:
        if group in config.groups:
            return config.groups[group]
        LOG.warning(f"Credential group '{group}' not configured, falling back to host lookup for {target}")

    if target in config.hosts and target != DEFAULT_HOST_KEY:
        return config.hosts[target]

    for pattern, credentials in config.hosts.items():
        if pattern == DEFAULT_HOST_KEY:
            continue
        try:
            if re.fullmatch(pattern, target):
                return credentials
        except re.error as e:
            LOG.warning(f"Ignoring host pattern '{pattern}': {e}")

    if DEFAULT_HOST_KEY in config.hosts:
        return config.hosts[DEFAULT_HOST_KEY]
    raise CredentialsNotFound(f"No credentials found for target {target}")


class SafeConfig:
    """
    Thread-safe holder for the loaded FileConfig.

    Scrapes read through it while SIGHUP or ``/-/reload`` swap in a new
    config. A reload that fails leaves the previous config in place.
    """

    def __init__(self, config_file: Optional[str] = None, config: Optional[FileConfig] = None,
                 fallback: Optional[HostCredentials] = None, overrides: Optional[Dict[str, Any]] = None):
        self._lock = threading.Lock()
        self.config_file = config_file
        self.fallback = fallback
        self.overrides = dict(overrides or {})
        self._config = self._prepare(config if config is not None else FileConfig())

    def _prepare(self, config: FileConfig) -> FileConfig:
        """
        Apply command line overrides and the environment fallback credentials.

        Raises:
            ConfigError: an override fails validation
        """
        update: Dict[str, Any] = dict(self.overrides)
        if self.fallback is not None and DEFAULT_HOST_KEY not in config.hosts:
            hosts = dict(config.hosts)
            hosts[DEFAULT_HOST_KEY] = self.fallback
            update["hosts"] = hosts
        if not update:
            return config
        try:
            return FileConfig.model_validate({**config.model_dump(), **update})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration override: {e}") from e

    @property
    def config(self) -> FileConfig:
        with self._lock:
            return self._config

    def reload_config(self, config_file: Optional[str] = None) -> FileConfig:
        """
        Re-read the config file and swap it in.

        Raises:
            ConfigError: the new file is invalid; the old config stays active
        """
        path = config_file or self.config_file
        if not path:
            raise ConfigError("No configuration file to reload")
        config = self._prepare(load_config_file(path))
        with self._lock:
            self._config = config
            self.config_file = path
        LOG.info(f"Loaded configuration from {path}: {len(config.hosts)} hosts, {len(config.groups)} groups")
        return config

    def credentials_for_target(self, target: str, group: Optional[str] = None) -> HostCredentials:
        return credentials_for_target(self.config, target, group)
