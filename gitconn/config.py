"""Repository configuration loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .models import ClientSettings, ProxySettings

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "gitconn" / "config.toml"


class ConfigError(ValueError):
    """Raised when the configuration file holds invalid values."""


class ProxyConfig(BaseModel):
    """Proxy settings for one scheme (``[proxy.https]`` in config.toml)."""

    host: str
    port: int | None = None
    username: str | None = None
    password: str | None = None
    non_proxy_hosts: list[str] = Field(default_factory=list)

    def to_settings(self) -> ProxySettings:
        return ProxySettings(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            non_proxy_hosts=tuple(self.non_proxy_hosts),
        )


class RepoConfig(BaseModel):
    """A git repository reachable over HTTP(S)."""

    uri: str | None = None
    skip_ssl_validation: bool = False
    username: str | None = None
    password: str | None = None
    timeout: float = 5.0
    proxy: dict[str, ProxyConfig] = Field(default_factory=dict)

    @property
    def is_http(self) -> bool:
        return bool(self.uri) and self.uri.startswith("http")

    def to_settings(self) -> ClientSettings:
        """Runtime representation registered with the selector."""

        if not self.uri:
            raise ConfigError("Repository has no uri")
        return ClientSettings(
            uri=self.uri,
            verify=not self.skip_ssl_validation,
            timeout=self.timeout,
            username=self.username,
            password=self.password,
            proxies={scheme.lower(): proxy.to_settings() for scheme, proxy in self.proxy.items()},
        )


class GitConfig(RepoConfig):
    """Shape of the configuration file: a default repository plus named ones."""

    repos: dict[str, RepoConfig] = Field(default_factory=dict)

    def repositories(self) -> list[RepoConfig]:
        """Default repository first, then named repositories in file order."""

        return [self, *self.repos.values()]


def load_config(path: Path | None = None) -> GitConfig:
    """Load configuration from disk; fall back to defaults if missing or unreadable."""

    config_path = path or CONFIG_FILE
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        if path is not None:
            LOG.warning("Config file not found, using defaults: %s", config_path, extra={"path": str(config_path)})
        return GitConfig()
    except (tomllib.TOMLDecodeError, OSError) as exc:
        LOG.warning("Ignoring unreadable config file", extra={"path": str(config_path), "error": str(exc)})
        return GitConfig()
    try:
        return GitConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc


__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "GitConfig",
    "ProxyConfig",
    "RepoConfig",
    "load_config",
]
