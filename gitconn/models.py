"""Runtime dataclasses describing how to reach a configured repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Mapping


@dataclass(frozen=True, slots=True)
class ProxySettings:
    """Proxy used for one URL scheme."""

    host: str
    port: int | None = None
    username: str | None = None
    password: str | None = None
    non_proxy_hosts: tuple[str, ...] = ()

    @property
    def url(self) -> str:
        netloc = self.host if self.port is None else f"{self.host}:{self.port}"
        return f"http://{netloc}"

    @property
    def auth(self) -> tuple[str, str] | None:
        if not self.username:
            return None
        return self.username, self.password or ""

    def bypasses(self, host: str) -> bool:
        """Whether *host* matches one of the ``non_proxy_hosts`` globs."""

        host = host.lower()
        return any(fnmatch(host, pattern.lower()) for pattern in self.non_proxy_hosts)


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Transport settings registered for a repository URI template."""

    uri: str
    verify: bool = True
    timeout: float = 5.0
    username: str | None = None
    password: str | None = None
    proxies: Mapping[str, ProxySettings] = field(default_factory=dict)

    @property
    def auth(self) -> tuple[str, str] | None:
        if not self.username:
            return None
        return self.username, self.password or ""

    def proxy_for(self, scheme: str, host: str) -> ProxySettings | None:
        """Return the proxy configured for *scheme* unless *host* bypasses it."""

        proxy = self.proxies.get(scheme.lower())
        if proxy is None or proxy.bypasses(host):
            return None
        return proxy


__all__ = ["ClientSettings", "ProxySettings"]
