"""HTTP connection factory built on the connection selector."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from .config import GitConfig, RepoConfig
from .models import ClientSettings
from .selector import Ambiguous, ConnectionSelector, NotFound

LOG = logging.getLogger(__name__)


class HttpConnectionFactory:
    """Builds httpx clients configured for the repository a URL belongs to.

    Every HTTP(S) repository URI from the configuration is registered as a URI
    template. When a URL matches no template, or several templates without a
    single exact one, an unconfigured client is returned and the problem is
    logged.
    """

    def __init__(
        self,
        selector: ConnectionSelector[ClientSettings] | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        async_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._selector: ConnectionSelector[ClientSettings] = (
            selector if selector is not None else ConnectionSelector()
        )
        self._transport = transport
        self._async_transport = async_transport
        self._unsubscribe = self._selector.subscribe(self._log_resolution)

    @property
    def selector(self) -> ConnectionSelector[ClientSettings]:
        return self._selector

    def add_configuration(self, config: GitConfig) -> None:
        """Register the default repository and every named repository."""

        for repo in config.repositories():
            self.add_repository(repo)

    def add_repository(self, repo: RepoConfig) -> bool:
        """Register *repo* if it is served over HTTP(S); returns whether it was added."""

        if not repo.is_http:
            return False
        settings = repo.to_settings()
        self._selector.register(settings.uri, settings)
        LOG.debug("Registered http config", extra={"template": settings.uri})
        return True

    def settings_for(self, url: str) -> ClientSettings | None:
        return self._selector.lookup(url)

    def client_kwargs(self, url: str) -> dict[str, Any]:
        """Keyword arguments for ``httpx.Client``; empty when no config applies."""

        settings = self.settings_for(url)
        if settings is None:
            return {}
        kwargs: dict[str, Any] = {
            "verify": settings.verify,
            "timeout": httpx.Timeout(settings.timeout),
        }
        if settings.auth is not None:
            kwargs["auth"] = httpx.BasicAuth(*settings.auth)
        parts = urlsplit(url)
        proxy = settings.proxy_for(parts.scheme, parts.hostname or "")
        if proxy is not None:
            kwargs["proxy"] = httpx.Proxy(proxy.url, auth=proxy.auth)
        return kwargs

    def create(self, url: str) -> httpx.Client:
        """Return a client for *url*; the caller owns and closes it."""

        kwargs = self.client_kwargs(url)
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.Client(**kwargs)

    def create_async(self, url: str) -> httpx.AsyncClient:
        kwargs = self.client_kwargs(url)
        if self._async_transport is not None:
            kwargs["transport"] = self._async_transport
        return httpx.AsyncClient(**kwargs)

    def close(self) -> None:
        """Detach from the selector's diagnostics."""

        self._unsubscribe()

    @staticmethod
    def _log_resolution(outcome: NotFound | Ambiguous) -> None:
        if isinstance(outcome, Ambiguous):
            LOG.error(
                "More than one git repo URL template matched URL: %s, proxy and "
                "skip_ssl_validation config won't be applied. Matched templates: %s",
                outcome.url,
                ", ".join(outcome.candidates),
                extra={"url": outcome.url, "templates": outcome.candidates},
            )
        else:
            LOG.warning("No custom http config found for URL: %s", outcome.url, extra={"url": outcome.url})


__all__ = ["HttpConnectionFactory"]
