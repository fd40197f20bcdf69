"""Tests for the HTTP connection factory."""

from __future__ import annotations

import base64
import logging

import httpx
import pytest

from gitconn.config import GitConfig, ProxyConfig, RepoConfig
from gitconn.connections import HttpConnectionFactory
from gitconn.selector import ConnectionSelector
from gitconn.templates import MalformedTemplateError


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _config() -> GitConfig:
    return GitConfig(
        uri="https://git.example.com/team/config-repo",
        username="deploy",
        password="s3cret",
        timeout=9,
        repos={
            "any-team": RepoConfig(
                uri="https://git.example.com/{team}/{repo}",
                skip_ssl_validation=True,
                proxy={
                    "https": ProxyConfig(
                        host="proxy.example.com",
                        port=3128,
                        username="p",
                        password="pw",
                        non_proxy_hosts=["*.internal"],
                    )
                },
            ),
            "mirror": RepoConfig(uri="https://{host}.internal/{repo}"),
            "local": RepoConfig(uri="file:///srv/git/local"),
            "ssh": RepoConfig(uri="git@git.example.com:team/repo.git"),
        },
    )


def _recording_transport(requests: list[httpx.Request]) -> httpx.MockTransport:
    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="ok")

    return httpx.MockTransport(_handler)


def test_add_configuration_registers_http_repositories_only() -> None:
    factory = HttpConnectionFactory()

    factory.add_configuration(_config())

    assert factory.selector.templates == (
        "https://git.example.com/team/config-repo",
        "https://git.example.com/{team}/{repo}",
        "https://{host}.internal/{repo}",
    )


def test_add_repository_skips_missing_uri() -> None:
    factory = HttpConnectionFactory()

    assert factory.add_repository(RepoConfig()) is False
    assert len(factory.selector) == 0


def test_add_configuration_surfaces_malformed_templates() -> None:
    factory = HttpConnectionFactory()

    with pytest.raises(MalformedTemplateError):
        factory.add_configuration(GitConfig(uri="https://git.example.com/{repo:}"))

    assert len(factory.selector) == 0


def test_factory_uses_supplied_selector() -> None:
    selector: ConnectionSelector = ConnectionSelector()
    factory = HttpConnectionFactory(selector)

    factory.add_configuration(GitConfig(uri="https://git.example.com/repo"))

    assert selector.templates == ("https://git.example.com/repo",)


def test_exact_repository_settings_win() -> None:
    factory = HttpConnectionFactory()
    factory.add_configuration(_config())

    settings = factory.settings_for("https://git.example.com/team/config-repo.git")

    assert settings is not None
    assert settings.uri == "https://git.example.com/team/config-repo"
    assert settings.verify is True


def test_client_kwargs_for_templated_repository() -> None:
    factory = HttpConnectionFactory()
    factory.add_configuration(_config())

    kwargs = factory.client_kwargs("https://git.example.com/ops/app.git")

    assert kwargs["verify"] is False
    assert kwargs["timeout"] == httpx.Timeout(5.0)
    assert "auth" not in kwargs
    assert kwargs["proxy"].url == httpx.URL("http://proxy.example.com:3128")
    assert kwargs["proxy"].auth == ("p", "pw")


def test_proxy_is_scheme_specific() -> None:
    factory = HttpConnectionFactory()
    factory.add_repository(
        RepoConfig(
            uri="http{tls:s?}://git.example.com/{repo}",
            proxy={"https": ProxyConfig(host="proxy.example.com", port=3128)},
        )
    )

    assert "proxy" in factory.client_kwargs("https://git.example.com/app.git")
    assert "proxy" not in factory.client_kwargs("http://git.example.com/app.git")
    assert factory.client_kwargs("http://git.example.com/app.git")["verify"] is True


def test_non_proxy_hosts_bypass_proxy() -> None:
    factory = HttpConnectionFactory()
    factory.add_repository(
        RepoConfig(
            uri="https://{host}/{repo}",
            proxy={"https": ProxyConfig(host="proxy.example.com", non_proxy_hosts=["*.internal"])},
        )
    )

    assert "proxy" in factory.client_kwargs("https://git.example.com/app")
    assert "proxy" not in factory.client_kwargs("https://git.corp.internal/app")


def test_create_applies_credentials_and_timeout() -> None:
    requests: list[httpx.Request] = []
    factory = HttpConnectionFactory(transport=_recording_transport(requests))
    factory.add_configuration(_config())

    with factory.create("https://git.example.com/team/config-repo/info/refs") as client:
        assert client.timeout == httpx.Timeout(9.0)
        response = client.get("https://git.example.com/team/config-repo/info/refs")

    assert response.status_code == 200
    expected = base64.b64encode(b"deploy:s3cret").decode()
    assert requests[0].headers["Authorization"] == f"Basic {expected}"


def test_unmatched_url_gets_default_client_and_warning(caplog: pytest.LogCaptureFixture) -> None:
    requests: list[httpx.Request] = []
    factory = HttpConnectionFactory(transport=_recording_transport(requests))
    factory.add_configuration(_config())

    with caplog.at_level(logging.WARNING, logger="gitconn.connections"):
        assert factory.client_kwargs("https://elsewhere.example.org/repo") == {}
        with factory.create("https://elsewhere.example.org/repo") as client:
            client.get("https://elsewhere.example.org/repo")

    assert "Authorization" not in requests[0].headers
    assert "No custom http config found for URL: https://elsewhere.example.org/repo" in caplog.text


def test_ambiguous_url_is_logged_with_templates(caplog: pytest.LogCaptureFixture) -> None:
    factory = HttpConnectionFactory()
    factory.add_repository(RepoConfig(uri="https://git.example.com/{team}/{repo}"))
    factory.add_repository(RepoConfig(uri="https://{host}/ops/{repo}", username="ops"))

    with caplog.at_level(logging.ERROR, logger="gitconn.connections"):
        kwargs = factory.client_kwargs("https://git.example.com/ops/app")

    assert kwargs == {}
    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.templates == ("https://git.example.com/{team}/{repo}", "https://{host}/ops/{repo}")
    assert "More than one git repo URL template matched URL" in record.getMessage()


def test_close_detaches_logging(caplog: pytest.LogCaptureFixture) -> None:
    factory = HttpConnectionFactory()
    factory.close()

    with caplog.at_level(logging.WARNING, logger="gitconn.connections"):
        factory.client_kwargs("https://elsewhere.example.org/repo")

    assert caplog.records == []


@pytest.mark.anyio
async def test_create_async_applies_settings() -> None:
    requests: list[httpx.Request] = []

    async def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    factory = HttpConnectionFactory(async_transport=httpx.MockTransport(_handler))
    factory.add_configuration(_config())

    async with factory.create_async("https://git.example.com/team/config-repo") as client:
        response = await client.get("https://git.example.com/team/config-repo")

    assert response.status_code == 204
    assert requests[0].headers["Authorization"].startswith("Basic ")
