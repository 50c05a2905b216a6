"""Shared fixtures: adapter app wired to a fake upstream.

The upstream is an httpx.MockTransport handed to the real ProxyService, so
the client configuration (redirects, no timeout) is the production one and
every outbound request is recorded for assertions.
"""

from collections.abc import Callable

import httpx
import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from api_adapter.config import Settings
from api_adapter.main import create_app
from api_adapter.services.proxy import ProxyService

UPSTREAM_ORIGIN = "https://upstream.test"


def upstream_response(
    status_code: int = 200,
    body: bytes = b"",
    headers: dict[str, str] | list[tuple[str, str]] | None = None,
) -> httpx.Response:
    """Build an unread upstream response, as a real transport returns it."""
    return httpx.Response(
        status_code,
        headers=headers,
        stream=httpx.ByteStream(body),
    )


def json_response(body: bytes, status_code: int = 200) -> httpx.Response:
    return upstream_response(
        status_code,
        body,
        headers={"content-type": "application/json"},
    )


class FakeUpstream:
    """Records outbound requests and answers with a configurable responder."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = (
            lambda request: json_response(b'{"ok":true}')
        )

    def respond_with(self, response: httpx.Response) -> None:
        self.responder = lambda request: response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "upstream was never called"
        return self.requests[-1]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, upstream_origin=UPSTREAM_ORIGIN)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def app(settings, upstream):
    """Adapter app whose proxy service talks to the fake upstream."""
    app = create_app(settings)
    container = app.state.container

    service = ProxyService(
        upstream_base_url=settings.upstream_base_url(),
        cors=container.cors_policy(),
        api_prefix=settings.api_prefix,
        transforms=container.transform_registry(),
        transport=httpx.MockTransport(upstream.handler),
    )
    container.proxy_service.override(providers.Object(service))

    yield app

    container.proxy_service.reset_override()
    await service.close()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
