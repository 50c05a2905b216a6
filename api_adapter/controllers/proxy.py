from fastapi import APIRouter, Request, Depends
from fastapi.responses import Response
from dependency_injector.wiring import inject, Provide

from api_adapter.container import Container
from api_adapter.services.proxy import ProxyService

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


@inject
async def proxy_api(
    request: Request,
    proxy_service: ProxyService = Depends(Provide[Container.proxy_service]),
) -> Response:
    """
    Proxy API calls to the upstream.

    Catches the bare prefix and every path below it. The remainder after the
    prefix is appended to the upstream base; responses carry CORS headers,
    and product listings are normalized.
    """
    return await proxy_service.proxy_request(request)


@inject
async def proxy_other_methods(
    request: Request,
    proxy_service: ProxyService = Provide[Container.proxy_service],
) -> Response:
    """Forward methods outside PROXY_METHODS (WebDAV and the like) the same way."""
    return await proxy_service.proxy_request(request)


def build_proxy_router(prefix: str) -> APIRouter:
    """Register the catch-all routes under the configured prefix."""
    prefix = "/" + prefix.strip("/")

    router = APIRouter(tags=["Proxy"])
    for path in (prefix, f"{prefix.rstrip('/')}/{{path:path}}"):
        router.add_api_route(path, proxy_api, methods=PROXY_METHODS)
        # Plain route with no method list; only reached when the one above
        # does not accept the method
        router.add_route(path, proxy_other_methods, include_in_schema=False)

    return router
