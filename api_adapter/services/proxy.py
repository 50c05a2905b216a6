from collections.abc import Sequence

import httpx
import structlog
from fastapi import Request, Response
from starlette.datastructures import MutableHeaders

from api_adapter.services.cors import CorsPolicy
from api_adapter.services.routing import (
    build_upstream_url,
    join_path_segments,
    remainder_from_raw_path,
)
from api_adapter.services.transforms import (
    ResponseTransform,
    TransformError,
    TransformRegistry,
)

logger = structlog.get_logger()

# Methods that never carry a request body upstream
BODYLESS_METHODS = {"GET", "HEAD"}


class ProxyService:
    """Service forwarding API calls to the upstream with CORS and route transforms."""

    def __init__(
        self,
        upstream_base_url: str,
        cors: CorsPolicy,
        api_prefix: str = "/api",
        transforms: TransformRegistry | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._upstream_base_url = upstream_base_url
        self._cors = cors
        self._api_prefix = api_prefix
        self._transforms = transforms if transforms is not None else TransformRegistry()
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

        logger.info(
            "ProxyService initialized",
            upstream=upstream_base_url,
            timeout=timeout,
        )

    def _build_outbound_headers(self, request: Request, has_body: bool) -> list[tuple[str, str]]:
        """Copy inbound headers minus Host; drop body framing when the body is suppressed."""
        dropped = {"host"}
        if not has_body:
            dropped |= {"content-length", "transfer-encoding"}

        return [
            (key, value)
            for key, value in request.headers.items()
            if key.lower() not in dropped
        ]

    def _build_response_headers(
        self,
        request: Request,
        upstream: httpx.Response,
        decoded: bool,
    ) -> MutableHeaders:
        """Upstream headers with duplicates preserved, CORS set over them."""
        dropped = {"transfer-encoding"}
        if request.method != "HEAD":
            # Recomputed from the body we actually send
            dropped.add("content-length")
        if decoded:
            dropped.add("content-encoding")

        headers = MutableHeaders()
        for key, value in upstream.headers.multi_items():
            if key.lower() not in dropped:
                headers.append(key, value)

        for key, value in self._cors.headers_for(request).items():
            headers[key] = value

        return headers

    def _error_response(self, request: Request, status_code: int, message: str) -> Response:
        return self._cors.apply(
            request,
            Response(
                content=f'{{"error": "{message}"}}',
                status_code=status_code,
                media_type="application/json",
            ),
        )

    def _apply_transform(
        self,
        transform: ResponseTransform,
        content: bytes,
        headers: MutableHeaders,
        remainder: str,
    ) -> bytes | None:
        """Run a transform; None means fall back to the upstream body."""
        try:
            transformed = transform.apply(content)
        except TransformError as e:
            logger.warning(
                "Transform failed, passing upstream body through",
                transform=transform.name,
                path=remainder,
                error=str(e),
            )
            return None

        if transform.content_type:
            headers["content-type"] = transform.content_type
        return transformed

    async def proxy_request(
        self,
        request: Request,
        path: str | Sequence[str] | None = None,
    ) -> Response:
        """
        Forward a request under the prefix to the upstream.

        OPTIONS is answered locally as a CORS preflight. Everything else is
        sent upstream and returned with CORS headers. Routes with a registered
        transform get their body rewritten when the transform accepts the
        upstream response; otherwise the raw upstream bytes pass through.

        The remainder comes from the still-encoded request path unless an
        already captured path (string or segment list) is given.
        """
        if self._cors.is_preflight(request):
            logger.debug("Answering CORS preflight", path=request.url.path)
            return self._cors.preflight_response(request)

        if path is None:
            remainder = remainder_from_raw_path(
                request.scope.get("raw_path"),
                self._api_prefix,
                request.path_params.get("path", ""),
            )
        else:
            remainder = join_path_segments(path)
        query_string = request.url.query
        target_url = build_upstream_url(self._upstream_base_url, remainder, query_string)

        has_body = request.method not in BODYLESS_METHODS
        body = await request.body() if has_body else None
        headers = self._build_outbound_headers(request, has_body)

        logger.info(
            ">>> REQUEST",
            method=request.method,
            path=request.url.path,
            query=query_string or None,
            upstream=target_url,
            body_length=len(body) if body else 0,
        )

        transform = self._transforms.resolve(remainder)
        outbound = self._client.build_request(
            method=request.method,
            url=target_url,
            headers=headers,
            content=body,
        )

        try:
            upstream = await self._client.send(outbound, stream=True)
            try:
                if transform is not None and transform.accepts(upstream):
                    await upstream.aread()
                    content = upstream.content
                    decoded = True
                else:
                    transform = None
                    content = b"".join([chunk async for chunk in upstream.aiter_raw()])
                    decoded = False
            finally:
                await upstream.aclose()
        except httpx.TimeoutException:
            logger.error("Request to upstream timed out", upstream=target_url)
            return self._error_response(request, 504, "Upstream timeout")
        except httpx.HTTPError as e:
            logger.error("Proxy request failed", upstream=target_url, error=str(e))
            return self._error_response(request, 502, "Upstream unavailable")

        response_headers = self._build_response_headers(request, upstream, decoded)
        transformed_by = None

        if transform is not None:
            transformed = self._apply_transform(transform, content, response_headers, remainder)
            if transformed is not None:
                content = transformed
                transformed_by = transform.name

        logger.info(
            "<<< RESPONSE",
            status_code=upstream.status_code,
            body_length=len(content),
            transform=transformed_by,
        )

        return Response(
            content=content,
            status_code=upstream.status_code,
            headers=response_headers,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
