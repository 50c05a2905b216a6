from fastapi import Request, Response


class CorsPolicy:
    """CORS headers attached to every response the adapter returns."""

    def __init__(
        self,
        allow_methods: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS",
        allow_headers: str = "Content-Type, Authorization",
        allow_credentials: bool = True,
    ):
        self._allow_methods = allow_methods
        self._allow_headers = allow_headers
        self._allow_credentials = allow_credentials

    def headers_for(self, request: Request) -> dict[str, str]:
        """Build the header set for a request; the origin is echoed back, or '*'."""
        origin = request.headers.get("origin") or "*"

        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": self._allow_methods,
            "Access-Control-Allow-Headers": self._allow_headers,
        }
        if self._allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"

        return headers

    def apply(self, request: Request, response: Response) -> Response:
        """Set CORS headers on a response, replacing same-named upstream headers."""
        for key, value in self.headers_for(request).items():
            response.headers[key] = value
        return response

    @staticmethod
    def is_preflight(request: Request) -> bool:
        return request.method == "OPTIONS"

    def preflight_response(self, request: Request) -> Response:
        """Answer a browser preflight without contacting the upstream."""
        return Response(status_code=204, headers=self.headers_for(request))
