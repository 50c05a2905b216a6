import json
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "storefront-api-adapter"
    debug: bool = False
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=8080, description="Port to listen on")

    # Inbound path prefix served by the adapter
    api_prefix: str = Field(default="/api", description="Inbound path prefix")

    # Upstream
    upstream_origin: str = Field(
        default="http://localhost:8000",
        description="Origin that API calls are forwarded to",
    )
    upstream_base_path: str = Field(
        default="/api/",
        description="Path on the upstream that the remainder is appended to",
    )

    # Proxy settings
    proxy_timeout: float | None = Field(
        default=None,
        description="Upstream request timeout in seconds (unset: no timeout)",
    )

    # Transforms: JSON mapping of path pattern -> transform name
    # Example: {"^products(/|$)": "products"}
    transforms: str = Field(
        default='{"^products(/|$)": "products"}',
        description="JSON mapping of remainder path patterns to response transforms",
    )

    # CORS settings
    cors_allow_methods: str = Field(default="GET,POST,PUT,PATCH,DELETE,OPTIONS")
    cors_allow_headers: str = Field(default="Content-Type, Authorization")
    cors_allow_credentials: bool = Field(default=True)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def upstream_base_url(self) -> str:
        """Upstream origin joined with the base path, always ending in '/'."""
        base_path = "/" + self.upstream_base_path.strip("/")
        if base_path != "/":
            base_path += "/"
        return self.upstream_origin.rstrip("/") + base_path

    def get_transforms(self) -> dict[str, str]:
        """Parse transforms JSON into dict of path pattern -> transform name."""
        try:
            transforms = json.loads(self.transforms)
        except json.JSONDecodeError as e:
            raise ValueError(f"TRANSFORMS is not valid JSON: {e}") from e

        if not isinstance(transforms, dict):
            raise ValueError("TRANSFORMS must be a JSON object")

        return {str(k): str(v) for k, v in transforms.items()}


settings = Settings()
