from api_adapter.controllers.health import router as health_router
from api_adapter.controllers.proxy import build_proxy_router

__all__ = ["health_router", "build_proxy_router"]
