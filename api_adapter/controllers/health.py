from fastapi import APIRouter, Depends
from pydantic import BaseModel
from dependency_injector.wiring import inject, Provide

from api_adapter.config import Settings
from api_adapter.container import Container

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


class ReadinessResponse(HealthResponse):
    """Readiness response with the upstream the adapter forwards to."""

    upstream: str
    transforms: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/health/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe - returns OK if the process is serving."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
@inject
async def readiness(
    settings: Settings = Depends(Provide[Container.config]),
) -> ReadinessResponse:
    """Readiness probe - reports the configured upstream and transformed routes."""
    return ReadinessResponse(
        status="ready",
        upstream=settings.upstream_base_url(),
        transforms=list(settings.get_transforms()),
    )
