"""Root, health and metrics endpoints for the Fleet Guard service."""

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/", summary="Root")
async def root() -> dict[str, str]:
    """Return a basic health payload for the root endpoint."""

    return {"status": "ok", "service": "fleet-guard", "docs": "/docs"}


@router.head("/", summary="Root (HEAD)")
async def root_head() -> Response:
    """Return an empty response for HEAD requests to the root endpoint."""

    return Response(status_code=200)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
