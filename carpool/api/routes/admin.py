"""
Admin / observability endpoints
===============================

GET /api/v1/admin/sessions -- number of open sessions
GET /api/v1/admin/health   -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from carpool.api.dependencies import get_registry
from carpool.api.middleware import limiter
from carpool.api.schemas import HealthResponse, SessionCountResponse
from carpool.config import settings
from carpool.services.registry import SessionRegistry

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/sessions",
    response_model=SessionCountResponse,
    summary="Count open route-planning sessions",
)
@limiter.limit(settings.rate_limit)
async def count_sessions(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
):
    return SessionCountResponse(active_sessions=len(registry))


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
