"""Health check endpoints for load balancers and monitoring."""

import sqlalchemy
from fastapi import APIRouter
from pydantic import BaseModel

from site_analyzer.core.config import get_settings
from site_analyzer.core.database import get_session_factory

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, str]


@router.get("", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
    checks: dict[str, str] = {}

    try:
        async with get_session_factory()() as session:
            await session.execute(sqlalchemy.text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {e}"

    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"
    return HealthResponse(status=overall, version=get_settings().APP_VERSION, checks=checks)


@router.get("/live", include_in_schema=False)
async def liveness() -> dict:
    return {"alive": True}
