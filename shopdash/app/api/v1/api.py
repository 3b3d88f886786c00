from fastapi import APIRouter

from shopdash.app.api.v1.endpoints import health, reports

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
