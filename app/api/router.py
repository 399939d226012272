"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    attendance,
    holidays,
    tasks,
    salary,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(holidays.router, prefix="/holidays", tags=["holidays"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(salary.router, prefix="/salary", tags=["salary"])
