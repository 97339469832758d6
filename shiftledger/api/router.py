"""Top-level API router."""

from fastapi import APIRouter

from shiftledger.api.routes.dashboards import router as dashboards_router
from shiftledger.api.routes.expenses import router as expenses_router
from shiftledger.api.routes.health import router as health_router
from shiftledger.api.routes.me import router as me_router
from shiftledger.api.routes.reports import router as reports_router
from shiftledger.api.routes.schedules import router as schedules_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(schedules_router)
api_router.include_router(expenses_router)
api_router.include_router(dashboards_router)
api_router.include_router(reports_router)
