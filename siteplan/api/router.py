"""Top-level API router."""

from fastapi import APIRouter

from siteplan.api.routes.health import router as health_router
from siteplan.api.routes.modifications import router as modifications_router
from siteplan.api.routes.projects import router as projects_router
from siteplan.api.routes.scheduling import router as scheduling_router
from siteplan.api.routes.team import router as team_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(projects_router)
api_router.include_router(team_router)
api_router.include_router(scheduling_router)
api_router.include_router(modifications_router)
