from fastapi import APIRouter

from src.rotation.api.v1 import admin, invitations, projects

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(invitations.router)
api_router.include_router(projects.router)
api_router.include_router(admin.router)
