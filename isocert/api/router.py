from fastapi import APIRouter

from isocert.api.routes import certifications, health

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(certifications.router, prefix="/certifications", tags=["public"])
